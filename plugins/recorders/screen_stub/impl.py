from __future__ import annotations
from typing import Tuple
import numpy as np
from core.providers import RawFrame
class StubFrameSource:
    """Solid-colour frames of a fixed size; for headless runs and tests."""
    def __init__(self, width: int = 1920, height: int = 1080, color: Tuple[int, int, int] = (0, 0, 0)):
        self.width, self.height, self.color = width, height, color
        self.grabs = 0
    def get_current_frame(self) -> RawFrame:
        self.grabs += 1
        pixels = np.empty((self.height, self.width, 3), dtype=np.uint8); pixels[:] = self.color
        return RawFrame(pixels=pixels, width=self.width, height=self.height)
    def stop(self) -> None: pass
