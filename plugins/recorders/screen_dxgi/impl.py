from __future__ import annotations
from typing import Optional, Tuple

from core.providers import ProviderUnavailable, RawFrame

# optional deps; safe import even if missing
try:
    import dxcam  # type: ignore
except Exception:
    dxcam = None

class DxgiFrameSource:
    """DXGI-based screen capture (Windows). Implements the FrameSource contract.
    dxcam.grab() returns None when the screen has not changed since the last
    grab, so the previous frame is served again in that case.
    """
    def __init__(self, output_idx: int = 0, region: Optional[Tuple[int, int, int, int]] = None):
        self.output_idx = output_idx
        self.region = region  # (left, top, right, bottom)
        self.camera = None
        self._last: Optional[RawFrame] = None

    def start(self) -> None:
        if dxcam is None:
            raise ProviderUnavailable("dxcam not installed")
        self.camera = dxcam.create(output_idx=self.output_idx, output_color="RGB")

    def get_current_frame(self) -> RawFrame:
        if self.camera is None:
            self.start()
        frame = self.camera.grab(region=self.region)
        if frame is not None:
            self._last = RawFrame.from_array(frame)
        if self._last is None:
            raise ProviderUnavailable("dxcam has not produced a frame yet")
        return self._last

    def stop(self) -> None:
        self.camera = None
        self._last = None
