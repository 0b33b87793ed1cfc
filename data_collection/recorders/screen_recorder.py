from __future__ import annotations
import threading
from typing import Optional, Tuple

import mss
import numpy as np

from core.providers import ProviderUnavailable, RawFrame


class MssFrameSource:
    """
    Grabs the current screen (or a fixed region) through mss.
    The mss handle is created lazily on the first grab so that it belongs to
    the thread that drives the host tick.
    """
    def __init__(
        self,
        monitor_index: int = 1,
        region: Optional[Tuple[int, int, int, int]] = None,  # (left, top, right, bottom)
    ):
        self.monitor_index = monitor_index
        self._region_lock = threading.Lock()
        self._region = region
        self._cam = None

    def set_region(self, region: Optional[Tuple[int, int, int, int]]) -> None:
        with self._region_lock:
            self._region = region

    def _bbox(self) -> dict:
        with self._region_lock:
            region = self._region
        if region:
            left, top, right, bottom = region
            if right <= left or bottom <= top:
                raise ProviderUnavailable(f"empty capture region {region}")
            return {"left": left, "top": top, "width": right - left, "height": bottom - top}
        monitors = self._cam.monitors
        if self.monitor_index >= len(monitors):
            raise ProviderUnavailable(f"monitor {self.monitor_index} not present")
        mon = monitors[self.monitor_index]
        return {"left": mon["left"], "top": mon["top"], "width": mon["width"], "height": mon["height"]}

    def get_current_frame(self) -> RawFrame:
        if self._cam is None:
            self._cam = mss.mss()
        shot = self._cam.grab(self._bbox())
        w, h = shot.size
        pixels = np.frombuffer(shot.rgb, dtype=np.uint8).reshape(h, w, 3)
        return RawFrame(pixels=pixels, width=w, height=h)

    def stop(self) -> None:
        if self._cam is not None:
            self._cam.close()
            self._cam = None
