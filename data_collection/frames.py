"""Frame downscaling, PNG encoding and per-session frame persistence."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image

from core.providers import RawFrame
from .safe_io import write_with_dir_retry

LOG = logging.getLogger(__name__)

FRAME_NAME = "frame_{:06d}.png"


def scaled_size(src_w: int, src_h: int, target_w: int, target_h: int) -> Tuple[int, int]:
    """Largest size that fits ``target`` while keeping the source aspect ratio."""
    if min(src_w, src_h, target_w, target_h) <= 0:
        raise ValueError(f"invalid sizes: src={src_w}x{src_h} target={target_w}x{target_h}")
    scale = min(target_w / src_w, target_h / src_h)
    return max(1, round(src_w * scale)), max(1, round(src_h * scale))


def to_image(frame: RawFrame) -> Image.Image:
    pixels = np.ascontiguousarray(frame.pixels[:, :, :3], dtype=np.uint8)
    return Image.fromarray(pixels)


def downscale(frame: RawFrame, target: Tuple[int, int]) -> Image.Image:
    """Aspect-preserving resample of ``frame`` into the ``target`` box."""
    size = scaled_size(frame.width, frame.height, *target)
    img = to_image(frame)
    if img.size == size:
        return img
    return img.resize(size, Image.Resampling.BILINEAR)


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class FrameWriter:
    """
    Writes one PNG per sample into the session's frames directory.
    Failures are logged and counted; they never abort the session.
    """

    def __init__(self, frames_dir: Path):
        self.frames_dir = frames_dir
        self.written = 0
        self.failed = 0

    def path_for(self, frame_id: int) -> Path:
        return self.frames_dir / FRAME_NAME.format(frame_id)

    def write(self, frame_id: int, img: Image.Image) -> bool:
        path = self.path_for(frame_id)
        try:
            data = encode_png(img)
            write_with_dir_retry(self.frames_dir, lambda: path.write_bytes(data))
        except OSError as exc:
            self.failed += 1
            LOG.error("Error capturing frame %d: %s", frame_id, exc)
            LOG.error("Attempted path: %s", path)
            return False
        self.written += 1
        return True
