"""Collaborator contracts consumed by the capture pipeline.

The pipeline never talks to the host game directly.  Everything it needs -
avatar state, control state, the current screen and the record toggle - comes
through the small protocols below, so hosts (and tests) plug in whatever
backend they have.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Tuple, runtime_checkable

import numpy as np


class ProviderUnavailable(RuntimeError):
    """The collaborator cannot answer right now (avatar not spawned, no device...).

    Capture treats this as a benign transient condition and skips the sample.
    """


@dataclass(frozen=True)
class RawFrame:
    """Raw display buffer: ``pixels`` is an ``(height, width, 3)`` RGB uint8 array."""

    pixels: np.ndarray
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"invalid frame size {self.width}x{self.height}")
        shape = getattr(self.pixels, "shape", None)
        if shape is None or tuple(shape[:2]) != (self.height, self.width):
            raise ValueError(
                f"pixel buffer shape {shape} does not match {self.width}x{self.height}"
            )

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "RawFrame":
        h, w = pixels.shape[:2]
        return cls(pixels=pixels, width=int(w), height=int(h))


@runtime_checkable
class PlayerStateProvider(Protocol):
    def get_avatar_position(self) -> Tuple[float, float]: ...

    def get_avatar_health(self) -> int: ...


@runtime_checkable
class InputStateProvider(Protocol):
    def get_control_state(self, channel: str) -> bool: ...


@runtime_checkable
class FrameSource(Protocol):
    def get_current_frame(self) -> RawFrame: ...


@runtime_checkable
class ToggleSource(Protocol):
    def consume_toggle(self) -> bool:
        """True if the record toggle fired since the previous call."""
        ...


__all__ = [
    "FrameSource",
    "InputStateProvider",
    "PlayerStateProvider",
    "ProviderUnavailable",
    "RawFrame",
    "ToggleSource",
]
