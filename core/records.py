"""Core record models shared across the project."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from sdk.ids import new_ulid


CONTROL_CHANNELS = (
    "moving_left",
    "moving_right",
    "moving_up",
    "moving_down",
    "attacking",
    "jumping",
    "dashing",
    "focusing",
    "dreamnail",
)

CSV_COLUMNS = ("frame_id", "x_position", "y_position", "health") + CONTROL_CHANNELS


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ControlState(BaseModel):
    """Boolean state of the nine recorded control channels."""

    model_config = ConfigDict(frozen=True)

    moving_left: bool = False
    moving_right: bool = False
    moving_up: bool = False
    moving_down: bool = False
    attacking: bool = False
    jumping: bool = False
    dashing: bool = False
    focusing: bool = False
    dreamnail: bool = False

    @classmethod
    def from_provider(cls, provider: Any) -> "ControlState":
        """Query ``provider.get_control_state`` once per channel."""

        return cls(**{ch: bool(provider.get_control_state(ch)) for ch in CONTROL_CHANNELS})

    def flags(self) -> List[bool]:
        return [getattr(self, ch) for ch in CONTROL_CHANNELS]


class SampleRecord(BaseModel):
    """One captured sample; ``frame_id`` pairs it with its frame on disk."""

    model_config = ConfigDict(frozen=True)

    frame_id: int = Field(ge=0)
    x: float
    y: float
    health: int
    controls: ControlState = Field(default_factory=ControlState)

    def csv_row(self) -> List[str]:
        """Row values in ``CSV_COLUMNS`` order."""

        return [
            str(self.frame_id),
            f"{self.x:.3f}",
            f"{self.y:.3f}",
            str(self.health),
            *(str(v) for v in self.controls.flags()),
        ]


class SessionMeta(BaseModel):
    """Metadata sidecar describing a recording session."""

    id: str
    uid: str = Field(default_factory=new_ulid)
    status: Literal["recording", "stopped"] = "recording"
    created_ts: datetime = Field(default_factory=now_utc)
    stopped_ts: Optional[datetime] = None
    csv_file: str
    frames_dir: str
    config: Dict[str, Any] = Field(default_factory=dict)
    samples: int = 0
    frames_written: int = 0
    frames_failed: int = 0
    flush_failures: int = 0
    skipped: int = 0


__all__ = [
    "CONTROL_CHANNELS",
    "CSV_COLUMNS",
    "ControlState",
    "SampleRecord",
    "SessionMeta",
    "now_utc",
]
