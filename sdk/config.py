from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from pathlib import Path
from typing import Optional
import os


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    return Path(raw) if raw else None


DEFAULT_PROVIDERS = {
    "player": "plugins.players.state_file.impl:StateFileProvider",
    "inputs": "data_collection.recorders.input_recorder:KeyboardInputProvider",
    "frames": "data_collection.recorders.screen_recorder:MssFrameSource",
}


class CaptureConfig(BaseModel):
    """Tunables for the capture pipeline.

    Every field can be overridden with an ``HKBOT_*`` environment variable;
    explicit keyword arguments win over the environment.
    """

    model_config = ConfigDict(validate_default=True)

    # None means "resolve through config.paths" (env var or OS default)
    save_root: Optional[Path] = Field(default_factory=lambda: _env_path("HKBOT_SAVE_ROOT"))
    sample_interval: float = Field(default_factory=lambda: _env_float("HKBOT_SAMPLE_INTERVAL", 1.0 / 3.0), gt=0)
    target_width: int = Field(default_factory=lambda: _env_int("HKBOT_TARGET_WIDTH", 640), gt=0)
    target_height: int = Field(default_factory=lambda: _env_int("HKBOT_TARGET_HEIGHT", 360), gt=0)
    flush_threshold: int = Field(default_factory=lambda: _env_int("HKBOT_FLUSH_THRESHOLD", 100), ge=1)
    toggle_key: str = Field(default_factory=lambda: os.getenv("HKBOT_TOGGLE_KEY", "o"))
    async_writes: bool = Field(default_factory=lambda: _env_bool("HKBOT_ASYNC_WRITES", False))
    write_queue_size: int = Field(default_factory=lambda: _env_int("HKBOT_WRITE_QUEUE_SIZE", 64), ge=1)
    providers: dict = Field(default_factory=lambda: dict(DEFAULT_PROVIDERS))

    @property
    def target_size(self) -> tuple[int, int]:
        return self.target_width, self.target_height


def load_config(**overrides) -> CaptureConfig:
    """Build a config from the environment, ignoring overrides that are None."""
    return CaptureConfig(**{k: v for k, v in overrides.items() if v is not None})
