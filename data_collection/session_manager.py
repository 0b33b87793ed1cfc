"""Recording state machine driven once per host tick."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from PIL import Image

from config.paths import Paths
from core.providers import (
    FrameSource,
    InputStateProvider,
    PlayerStateProvider,
    ProviderUnavailable,
    ToggleSource,
)
from core.records import ControlState, SampleRecord, SessionMeta, now_utc
from core.timing.sampler import Sampler
from sdk.config import CaptureConfig, load_config
from sdk.ids import new_session_id

from .frames import downscale
from .safe_io import ensure_dir
from .session_writer import BackgroundSessionWriter, SessionWriter

LOG = logging.getLogger(__name__)

AnyWriter = Union[SessionWriter, BackgroundSessionWriter]


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


@dataclass
class Session:
    """One recording episode and everything it writes to."""

    id: str
    csv_path: Path
    frames_dir: Path
    meta_path: Path
    writer: AnyWriter
    meta: SessionMeta
    frame_count: int = 0
    skipped: int = 0


class SessionController:
    """Start/stop sessions on the toggle and capture samples while recording.

    ``tick`` is the only entry point the host needs: call it once per update
    with the elapsed time in seconds.  Nothing raised by providers or writers
    escapes ``tick``; failures are logged and recording carries on.
    """

    def __init__(
        self,
        player: PlayerStateProvider,
        inputs: InputStateProvider,
        frame_source: FrameSource,
        toggle_source: Optional[ToggleSource] = None,
        config: Optional[CaptureConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.cfg = config or load_config()
        self.player = player
        self.inputs = inputs
        self.frame_source = frame_source
        self.toggle_source = toggle_source
        self.paths = Paths.for_save_root(self.cfg.save_root)
        self.sampler = Sampler(self.cfg.sample_interval)
        self._clock = clock

        self._state = SessionState.IDLE
        self._session: Optional[Session] = None
        self.last_session: Optional[Session] = None

        try:
            ensure_dir(self.paths.save_root)
        except OSError as exc:
            LOG.error("Error creating save directory %s: %s", self.paths.save_root, exc)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def recording(self) -> bool:
        return self._state is SessionState.RECORDING

    @property
    def session(self) -> Optional[Session]:
        return self._session

    # ------------------------------------------------------------------
    # Host entry points
    # ------------------------------------------------------------------
    def tick(self, delta: float) -> None:
        if self._toggle_requested():
            self.toggle()
        if not self.recording:
            return
        if self.sampler.advance(delta):
            self._capture()

    def toggle(self) -> SessionState:
        if self.recording:
            self._stop()
        else:
            try:
                self._start()
            except Exception:
                LOG.exception("Error starting session; staying idle")
        return self._state

    def shutdown(self) -> None:
        """Stop the active session, if any. Safe to call repeatedly."""
        if self.recording:
            self._stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _start(self) -> None:
        created = self._clock()
        sid = new_session_id(created, self.paths.session_exists)
        csv_path = self.paths.session_csv_path(sid)
        frames_dir = self.paths.session_frames_dir(sid)

        writer: AnyWriter = SessionWriter(csv_path, frames_dir, self.cfg.flush_threshold)
        if self.cfg.async_writes:
            writer = BackgroundSessionWriter(writer, self.cfg.write_queue_size)
        try:
            writer.open()
            meta = SessionMeta(
                id=sid,
                created_ts=created,
                csv_file=csv_path.name,
                frames_dir=frames_dir.name,
                config=self.cfg.model_dump(mode="json"),
            )
        except Exception:
            writer.close()
            raise
        self._session = Session(
            id=sid,
            csv_path=csv_path,
            frames_dir=frames_dir,
            meta_path=self.paths.session_meta_path(sid),
            writer=writer,
            meta=meta,
        )
        self.sampler.reset()
        self._state = SessionState.RECORDING
        self._write_meta(self._session)
        LOG.info("Recording started: session %s -> %s", sid, self.paths.save_root)

    def _stop(self) -> None:
        session = self._session
        assert session is not None
        try:
            session.writer.close()
        except Exception:
            LOG.exception("Error finalizing session %s", session.id)

        session.meta = session.meta.model_copy(
            update={
                "status": "stopped",
                "stopped_ts": now_utc(),
                "skipped": session.skipped,
                **session.writer.stats(),
            }
        )
        self._write_meta(session)

        self._session = None
        self.last_session = session
        self._state = SessionState.IDLE
        LOG.info(
            "Recording stopped: session %s saved (%d samples). Frames: %s",
            session.id,
            session.frame_count,
            session.frames_dir,
        )

    def _write_meta(self, session: Session) -> None:
        try:
            session.meta_path.write_text(session.meta.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            LOG.error("Error writing session metadata %s: %s", session.meta_path, exc)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    def _toggle_requested(self) -> bool:
        if self.toggle_source is None:
            return False
        try:
            return bool(self.toggle_source.consume_toggle())
        except ProviderUnavailable:
            return False
        except Exception:
            LOG.exception("Error reading record toggle")
            return False

    def _capture(self) -> None:
        session = self._session
        assert session is not None
        try:
            record = self._read_sample(session.frame_count)
        except ProviderUnavailable as exc:
            session.skipped += 1
            LOG.debug("Capture skipped (frame_id=%d): %s", session.frame_count, exc)
            return
        except Exception:
            LOG.exception("Error capturing data")
            return

        session.frame_count += 1
        img = self._grab_frame(record.frame_id)
        try:
            session.writer.write_sample(record, img)
        except Exception:
            LOG.exception("Error writing sample frame_id=%d", record.frame_id)

    def _read_sample(self, frame_id: int) -> SampleRecord:
        x, y = self.player.get_avatar_position()
        health = self.player.get_avatar_health()
        controls = ControlState.from_provider(self.inputs)
        return SampleRecord(frame_id=frame_id, x=x, y=y, health=health, controls=controls)

    def _grab_frame(self, frame_id: int) -> Optional[Image.Image]:
        try:
            raw = self.frame_source.get_current_frame()
            return downscale(raw, self.cfg.target_size)
        except ProviderUnavailable as exc:
            LOG.warning("No frame for frame_id=%d: %s", frame_id, exc)
        except Exception:
            LOG.exception("Error capturing frame %d", frame_id)
        return None


__all__ = ["Session", "SessionController", "SessionState"]
