"""Per-session persistence: CSV rows plus one PNG per sample.

``SessionWriter`` does everything synchronously on the caller's thread, which
is the host tick.  ``BackgroundSessionWriter`` moves the same work onto one
dedicated thread fed by a bounded queue, so a slow disk stalls the writer
instead of the game; the queue is FIFO with a single consumer, so samples
and frames still land in ``frame_id`` order.
"""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import Image

from core.records import SampleRecord
from .frames import FrameWriter
from .record_writer import CsvWriter, RecordBuffer
from .safe_io import ensure_dir

LOG = logging.getLogger(__name__)


class SessionClosedError(RuntimeError):
    """Raised when writing to a session that has already been stopped."""


class SessionWriter:
    def __init__(self, csv_path: Path, frames_dir: Path, flush_threshold: int = 100) -> None:
        self.csv = CsvWriter(csv_path)
        self.buffer = RecordBuffer(self.csv, flush_threshold)
        self.frames = FrameWriter(frames_dir)
        self.samples = 0
        self.frames_missing = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        """Create the frames directory and write the CSV header.

        Failures are logged only; the header is retried on the first flush and
        the directory before every frame write.
        """
        try:
            ensure_dir(self.frames.frames_dir)
        except OSError as exc:
            LOG.error("Error creating frames directory %s: %s", self.frames.frames_dir, exc)
        try:
            self.csv.write_header()
        except OSError as exc:
            LOG.error("Error writing CSV header to %s: %s", self.csv.path, exc)

    def write_sample(self, record: SampleRecord, img: Optional[Image.Image]) -> None:
        """Buffer ``record``, persist its frame, flush once the threshold is hit.

        ``img`` is None when the frame could not be captured; the record is
        still kept.
        """
        if self._closed:
            raise SessionClosedError(f"session writer for {self.csv.path} is closed")
        self.buffer.append(record)
        self.samples += 1
        if img is None:
            self.frames_missing += 1
        else:
            self.frames.write(record.frame_id, img)
        if self.buffer.should_flush:
            self.buffer.flush()

    def close(self) -> bool:
        """Flush what is left and refuse further writes. Returns flush success."""
        if self._closed:
            return len(self.buffer) == 0
        ok = self.buffer.flush()
        self._closed = True
        if not ok:
            LOG.error("Session closed with %d unsaved records: %s", len(self.buffer), self.csv.path)
        return ok

    def stats(self) -> Dict[str, Any]:
        return {
            "samples": self.samples,
            "frames_written": self.frames.written,
            "frames_failed": self.frames.failed + self.frames_missing,
            "flush_failures": self.buffer.flush_failures,
        }


_STOP = object()


class BackgroundSessionWriter:
    """Drive a :class:`SessionWriter` from a dedicated thread.

    ``write_sample`` blocks when ``maxsize`` items are already pending, which
    bounds memory held by queued frames.  ``close`` drains the queue, flushes
    and joins the thread before returning.
    """

    def __init__(self, writer: SessionWriter, maxsize: int = 64) -> None:
        self.writer = writer
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max(1, maxsize))
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="session-writer", daemon=True)
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def buffer(self) -> RecordBuffer:
        return self.writer.buffer

    def open(self) -> None:
        self.writer.open()

    def write_sample(self, record: SampleRecord, img: Optional[Image.Image]) -> None:
        if self._closed:
            raise SessionClosedError(f"session writer for {self.writer.csv.path} is closed")
        self._queue.put((record, img))

    def drain(self) -> None:
        """Block until every queued sample has been handled."""
        self._queue.join()

    def close(self) -> bool:
        if self._closed:
            return self.writer.close()
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join()
        return self.writer.close()

    def stats(self) -> Dict[str, Any]:
        return self.writer.stats()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                record, img = item
                try:
                    self.writer.write_sample(record, img)
                except Exception:
                    LOG.exception("Background write failed for frame_id=%d", record.frame_id)
            finally:
                self._queue.task_done()


__all__ = ["BackgroundSessionWriter", "SessionClosedError", "SessionWriter"]
