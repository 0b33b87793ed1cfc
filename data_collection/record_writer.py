from __future__ import annotations
import csv
import io
import logging
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Sequence, Tuple

from core.records import CSV_COLUMNS, SampleRecord
from .safe_io import write_with_dir_retry

LOG = logging.getLogger(__name__)


def _render(rows: Iterable[Sequence[str]]) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerows(rows)
    return buf.getvalue()


class CsvWriter:
    """
    Append-only CSV file for one session.
    The schema header sits exactly once at the top of the file: written eagerly
    via write_header(), or in front of rows appended to a missing or empty file
    (header failed at start, or the file was removed mid-session).
    A failed append is truncated back to the previous end of file, so a retry
    never leaves a torn row or duplicates behind.
    """
    def __init__(self, path: Path):
        self.path = path
        self._header_written = False
        self._lock = Lock()

    @property
    def header_written(self) -> bool:
        return self._header_written

    def write_header(self) -> None:
        with self._lock:
            if self._header_written:
                return
            text = _render([CSV_COLUMNS])
            write_with_dir_retry(self.path.parent, lambda: self.path.write_text(text, encoding="utf-8"))
            self._header_written = True

    def append_rows(self, rows: Iterable[Sequence[str]]) -> int:
        rows = list(rows)
        if not rows:
            return 0
        body = _render(rows).encode("utf-8")
        header = _render([CSV_COLUMNS]).encode("utf-8")

        def _append() -> None:
            with self.path.open("ab", buffering=0) as fh:
                start = fh.tell()
                data = memoryview(header + body if start == 0 else body)
                try:
                    while data:
                        data = data[fh.write(data):]
                except OSError:
                    fh.truncate(start)
                    raise

        with self._lock:
            write_with_dir_retry(self.path.parent, _append)
            self._header_written = True
            return len(rows)


class RecordBuffer:
    """
    Ordered in-memory queue of sample records with a size-triggered flush.
    A failed flush keeps every record so the next trigger retries them.
    """
    def __init__(self, writer: CsvWriter, flush_threshold: int = 100):
        if flush_threshold < 1:
            raise ValueError(f"flush_threshold must be >= 1, got {flush_threshold}")
        self.writer = writer
        self.flush_threshold = flush_threshold
        self._records: List[SampleRecord] = []
        self.rows_written = 0
        self.flush_failures = 0

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> Tuple[SampleRecord, ...]:
        return tuple(self._records)

    @property
    def should_flush(self) -> bool:
        return len(self._records) >= self.flush_threshold

    def append(self, record: SampleRecord) -> None:
        self._records.append(record)

    def flush(self) -> bool:
        if not self._records:
            return True
        try:
            self.writer.append_rows(r.csv_row() for r in self._records)
        except OSError as exc:
            self.flush_failures += 1
            LOG.error("Error saving CSV data (%d records kept): %s", len(self._records), exc)
            LOG.error("Attempted path: %s", self.writer.path)
            return False
        self.rows_written += len(self._records)
        self._records.clear()
        return True
