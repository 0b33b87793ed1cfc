import errno
import logging
from pathlib import Path

from core.records import CSV_COLUMNS, ControlState, SampleRecord
from data_collection.record_writer import CsvWriter, RecordBuffer

HEADER = ",".join(CSV_COLUMNS)


def _record(i):
    return SampleRecord(frame_id=i, x=i * 1.5, y=-i, health=9, controls=ControlState(jumping=bool(i % 2)))


def test_header_written_once(tmp_path):
    writer = CsvWriter(tmp_path / "s.csv")
    writer.write_header()
    writer.write_header()
    writer.append_rows([_record(0).csv_row()])
    writer.append_rows([_record(1).csv_row()])

    lines = writer.path.read_text(encoding="utf-8").splitlines()
    assert lines.count(HEADER) == 1
    assert lines[0] == HEADER
    assert len(lines) == 3


def test_header_written_lazily_when_start_failed(tmp_path):
    writer = CsvWriter(tmp_path / "nested" / "s.csv")
    assert not writer.header_written
    assert writer.append_rows([_record(0).csv_row()]) == 1

    lines = writer.path.read_text(encoding="utf-8").splitlines()
    assert lines == [HEADER, "0,0.000,0.000,9,False,False,False,False,False,False,False,False,False"]


def test_append_recreates_missing_parent(tmp_path):
    path = tmp_path / "gone" / "s.csv"
    writer = CsvWriter(path)
    writer.write_header()
    path.unlink()
    path.parent.rmdir()

    writer.append_rows([_record(3).csv_row()])
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == HEADER
    assert lines[1].startswith("3,")
    assert len(lines) == 2


def test_header_rewritten_when_file_emptied(tmp_path):
    writer = CsvWriter(tmp_path / "s.csv")
    writer.write_header()
    writer.path.write_text("", encoding="utf-8")

    writer.append_rows([_record(0).csv_row()])
    writer.append_rows([_record(1).csv_row()])
    lines = writer.path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == HEADER
    assert lines.count(HEADER) == 1
    assert [line.split(",")[0] for line in lines[1:]] == ["0", "1"]


class _DiskFullAfterHalf:
    """Writes half of what it is given, then fails like a full disk."""

    def __init__(self, fh):
        self._fh = fh

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self._fh.close()

    def tell(self):
        return self._fh.tell()

    def truncate(self, size):
        return self._fh.truncate(size)

    def write(self, data):
        self._fh.write(bytes(data[: len(data) // 2]))
        raise OSError(errno.ENOSPC, "No space left on device")


def test_partial_append_is_rolled_back_before_retry(tmp_path, monkeypatch):
    writer = CsvWriter(tmp_path / "s.csv")
    writer.write_header()
    buf = RecordBuffer(writer, flush_threshold=2)
    buf.append(_record(0))
    buf.append(_record(1))

    real_open = Path.open

    def _open(self, mode="r", *args, **kwargs):
        fh = real_open(self, mode, *args, **kwargs)
        return _DiskFullAfterHalf(fh) if "a" in mode else fh

    with monkeypatch.context() as m:
        m.setattr(Path, "open", _open)
        assert buf.flush() is False
    assert writer.path.read_text(encoding="utf-8").splitlines() == [HEADER]
    assert len(buf) == 2

    assert buf.flush() is True
    lines = writer.path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == HEADER
    assert [line.split(",")[0] for line in lines[1:]] == ["0", "1"]


def test_buffer_flush_clears_on_success(tmp_path):
    buf = RecordBuffer(CsvWriter(tmp_path / "s.csv"), flush_threshold=2)
    buf.append(_record(0))
    assert not buf.should_flush
    buf.append(_record(1))
    assert buf.should_flush

    assert buf.flush()
    assert len(buf) == 0
    assert buf.rows_written == 2


def test_buffer_keeps_records_when_flush_fails(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    buf = RecordBuffer(CsvWriter(blocker / "s.csv"), flush_threshold=1)
    buf.append(_record(0))

    with caplog.at_level(logging.ERROR, logger="data_collection.record_writer"):
        assert buf.flush() is False
    assert buf.records == (_record(0),)
    assert buf.flush_failures == 1
    assert str(blocker / "s.csv") in caplog.text


def test_empty_flush_is_noop(tmp_path):
    writer = CsvWriter(tmp_path / "s.csv")
    buf = RecordBuffer(writer)
    assert buf.flush()
    assert not writer.path.exists()
