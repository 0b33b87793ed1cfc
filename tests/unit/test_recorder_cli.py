import json
from types import SimpleNamespace

from typer.testing import CliRunner

from apps.recorder_cli import app
from config.paths import Paths
from core.records import CSV_COLUMNS
from data_collection.recorders import input_recorder

runner = CliRunner()


class _FakeListener:
    instances = []

    def __init__(self, on_press, on_release):
        self.running = False
        _FakeListener.instances.append(self)

    def start(self):
        self.running = True

    def stop(self):
        self.running = False


def test_run_records_session_and_shuts_down(tmp_path, monkeypatch):
    monkeypatch.delenv("HKBOT_SAVE_ROOT", raising=False)
    monkeypatch.setattr(input_recorder, "_pynput_keyboard", SimpleNamespace(Listener=_FakeListener))
    monkeypatch.setattr(input_recorder, "_inputs", None)
    _FakeListener.instances = []
    state = tmp_path / "state.json"
    state.write_text(json.dumps({"spawned": True, "x": 1.5, "y": 2.0, "health": 4}), encoding="utf-8")
    root = tmp_path / "data"

    result = runner.invoke(
        app,
        [
            "run",
            "--save-root", str(root),
            "--state-file", str(state),
            "--frames", "plugins.recorders.screen_stub.impl:StubFrameSource",
            "--interval", "0.05",
            "--width", "64",
            "--height", "36",
            "--tick-hz", "100",
            "--duration", "0.5",
            "--autostart",
        ],
    )
    assert result.exit_code == 0, result.output

    paths = Paths.for_save_root(root)
    (sid,) = paths.list_session_ids()
    lines = paths.session_csv_path(sid).read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(CSV_COLUMNS)
    rows = [line.split(",") for line in lines[1:]]
    assert rows
    assert rows[0][:4] == ["0", "1.500", "2.000", "4"]
    frames = sorted(p.name for p in paths.session_frames_dir(sid).iterdir())
    assert frames == [f"frame_{i:06d}.png" for i in range(len(rows))]

    meta = json.loads(paths.session_meta_path(sid).read_text(encoding="utf-8"))
    assert meta["status"] == "stopped"
    assert meta["samples"] == len(rows)
    assert [listener.running for listener in _FakeListener.instances] == [False]


def test_run_rejects_invalid_config(tmp_path):
    result = runner.invoke(app, ["run", "--save-root", str(tmp_path), "--interval", "0"])
    assert result.exit_code == 2
    assert not list(tmp_path.iterdir())


def test_sessions_lists_counts(tmp_path):
    p = Paths.for_save_root(tmp_path)
    p.session_csv_path("20240102_030405").write_text("header\n0,a\n1,b\n", encoding="utf-8")
    frames = p.session_frames_dir("20240102_030405")
    frames.mkdir()
    (frames / "frame_000000.png").write_bytes(b"")
    (frames / "frame_000001.png").write_bytes(b"")

    result = runner.invoke(app, ["sessions", "--save-root", str(tmp_path)])
    assert result.exit_code == 0
    assert "20240102_030405\trows=2\tframes=2" in result.output


def test_sessions_empty(tmp_path):
    result = runner.invoke(app, ["sessions", "--save-root", str(tmp_path)])
    assert result.exit_code == 0
    assert "No sessions" in result.output


def test_sessions_ignores_bad_capture_env(tmp_path, monkeypatch):
    monkeypatch.setenv("HKBOT_SAMPLE_INTERVAL", "abc")
    monkeypatch.setenv("HKBOT_SAVE_ROOT", str(tmp_path))
    result = runner.invoke(app, ["sessions"])
    assert result.exit_code == 0
    assert str(tmp_path) in result.output
