from __future__ import annotations

import logging
import signal
import threading
import time
from pathlib import Path
from typing import Optional

import typer

from config.paths import Paths
from core.providers import ToggleSource
from data_collection.frames import FRAME_NAME
from data_collection.session_manager import SessionController
from sdk.config import load_config
from sdk.registry import Registry


app = typer.Typer(add_completion=False, no_args_is_help=True)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _close(provider: object) -> None:
    stop = getattr(provider, "stop", None)
    if callable(stop):
        stop()


@app.command()
def run(
    save_root: Optional[Path] = typer.Option(None, "--save-root", help="Directory for CSV files and frames"),
    interval: Optional[float] = typer.Option(None, help="Seconds between samples (default 1/3)"),
    width: Optional[int] = typer.Option(None, help="Target frame width"),
    height: Optional[int] = typer.Option(None, help="Target frame height"),
    flush_threshold: Optional[int] = typer.Option(None, help="Buffered rows before a CSV flush"),
    toggle_key: Optional[str] = typer.Option(None, help="Key that starts/stops a session"),
    async_writes: Optional[bool] = typer.Option(
        None, "--async-writes/--sync-writes", help="Write files on a background thread"
    ),
    state_file: Optional[Path] = typer.Option(None, help="JSON file with the avatar state"),
    frames: Optional[str] = typer.Option(None, help="Frame source as module:Class"),
    tick_hz: float = typer.Option(60.0, help="Host loop rate"),
    duration: Optional[float] = typer.Option(None, help="Quit after this many seconds"),
    autostart: bool = typer.Option(False, help="Start a session immediately"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Drive the capture pipeline from a standalone host loop."""

    _configure_logging(log_level)
    try:
        cfg = load_config(
            save_root=save_root,
            sample_interval=interval,
            target_width=width,
            target_height=height,
            flush_threshold=flush_threshold,
            toggle_key=toggle_key,
            async_writes=async_writes,
        )
    except ValueError as exc:
        typer.echo(f"[hkbot] Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2)
    if frames:
        cfg.providers["frames"] = frames

    registry = Registry(cfg.providers)
    player = registry.create("player", state_file) if state_file else registry.create("player")
    inputs = registry.create("inputs", toggle_key=cfg.toggle_key)
    frame_source = registry.create("frames")
    toggle = inputs if isinstance(inputs, ToggleSource) else None

    controller = SessionController(player, inputs, frame_source, toggle, config=cfg)

    stop_event = threading.Event()

    def _stop(*_object: object) -> None:
        stop_event.set()

    previous = {sig: signal.signal(sig, _stop) for sig in (signal.SIGINT, signal.SIGTERM)}

    typer.echo(f"[hkbot] Saving sessions under {controller.paths.save_root}")
    typer.echo(f"[hkbot] Press '{cfg.toggle_key}' to start/stop recording, Ctrl+C to quit.")

    if autostart:
        controller.toggle()

    period = 1.0 / max(1.0, tick_hz)
    last = time.monotonic()
    deadline = None if duration is None else last + duration
    try:
        while not stop_event.is_set():
            now = time.monotonic()
            if deadline is not None and now >= deadline:
                break
            controller.tick(now - last)
            last = now
            stop_event.wait(max(0.0, period - (time.monotonic() - now)))
    finally:
        controller.shutdown()
        for provider in (inputs, frame_source, player):
            _close(provider)
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@app.command()
def sessions(
    save_root: Optional[Path] = typer.Option(None, "--save-root", help="Directory to inspect"),
) -> None:
    """List recorded sessions with their row and frame counts."""

    paths = Paths.for_save_root(save_root)
    ids = paths.list_session_ids()
    if not ids:
        typer.echo(f"No sessions under {paths.save_root}")
        return
    pattern = FRAME_NAME.replace("{:06d}", "*")
    for sid in ids:
        with paths.session_csv_path(sid).open("r", encoding="utf-8") as fh:
            rows = max(0, sum(1 for _ in fh) - 1)
        frames_dir = paths.session_frames_dir(sid)
        n_frames = len(list(frames_dir.glob(pattern))) if frames_dir.is_dir() else 0
        typer.echo(f"{sid}\trows={rows}\tframes={n_frames}")


if __name__ == "__main__":
    app()
