from datetime import datetime
from types import SimpleNamespace

import pytest

from core.providers import ProviderUnavailable
from data_collection.session_manager import SessionController
from plugins.recorders.screen_stub.impl import StubFrameSource
from sdk.config import CaptureConfig

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)


class FakePlayer:
    def __init__(self):
        self.position = (12.5, -3.25)
        self.health = 5
        self.available = True

    def get_avatar_position(self):
        if not self.available:
            raise ProviderUnavailable("avatar not spawned")
        return self.position

    def get_avatar_health(self):
        if not self.available:
            raise ProviderUnavailable("avatar not spawned")
        return self.health


class FakeInputs:
    def __init__(self):
        self.pressed = set()
        self.error = None

    def get_control_state(self, channel):
        if self.error is not None:
            raise self.error
        return channel in self.pressed


class FakeToggle:
    def __init__(self):
        self.pending = 0

    def press(self, times=1):
        self.pending += times

    def consume_toggle(self):
        fired = self.pending > 0
        self.pending = 0
        return fired


@pytest.fixture
def rig(tmp_path, monkeypatch):
    """Controller wired to fakes; ``rig.make(**cfg)`` builds a fresh controller."""
    for var in ("HKBOT_SAVE_ROOT", "HKBOT_ASYNC_WRITES", "HKBOT_FLUSH_THRESHOLD", "HKBOT_SAMPLE_INTERVAL"):
        monkeypatch.delenv(var, raising=False)

    ns = SimpleNamespace(
        player=FakePlayer(),
        inputs=FakeInputs(),
        frames=StubFrameSource(width=192, height=108, color=(10, 20, 30)),
        toggle=FakeToggle(),
        root=tmp_path / "data",
    )

    def make(**overrides):
        opts = {"save_root": ns.root, "target_width": 64, "target_height": 36}
        opts.update(overrides)
        return SessionController(
            ns.player,
            ns.inputs,
            ns.frames,
            ns.toggle,
            config=CaptureConfig(**opts),
            clock=lambda: FIXED_NOW,
        )

    ns.make = make
    return ns
