"""Keyboard and gamepad control state for the capture pipeline."""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from core.providers import ProviderUnavailable
from core.records import CONTROL_CHANNELS

try:  # Optional dependency - not always available in CI containers
    from pynput import keyboard as _pynput_keyboard  # type: ignore
except Exception:  # pragma: no cover - optional backend
    _pynput_keyboard = None  # type: ignore

try:  # Optional dependency for gamepad support
    import inputs as _inputs  # type: ignore
except Exception:  # pragma: no cover - optional backend
    _inputs = None  # type: ignore

LOG = logging.getLogger(__name__)

# Hollow Knight default keyboard bindings
DEFAULT_KEY_BINDINGS: Dict[str, Tuple[str, ...]] = {
    "moving_left": ("left",),
    "moving_right": ("right",),
    "moving_up": ("up",),
    "moving_down": ("down",),
    "attacking": ("x",),
    "jumping": ("z",),
    "dashing": ("c",),
    "focusing": ("a",),
    "dreamnail": ("d",),
}

AXIS_THRESHOLD = 0.3
STICK_RANGE = 32768.0
TRIGGER_RANGE = 255.0

# XInput layout as reported by ``inputs``: stick Y is positive up, hat Y is
# negative up.  Face buttons follow joystick buttons 0-3.
_STICK_DIRECTIONS: Dict[str, Tuple[str, int, str, int]] = {
    "moving_left": ("ABS_X", -1, "ABS_HAT0X", -1),
    "moving_right": ("ABS_X", 1, "ABS_HAT0X", 1),
    "moving_up": ("ABS_Y", 1, "ABS_HAT0Y", -1),
    "moving_down": ("ABS_Y", -1, "ABS_HAT0Y", 1),
}
_BUTTONS: Dict[str, str] = {
    "attacking": "BTN_SOUTH",
    "jumping": "BTN_EAST",
    "focusing": "BTN_WEST",
    "dreamnail": "BTN_NORTH",
}
_TRIGGERS: Dict[str, str] = {
    "dashing": "ABS_RZ",
}


def gamepad_channel(channel: str, pad: Mapping[str, float], threshold: float = AXIS_THRESHOLD) -> bool:
    """Evaluate one control channel against the latest gamepad code states."""
    if channel in _STICK_DIRECTIONS:
        axis, sign, hat, hat_sign = _STICK_DIRECTIONS[channel]
        stick = pad.get(axis, 0) / STICK_RANGE
        return stick * sign > threshold or pad.get(hat, 0) * hat_sign > 0
    if channel in _BUTTONS:
        return bool(pad.get(_BUTTONS[channel], 0))
    if channel in _TRIGGERS:
        return pad.get(_TRIGGERS[channel], 0) / TRIGGER_RANGE > threshold
    return False


class KeyboardInputProvider:
    """Track pressed keys (pynput) and gamepad codes (``inputs``).

    Besides answering ``get_control_state`` it acts as the record toggle:
    a fresh press of ``toggle_key`` is latched until ``consume_toggle`` reads
    it.  Key auto-repeat does not re-trigger the toggle.
    """

    def __init__(
        self,
        bindings: Optional[Mapping[str, Iterable[str]]] = None,
        toggle_key: str = "o",
        *,
        capture_keyboard: bool = True,
        capture_gamepad: bool = True,
        axis_threshold: float = AXIS_THRESHOLD,
        autostart: bool = True,
    ) -> None:
        merged = dict(DEFAULT_KEY_BINDINGS)
        merged.update(bindings or {})
        unknown = set(merged) - set(CONTROL_CHANNELS)
        if unknown:
            raise ValueError(f"unknown control channels in bindings: {sorted(unknown)}")
        self.bindings: Dict[str, Tuple[str, ...]] = {
            ch: tuple(k.lower() for k in keys) for ch, keys in merged.items()
        }
        self.toggle_key = toggle_key.lower()
        self.capture_keyboard = capture_keyboard
        self.capture_gamepad = capture_gamepad
        self.axis_threshold = axis_threshold

        self._lock = threading.Lock()
        self._pressed: Set[str] = set()
        self._pad: Dict[str, float] = {}
        self._toggle_pending = False

        self._keyboard_listener: Optional[Any] = None
        self._gamepad_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._status_messages: List[str] = []

        if autostart:
            self.start()

    # ------------------------------------------------------------------
    # Lifecycle management
    # ------------------------------------------------------------------
    @property
    def active(self) -> bool:
        return self._keyboard_listener is not None or self._gamepad_thread is not None

    def start(self) -> None:
        if self.active:
            return
        self._stop_event.clear()
        self._prepare_keyboard()
        self._prepare_gamepad()
        for msg in self._status_messages:
            LOG.info("input: %s", msg)
        self._status_messages.clear()

    def stop(self) -> None:
        self._stop_event.set()
        if self._keyboard_listener is not None:
            with contextlib.suppress(Exception):
                self._keyboard_listener.stop()
            self._keyboard_listener = None
        if self._gamepad_thread is not None:
            self._gamepad_thread.join(timeout=0.5)
            self._gamepad_thread = None

    def _prepare_keyboard(self) -> None:
        if not self.capture_keyboard:
            self._status_messages.append("keyboard capture disabled by configuration")
            return
        if _pynput_keyboard is None:
            self._status_messages.append("pynput.keyboard unavailable; keyboard disabled")
            return
        self._keyboard_listener = _pynput_keyboard.Listener(
            on_press=self._on_key_press,
            on_release=self._on_key_release,
        )
        self._keyboard_listener.start()

    def _prepare_gamepad(self) -> None:
        if not self.capture_gamepad:
            self._status_messages.append("gamepad capture disabled by configuration")
            return
        if _inputs is None:
            self._status_messages.append("inputs library unavailable; gamepad disabled")
            return
        try:
            devices = list(_inputs.devices.gamepads)  # type: ignore[attr-defined]
        except Exception as exc:  # pragma: no cover - hardware dependent
            self._status_messages.append(f"gamepad discovery failed: {exc}")
            return
        if not devices:
            self._status_messages.append("no gamepad devices detected")
            return
        self._gamepad_thread = threading.Thread(
            target=self._gamepad_loop, name="gamepad-state", daemon=True
        )
        self._gamepad_thread.start()

    # ------------------------------------------------------------------
    # Provider API
    # ------------------------------------------------------------------
    def get_control_state(self, channel: str) -> bool:
        if channel not in self.bindings:
            raise KeyError(channel)
        if not self.active:
            raise ProviderUnavailable("no keyboard or gamepad backend running")
        with self._lock:
            if any(k in self._pressed for k in self.bindings[channel]):
                return True
            pad = dict(self._pad)
        return gamepad_channel(channel, pad, self.axis_threshold)

    def consume_toggle(self) -> bool:
        with self._lock:
            fired = self._toggle_pending
            self._toggle_pending = False
        return fired

    # ------------------------------------------------------------------
    # Keyboard callbacks
    # ------------------------------------------------------------------
    def _on_key_press(self, key) -> None:
        name = self._format_key(key)
        with self._lock:
            if name == self.toggle_key and name not in self._pressed:
                self._toggle_pending = True
            self._pressed.add(name)

    def _on_key_release(self, key) -> None:
        name = self._format_key(key)
        with self._lock:
            self._pressed.discard(name)

    # ------------------------------------------------------------------
    # Gamepad polling
    # ------------------------------------------------------------------
    def _on_gamepad_event(self, code: str, state: float) -> None:
        with self._lock:
            self._pad[code] = state

    def _gamepad_loop(self) -> None:  # pragma: no cover - hardware dependent
        assert _inputs is not None
        while not self._stop_event.is_set():
            try:
                events = _inputs.get_gamepad()  # type: ignore[attr-defined]
            except Exception as exc:
                LOG.warning("gamepad error: %s", exc)
                break
            for event in events:
                if getattr(event, "ev_type", "") == "Sync":
                    continue
                self._on_gamepad_event(getattr(event, "code", ""), getattr(event, "state", 0))
        LOG.info("gamepad loop stopped")

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------
    @staticmethod
    def _format_key(key: Any) -> str:
        try:
            char = key.char  # type: ignore[attr-defined]
        except AttributeError:
            char = None
        if char:
            return char.lower()
        name = getattr(key, "name", None)
        return (name or str(key)).lower()
