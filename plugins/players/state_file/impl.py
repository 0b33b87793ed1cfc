"""Avatar state exported by the game side as a small JSON document.

The game-side exporter rewrites the file every frame, e.g.::

    {"spawned": true, "x": 12.5, "y": 30.25, "health": 5}

A missing or half-written file, ``"spawned": false`` or absent keys all mean
the avatar is unavailable right now.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from config.paths import get_paths
from core.providers import ProviderUnavailable


def _default_state_path() -> Path:
    env = os.getenv("HKBOT_STATE_FILE")
    return Path(env) if env else get_paths().save_root / "player_state.json"


class StateFileProvider:
    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path) if path is not None else _default_state_path()
        self._cache_key: Optional[Tuple[int, int]] = None
        self._cache: Dict[str, Any] = {}

    def _snapshot(self) -> Dict[str, Any]:
        try:
            st = self.path.stat()
            key = (st.st_mtime_ns, st.st_size)
            if key != self._cache_key:
                data = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(data, dict):
                    raise ProviderUnavailable(f"unexpected state document in {self.path}")
                self._cache, self._cache_key = data, key
        except (OSError, ValueError) as exc:
            raise ProviderUnavailable(f"player state unreadable: {exc}") from exc
        if not self._cache.get("spawned", True):
            raise ProviderUnavailable("avatar not spawned")
        return self._cache

    def get_avatar_position(self) -> Tuple[float, float]:
        state = self._snapshot()
        try:
            return float(state["x"]), float(state["y"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailable(f"no avatar position in {self.path}") from exc

    def get_avatar_health(self) -> int:
        state = self._snapshot()
        try:
            return int(state["health"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailable(f"no avatar health in {self.path}") from exc
