# config/paths.py
"""
Centralized, cross-platform path management for the hkbot recorder.

Design goals
- Single source of truth for the save root and per-session file names
- Honors these env vars:
    HKBOT_SAVE_ROOT, HKBOT_LOGS_ROOT
- Sensible OS defaults when env vars are not provided
- Safe directory creation with writeability checks
- Session layout helpers (CSV, frames directory, metadata sidecar)
"""

from __future__ import annotations

import errno
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


CSV_PREFIX = "hk_actions_session_"
FRAMES_PREFIX = "frames_session_"
META_PREFIX = "meta_session_"


# ---------- OS defaults (used only if env vars not set) ----------

def _platform_default_base() -> Path:
    """
    Returns an OS-specific base directory for user data, following conventions:
    - Windows: %LOCALAPPDATA%/HollowKnightAIData
    - macOS:   ~/Library/Application Support/HollowKnightAIData
    - Linux:   ~/.local/share/hkbot
    """
    if sys.platform.startswith("win"):
        base = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(base) / "HollowKnightAIData"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "HollowKnightAIData"
    else:
        # Linux / other POSIX
        return Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share")) / "hkbot"


# ---------- Environment overrides ----------

def _env_or_default_save_root() -> Path:
    return Path(os.getenv("HKBOT_SAVE_ROOT", _platform_default_base() / "data"))


def _env_or_default_logs_root() -> Path:
    return Path(os.getenv("HKBOT_LOGS_ROOT", _platform_default_base() / "logs"))


# ---------- Core dataclass ----------

@dataclass(frozen=True)
class Paths:
    """
    Canonical path container for a recorder instance.

    Most callers should obtain a singleton instance via get_paths(); the
    session controller builds one from its configured save root.
    """
    save_root: Path
    logs_root: Path

    # ----- factories -----

    @staticmethod
    def from_env() -> "Paths":
        return Paths(_env_or_default_save_root(), _env_or_default_logs_root())

    @staticmethod
    def for_save_root(save_root: Union[str, Path, None]) -> "Paths":
        """
        Paths rooted at ``save_root``; falls back to the environment defaults
        when ``save_root`` is None.
        """
        if save_root is None:
            return Paths.from_env()
        return Paths(Path(save_root), _env_or_default_logs_root())

    # ----- session layout helpers -----

    def session_csv_path(self, session_id: str) -> Path:
        return self.save_root / f"{CSV_PREFIX}{session_id}.csv"

    def session_frames_dir(self, session_id: str) -> Path:
        return self.save_root / f"{FRAMES_PREFIX}{session_id}"

    def session_meta_path(self, session_id: str) -> Path:
        return self.save_root / f"{META_PREFIX}{session_id}.json"

    def session_exists(self, session_id: str) -> bool:
        """True if any artifact of ``session_id`` is already on disk."""
        return any(
            p.exists()
            for p in (
                self.session_csv_path(session_id),
                self.session_frames_dir(session_id),
                self.session_meta_path(session_id),
            )
        )

    def list_session_ids(self) -> list[str]:
        """Session ids found under the save root, oldest first."""
        if not self.save_root.is_dir():
            return []
        ids = [
            p.name[len(CSV_PREFIX):-len(".csv")]
            for p in self.save_root.glob(f"{CSV_PREFIX}*.csv")
        ]
        return sorted(ids)

    # ----- setup / validation -----

    def ensure_all(self) -> None:
        """
        Create the roots used by the recorder.
        """
        for p in [self.save_root, self.logs_root]:
            p.mkdir(parents=True, exist_ok=True)

    def verify_writeable(self) -> None:
        """
        Raise OSError if the save root is not writeable.
        """
        p = self.save_root
        try:
            p.mkdir(parents=True, exist_ok=True)
            test = p / ".write_test"
            test.write_text("ok", encoding="utf-8")
            test.unlink(missing_ok=True)
        except Exception as e:
            raise OSError(errno.EACCES, f"Not writeable: {p}", e)


# ---------- Singleton access ----------

_paths_singleton: Optional[Paths] = None

def get_paths(force_refresh: bool = False) -> Paths:
    """
    Return a cached Paths instance built from the environment.
    """
    global _paths_singleton
    if force_refresh or _paths_singleton is None:
        _paths_singleton = Paths.from_env()
        _paths_singleton.ensure_all()
    return _paths_singleton


# ---------- CLI sanity check ----------

if __name__ == "__main__":
    p = get_paths(force_refresh=True)
    try:
        p.verify_writeable()
    except OSError as e:
        print(f"[WARN] Writeability check failed: {e}")

    print("Save root:          ", p.save_root)
    print("Logs root:          ", p.logs_root)
    print("Sessions:           ", ", ".join(p.list_session_ids()) or "<none>")
