from __future__ import annotations
import ulid
from datetime import datetime
from typing import Callable
SESSION_TS = "%Y%m%d_%H%M%S"
def new_ulid() -> str: return str(ulid.new())
def session_timestamp(now: datetime) -> str: return now.strftime(SESSION_TS)
def new_session_id(now: datetime, taken: Callable[[str], bool]) -> str:
    """Timestamp id for a new session, suffixed ``_1``, ``_2``... while ``taken(id)`` holds."""
    base = session_timestamp(now)
    sid, n = base, 0
    while taken(sid):
        n += 1
        sid = f"{base}_{n}"
    return sid
