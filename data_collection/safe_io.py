"""Filesystem helpers shared by the CSV and frame writers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, TypeVar

LOG = logging.getLogger(__name__)

T = TypeVar("T")


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def write_with_dir_retry(directory: Path, write: Callable[[], T]) -> T:
    """Run ``write`` with ``directory`` present.

    The directory is (re)created before the write.  If it disappears between
    that check and the write, it is recreated and the write is retried once;
    any other ``OSError`` propagates.
    """
    if not directory.is_dir():
        LOG.warning("Directory missing, creating: %s", directory)
    ensure_dir(directory)
    try:
        return write()
    except FileNotFoundError:
        LOG.warning("Directory vanished during write, recreating: %s", directory)
        ensure_dir(directory)
        return write()
