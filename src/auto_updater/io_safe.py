"""Safe I/O helpers (atomic writes and well-known paths).

This module provides the small set of file helpers the updater relies on:
 - Well-known paths under the updater home directory
 - Atomic byte and text writes with fsync, so a reader never observes a
   half-written marker or options file
 - Create-only writes for generated example files

Design goals
- Only write where explicitly requested; never overwrite operator files
  that are meant to be edited by hand.
- Prefer atomic renames and create parent directories as needed.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Optional


def default_home() -> Path:
    """Return the updater home directory.

    Lookup order: ``AUTO_UPDATER_HOME``, then ``%APPDATA%\\auto-updater`` on
    Windows, then ``$XDG_CONFIG_HOME/auto-updater`` (``~/.config`` when unset).
    """
    explicit = os.environ.get("AUTO_UPDATER_HOME")
    if explicit:
        return Path(explicit)
    if sys.platform.startswith("win") and os.environ.get("APPDATA"):
        return Path(os.environ["APPDATA"]) / "auto-updater"
    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(xdg) / "auto-updater"


def options_path(home: Optional[Path] = None) -> Path:
    return (home or default_home()) / "options.json"


def log_dir(home: Optional[Path] = None) -> Path:
    return (home or default_home()) / "logs"


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically replace ``path`` with ``data``.

    Writes to a temporary file in the same directory, fsyncs it when
    possible, then renames into place. Propagates write errors after
    cleaning up the temporary file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmppath = tempfile.mkstemp(
        prefix=path.name + ".", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError:  # pragma: no cover
                pass
        os.replace(tmppath, path)
    except BaseException:
        try:
            os.remove(tmppath)
        except OSError:  # pragma: no cover
            pass
        raise


def atomic_write(path: Path, text: str) -> None:
    """Atomically write UTF-8 text to ``path`` (``\\n`` line endings)."""
    atomic_write_bytes(path, text.encode("utf-8"))


def write_if_missing(path: Path, text: str) -> bool:
    """Write ``text`` to ``path`` only when it does not exist yet.

    Returns ``True`` when the file was created.
    """
    path = Path(path)
    if path.exists():
        return False
    atomic_write(path, text)
    return True


__all__ = [
    "default_home",
    "options_path",
    "log_dir",
    "atomic_write_bytes",
    "atomic_write",
    "write_if_missing",
]
