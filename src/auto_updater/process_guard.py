"""Stop running instances of a managed process before its files change.

Process enumeration and termination go through ``psutil``. The seams
(``find`` and ``wait``) are parameters so tests can drive the guard with
fake processes.
"""

from __future__ import annotations

import enum
import logging
import os
import sys
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import psutil

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 5.0


class GuardDecision(enum.Enum):
    PROCEED = "proceed"
    BLOCKED = "blocked"


def _normalize(name: str) -> str:
    name = (name or "").strip()
    if name.lower().endswith(".exe"):
        name = name[:-4]
    if sys.platform.startswith("win"):
        name = name.lower()
    return name


def find_processes(
    process_name: str, process_iter: Optional[Callable[..., Iterable]] = None
) -> List[psutil.Process]:
    """Return running processes named ``process_name`` (excluding ourselves).

    A trailing ``.exe`` is ignored on both sides; names compare
    case-insensitively on Windows.
    """
    wanted = _normalize(process_name)
    if not wanted:
        return []
    iterate = process_iter or psutil.process_iter
    own_pid = os.getpid()
    matches = []
    for proc in iterate(["name"]):
        try:
            info = getattr(proc, "info", None) or {}
            name = info.get("name") or proc.name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if proc.pid != own_pid and _normalize(name) == wanted:
            matches.append(proc)
    return matches


def ensure_stopped(
    process_name: str,
    permitted: bool,
    *,
    grace_period: float = DEFAULT_GRACE_PERIOD,
    find: Callable[[str], Sequence] = find_processes,
    wait: Callable[..., Tuple[list, list]] = psutil.wait_procs,
) -> GuardDecision:
    """Make sure ``process_name`` is not running.

    Returns :attr:`GuardDecision.PROCEED` when nothing is running or every
    match was stopped, and :attr:`GuardDecision.BLOCKED` when matches exist
    but killing them is not permitted. Matches get a graceful ``terminate``
    first; whatever is still alive after ``grace_period`` seconds is killed.
    """
    procs = list(find(process_name))
    logger.debug("Found %d running process(es) named %s", len(procs), process_name)
    if not procs:
        return GuardDecision.PROCEED
    if not permitted:
        return GuardDecision.BLOCKED

    signalled = []
    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            continue
        signalled.append(proc)

    _, alive = wait(signalled, timeout=grace_period)
    for proc in alive:
        logger.warning(
            "Process %s (pid %s) ignored the shutdown request; killing it",
            process_name,
            proc.pid,
        )
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass
    return GuardDecision.PROCEED


__all__ = [
    "DEFAULT_GRACE_PERIOD",
    "GuardDecision",
    "find_processes",
    "ensure_stopped",
]
