"""Console output helpers (color and prefixed messages).

Used for the handful of lines an operator reads at the end of a run: the
batch summary, source listings and startup failures. Everything else goes
through :mod:`logging`.

Colors are only emitted when stdout is a TTY and ``NO_COLOR`` is unset;
scheduled runs usually redirect output to a file.
"""

from __future__ import annotations

import os
import sys

RESET = "\033[0m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"


def supports_color() -> bool:
    """Return True when ANSI colors are likely supported."""
    try:
        if os.environ.get("NO_COLOR"):
            return False
        return bool(getattr(sys.stdout, "isatty", lambda: False)())
    except Exception:
        return False


def c(s: str, color: str) -> str:
    return f"{color}{s}{RESET}" if supports_color() else s


def info(msg: str) -> None:
    print(c("ℹ ", BLUE) + msg)


def ok(msg: str) -> None:
    print(c("✓ ", GREEN) + msg)


def warn(msg: str) -> None:
    print(c("! ", YELLOW) + msg)


def err(msg: str) -> None:
    print(c("✗ ", RED) + msg)


__all__ = [
    "supports_color",
    "c",
    "info",
    "ok",
    "warn",
    "err",
    "RESET",
    "BOLD",
    "RED",
    "GREEN",
    "YELLOW",
    "BLUE",
]
