"""Argument parsing.

Delegates option groups to argsets/ modules and returns a plain
``argparse.Namespace``.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .argsets import add_general_args, add_logging_args


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="auto-updater",
        description=(
            "Update locally installed applications from pluggable remote "
            "sources. Meant to be run periodically, e.g. from a scheduled task."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    add_general_args(p)
    add_logging_args(p)
    return p


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments (defaults to ``sys.argv[1:]``)."""
    if argv is None:
        argv = sys.argv[1:]
    return build_parser().parse_args(argv)


__all__ = ["build_parser", "parse_args"]
