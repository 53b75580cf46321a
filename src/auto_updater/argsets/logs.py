"""Argument definitions: logging flags."""

from __future__ import annotations

import argparse


def add_logging_args(p: argparse.ArgumentParser) -> None:
    logs = p.add_argument_group("Logging")
    logs.add_argument(
        "-v", "--verbose", action="store_true", help="Enable DEBUG logging"
    )
    logs.add_argument(
        "-ll",
        "--log-level",
        "--level",
        choices=["debug", "info", "warning", "error"],
        help="Explicit log level (overrides --verbose)",
    )
    logs.add_argument(
        "-f",
        "--log-file",
        help="Write logs to a file (default <home>/logs/auto-updater.log)",
    )
    logs.add_argument(
        "--no-log-file",
        action="store_true",
        help="Do not write the default log file",
    )
    logs.add_argument(
        "-J", "--log-json", action="store_true", help="Also log JSON to stdout"
    )
    logs.add_argument(
        "--log-syslog", action="store_true", help="Also log to the local syslog"
    )


__all__ = ["add_logging_args"]
