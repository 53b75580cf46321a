"""Argument definitions: options file, home directory and informational flags."""

from __future__ import annotations

import argparse


def add_general_args(p: argparse.ArgumentParser) -> None:
    """Attach general arguments to the parser.

    Options
    - ``--config``: path of the options file (default ``<home>/options.json``)
    - ``--home``: updater home directory (default from ``AUTO_UPDATER_HOME``
      or the platform config directory)
    - ``--no-examples``: do not write README/example files
    - ``--list-sources``: print the registered update sources and exit
    - ``--version``: print the tool version and exit
    """
    general = p.add_argument_group("General")
    general.add_argument(
        "-c",
        "--config",
        help="Options file listing the targets to update",
    )
    general.add_argument(
        "-H",
        "--home",
        help="Home directory for options, examples and logs",
    )
    general.add_argument(
        "--no-examples",
        action="store_true",
        help="Do not create README and example files in the home directory",
    )
    general.add_argument(
        "-l",
        "--list-sources",
        action="store_true",
        help="List the available update sources and exit",
    )
    general.add_argument(
        "-V", "--version", action="store_true", help="Print version and exit"
    )


__all__ = ["add_general_args"]
