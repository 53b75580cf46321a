from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .args import parse_args
from .config import ensure_options_file, load_targets, write_example_files
from .errors import ConfigurationError
from .io_safe import default_home, log_dir, options_path
from .logging_utils import configure_logging, log_event
from .orchestrator import BatchSummary, UpdaterContext, run_batch
from .sourcesets import build_default_registry
from .ui import err, info, ok, warn
from .utils import get_version

EXIT_OK = 0
EXIT_TARGET_ERRORS = 1
EXIT_STARTUP_FAILURE = 2


def report_summary(summary: BatchSummary) -> None:
    if summary.errors:
        warn(
            f"Finished with {summary.errors} error(s), {summary.skips} skip(s) and "
            f"{summary.successes} update(s); review the log for details."
        )
    else:
        ok(f"Finished with {summary.successes} update(s) and {summary.skips} skip(s).")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI tool; returns the process exit code."""
    args = parse_args(argv)
    if args.version:
        print(get_version())
        return EXIT_OK

    home = Path(args.home).expanduser() if args.home else default_home()
    log_file = args.log_file
    if not log_file and not args.no_log_file:
        log_file = str(log_dir(home) / "auto-updater.log")
    try:
        configure_logging(
            args.verbose, log_file, args.log_json, args.log_level, args.log_syslog
        )
    except OSError as e:
        err(f"Could not set up logging: {e}")
        return EXIT_STARTUP_FAILURE

    registry = build_default_registry()
    if args.list_sources:
        for name, factory in registry.describe():
            info(name)
            description = (getattr(factory, "description", "") or "").strip()
            if description:
                print(description)
        return EXIT_OK

    log_event("run_start", f"Starting auto-updater {get_version()}")
    config_path = Path(args.config).expanduser() if args.config else options_path(home)
    try:
        if ensure_options_file(config_path):
            log_event(
                "options_created",
                f"Options file did not exist, created an empty one at {config_path}",
                level=logging.WARNING,
                path=str(config_path),
            )
        if not args.no_examples:
            for created in write_example_files(home, registry):
                log_event(
                    "example_created",
                    f"Created example file {created}",
                    level=logging.DEBUG,
                    path=str(created),
                )
        targets = load_targets(config_path)
    except (ConfigurationError, OSError) as e:
        log_event(
            "startup_failed",
            f"Could not load options: {e}",
            level=logging.CRITICAL,
            error_type=type(e).__name__,
        )
        err(f"{e}. Repair the options file and try again.")
        return EXIT_STARTUP_FAILURE

    if not targets:
        info(f"No targets configured in {config_path}; nothing to update.")
        return EXIT_OK

    context = UpdaterContext(registry=registry, log_directory=log_dir(home))
    summary = run_batch(context, targets)
    report_summary(summary)
    return EXIT_OK if summary.ok else EXIT_TARGET_ERRORS


__all__ = ["main", "report_summary", "EXIT_OK", "EXIT_TARGET_ERRORS", "EXIT_STARTUP_FAILURE"]
