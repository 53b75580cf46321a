"""Logging configuration helpers (human + JSON + file + syslog).

This module centralizes logging setup for unattended runs:
 - Plain human-readable logs to stderr
 - Optional JSON logs to stdout (for piping/collection)
 - Optional file logs
 - Optional local syslog (scheduled runs rarely have a terminal)
 - Per-source loggers for update backends, each teeing into its own file
   under the log directory

Design goals
 - stdlib logging only
 - Idempotent configuration for tests and repeated calls
 - Never let a logging failure break an update run
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional, Union

_STRUCTURED_FIELDS = (
    "event",
    "source",
    "target",
    "target_process",
    "phase",
    "path",
    "fingerprint",
    "error_type",
    "successes",
    "skips",
    "errors",
)

_HUMAN_FORMAT = "%(levelname)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """Minimal JSON formatter for structured log collection.

    Emits an object with ``level`` and ``message`` plus any structured
    fields set via ``extra=...`` (see ``_STRUCTURED_FIELDS``).
    """

    def format(self, record):
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for k in _STRUCTURED_FIELDS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _level_from(verbose: bool, log_level: Optional[str]) -> int:
    if log_level:
        return {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }.get(log_level.lower(), logging.INFO)
    return logging.DEBUG if verbose else logging.INFO


def _syslog_address() -> Union[str, tuple]:
    for candidate in ("/dev/log", "/var/run/syslog"):
        if os.path.exists(candidate):
            return candidate
    return ("localhost", logging.handlers.SYSLOG_UDP_PORT)


def configure_logging(
    verbose: bool,
    log_file: Optional[str] = None,
    log_json: bool = False,
    log_level: Optional[str] = None,
    log_syslog: bool = False,
) -> None:
    """Configure the root logger according to CLI flags.

    Parameters
    - ``verbose``: When ``True``, sets level to ``DEBUG`` (unless
      ``log_level`` overrides). Otherwise defaults to ``INFO``; an updater
      run is quiet enough that progress lines are useful by default.
    - ``log_file``: Optional path to tee logs to a file.
    - ``log_json``: When ``True``, also emit JSON lines to stdout.
    - ``log_level``: Optional explicit level name (debug, info, warning, error).
    - ``log_syslog``: When ``True``, also send records to the local syslog.

    Handlers previously added by this function are removed and closed first
    so repeated calls never duplicate output.
    """
    level = _level_from(verbose, log_level)

    logger = logging.getLogger()
    logger.setLevel(level)

    for h in list(logger.handlers):
        if getattr(h, "_added_by_configure_logging", False):
            logger.removeHandler(h)
            h.close()

    handlers = []

    stream = logging.StreamHandler()
    stream.setFormatter(logging.Formatter(_HUMAN_FORMAT))
    handlers.append(stream)

    if log_json:
        json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(JSONFormatter())
        handlers.append(json_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(fh)

    if log_syslog:
        try:
            syslog = logging.handlers.SysLogHandler(address=_syslog_address())
        except OSError as e:
            logging.getLogger(__name__).warning("Syslog unavailable: %s", e)
        else:
            syslog.setFormatter(
                logging.Formatter("auto-updater: [%(levelname)s] %(message)s")
            )
            handlers.append(syslog)

    for handler in handlers:
        handler.setLevel(level)
        setattr(handler, "_added_by_configure_logging", True)
        logger.addHandler(handler)


def log_event(
    event: str,
    message: Optional[str] = None,
    level: int = logging.INFO,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    exc_info: bool = False,
    **fields,
) -> None:
    """Emit a structured event log at the given level.

    ``message`` defaults to the event name. Common ``fields`` include
    ``source``, ``target``, ``target_process``, ``phase`` and
    ``error_type``. The function never raises.
    """
    try:
        (logger or logging.getLogger("auto_updater")).log(
            level,
            message or event,
            exc_info=exc_info,
            extra={"event": event, **fields},
        )
    except Exception:
        # Never let logging break an update run
        pass


def target_logger(
    source_name: str, process_name: str, log_directory: Optional[Path] = None
) -> logging.LoggerAdapter:
    """Return the logger handed to a source's ``perform_update``.

    Records carry ``source`` and ``target_process`` fields, propagate to the
    root handlers, and, when ``log_directory`` is given, are also written
    to ``<log_directory>/<source_name>/updater.log``.
    """
    logger = logging.getLogger(f"auto_updater.source.{source_name}")
    if log_directory is not None:
        path = (Path(log_directory) / source_name / "updater.log").resolve()
        present = any(
            isinstance(h, logging.FileHandler)
            and os.path.abspath(h.baseFilename) == str(path)
            for h in logger.handlers
        )
        if not present:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fh = logging.FileHandler(path, encoding="utf-8")
            except OSError as e:
                logging.getLogger(__name__).warning(
                    "Could not open source log file %s: %s", path, e
                )
            else:
                fh.setFormatter(
                    logging.Formatter(
                        "%(asctime)s [%(levelname)s] "
                        "[source: %(source)s, process: %(target_process)s] %(message)s"
                    )
                )
                logger.addHandler(fh)
    return logging.LoggerAdapter(
        logger, {"source": source_name, "target_process": process_name}
    )


__all__ = ["configure_logging", "log_event", "target_logger", "JSONFormatter"]
