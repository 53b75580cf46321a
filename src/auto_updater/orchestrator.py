"""Per-target update workflow and the batch loop.

For one target the steps run strictly in order:

    resolve source -> load fingerprint -> configure -> check
      -> (up to date: skip)
      -> guard process -> (blocked: skip)
      -> pre-commands -> cleanup -> perform update
      -> (no fingerprint: error)
      -> persist fingerprint -> post-commands -> success

Any exception raised along the way is caught at the target boundary,
logged and counted as an error; the batch then moves on to the next
target. The marker file is only rewritten after a successful update.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from .cleanup import CleanupReport, cleanup_directory, cleanup_listed
from .commands import CommandSpec, run_command, run_commands
from .config import TargetConfig
from .errors import TruncatedDataError
from .fingerprint import UNKNOWN, VersionFingerprint, marker_path
from .logging_utils import log_event, target_logger
from .process_guard import GuardDecision, ensure_stopped
from .sourcesets.registry import SourceRegistry, build_default_registry


class TargetOutcome(enum.Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class BatchSummary:
    successes: int = 0
    skips: int = 0
    errors: int = 0

    def record(self, outcome: TargetOutcome) -> None:
        if outcome is TargetOutcome.SUCCESS:
            self.successes += 1
        elif outcome is TargetOutcome.SKIPPED:
            self.skips += 1
        else:
            self.errors += 1

    @property
    def total(self) -> int:
        return self.successes + self.skips + self.errors

    @property
    def ok(self) -> bool:
        return self.errors == 0


@dataclass
class UpdaterContext:
    """Process-wide collaborators shared by every target in a run.

    Built once at startup; tests construct their own with fakes for the
    process guard and command runner.
    """

    registry: SourceRegistry = field(default_factory=build_default_registry)
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("auto_updater")
    )
    log_directory: Optional[Path] = None
    guard: Callable[[str, bool], GuardDecision] = ensure_stopped
    run_command: Callable[[CommandSpec], object] = run_command


def load_installed_fingerprint(
    target_directory: Path, logger: Optional[logging.Logger] = None
) -> VersionFingerprint:
    """Read the marker in ``target_directory``; ``UNKNOWN`` when absent or damaged."""
    path = marker_path(target_directory)
    if not path.is_file():
        log_event(
            "fingerprint_missing",
            "No versionhash file for the target, assuming unknown version",
            logger=logger,
            path=str(path),
        )
        return UNKNOWN
    try:
        return VersionFingerprint.load(path)
    except (OSError, TruncatedDataError) as e:
        log_event(
            "fingerprint_unreadable",
            f"Could not read {path} ({e}); assuming unknown version",
            level=logging.WARNING,
            logger=logger,
            path=str(path),
            error_type=type(e).__name__,
        )
        return UNKNOWN


def _log_cleanup(event: str, report: CleanupReport, logger: logging.Logger) -> None:
    log_event(
        event,
        f"Cleanup removed {len(report.removed_files)} file(s) and "
        f"{len(report.removed_dirs)} dir(s) with {len(report.failures)} failure(s)",
        level=logging.WARNING if report.failures else logging.DEBUG,
        logger=logger,
    )


def _clean_target(target: TargetConfig, logger: logging.Logger) -> None:
    if target.cleanup_all:
        log_event("cleanup_all", "Cleaning up target directory", level=logging.DEBUG, logger=logger)
        report = cleanup_directory(
            target.target_directory,
            target.target_directory,
            set(),
            target.cleanup_exceptions,
        )
        _log_cleanup("cleanup_all_done", report, logger)
    if target.cleanup_list:
        log_event(
            "cleanup_list",
            "Cleaning up entries from the cleanup list",
            level=logging.DEBUG,
            logger=logger,
        )
        report = cleanup_listed(target.cleanup_list, target.target_directory)
        _log_cleanup("cleanup_list_done", report, logger)


def update_target(context: UpdaterContext, target: TargetConfig) -> TargetOutcome:
    """Run the whole workflow for one target and report how it ended.

    Never raises for failures of the target itself.
    """
    log = context.logger
    fields = {
        "source": target.source_name,
        "target": str(target.target_directory),
        "target_process": target.process_name,
    }
    try:
        log_event(
            "target_start",
            f"Attempting to update {target.process_name} via {target.source_name}",
            logger=log,
            **fields,
        )
        source = context.registry.create(target.source_name)

        target.target_directory.mkdir(parents=True, exist_ok=True)
        installed = load_installed_fingerprint(target.target_directory, log)

        log_event(
            "source_configure",
            f"Configuring {target.source_name} for {target.process_name}",
            level=logging.DEBUG,
            logger=log,
            **fields,
        )
        source.configure(target.source_options)

        if not source.check_for_update(installed):
            log_event(
                "target_up_to_date",
                "Local version is up to date",
                logger=log,
                **fields,
            )
            return TargetOutcome.SKIPPED

        decision = context.guard(target.process_name, target.permit_kill_process)
        if decision is GuardDecision.BLOCKED:
            log_event(
                "target_blocked",
                f"{target.process_name} is running and killing it is not permitted; skipping",
                level=logging.WARNING,
                logger=log,
                **fields,
            )
            return TargetOutcome.SKIPPED

        run_commands(target.before_update_commands, "pre-update", run=context.run_command)

        _clean_target(target, log)

        log_event(
            "update_start",
            f"Updating {target.process_name} via {target.source_name}",
            logger=log,
            **fields,
        )
        source_log = target_logger(
            target.source_name, target.process_name, context.log_directory
        )
        new_fingerprint = source.perform_update(source_log, target.target_directory)
        if new_fingerprint is None or new_fingerprint.is_unknown:
            log_event(
                "update_failed",
                "The update did not complete; the versionhash file was left untouched",
                level=logging.ERROR,
                logger=log,
                **fields,
            )
            return TargetOutcome.ERROR

        new_fingerprint.save(marker_path(target.target_directory))
        log_event(
            "fingerprint_saved",
            f"Wrote versionhash {new_fingerprint}",
            level=logging.DEBUG,
            logger=log,
            fingerprint=str(new_fingerprint),
            **fields,
        )

        run_commands(target.after_update_commands, "post-update", run=context.run_command)

        log_event(
            "target_updated",
            f"Successfully updated {target.process_name} via {target.source_name}",
            logger=log,
            **fields,
        )
        return TargetOutcome.SUCCESS
    except Exception as e:
        log_event(
            "target_error",
            f"An error occurred while updating {target.process_name} via "
            f"{target.source_name}: {e} ({type(e).__name__})",
            level=logging.ERROR,
            logger=log,
            exc_info=True,
            error_type=type(e).__name__,
            **fields,
        )
        return TargetOutcome.ERROR


def run_batch(context: UpdaterContext, targets: Iterable[TargetConfig]) -> BatchSummary:
    """Update every target in order and tally the outcomes."""
    summary = BatchSummary()
    for target in targets:
        summary.record(update_target(context, target))
    level = logging.WARNING if summary.errors else logging.INFO
    log_event(
        "batch_finished",
        f"Finished with {summary.successes} update(s), {summary.skips} skip(s) "
        f"and {summary.errors} error(s)",
        level=level,
        logger=context.logger,
        successes=summary.successes,
        skips=summary.skips,
        errors=summary.errors,
    )
    return summary


__all__ = [
    "TargetOutcome",
    "BatchSummary",
    "UpdaterContext",
    "load_installed_fingerprint",
    "update_target",
    "run_batch",
]
