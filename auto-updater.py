#!/usr/bin/env python3
"""Launcher for auto-updater.

Lets the tool run straight from a checkout (e.g. from a scheduled task
pointing at this file) as well as from an installed package.

 - Prefer static imports first so that packagers like PyInstaller can detect
   and bundle the ``auto_updater`` package without additional hooks.
 - Fall back to adding ``./src`` to ``sys.path`` when running the
   repository directly.
 - Re-export the main building blocks so scripts can import them from this
   file.
"""

import importlib
import sys
from pathlib import Path


def _load_modules():
    """Locate and import the packaged modules.

    Returns a tuple of (main_flow_module, orchestrator_module).
    """
    try:
        from auto_updater import main_flow as _main_flow  # type: ignore
        from auto_updater import orchestrator as _orchestrator  # type: ignore

        return _main_flow, _orchestrator
    except ImportError:
        pass

    _src = Path(__file__).resolve().parent / "src"
    if _src.exists():
        src_str = str(_src)
        if src_str not in sys.path:
            sys.path.insert(0, src_str)

    _main_flow = importlib.import_module("auto_updater.main_flow")
    _orchestrator = importlib.import_module("auto_updater.orchestrator")
    return _main_flow, _orchestrator


_main_flow, _orchestrator = _load_modules()

main = _main_flow.main
report_summary = _main_flow.report_summary
UpdaterContext = _orchestrator.UpdaterContext
BatchSummary = _orchestrator.BatchSummary
TargetOutcome = _orchestrator.TargetOutcome
update_target = _orchestrator.update_target
run_batch = _orchestrator.run_batch

__all__ = [
    "main",
    "report_summary",
    "UpdaterContext",
    "BatchSummary",
    "TargetOutcome",
    "update_target",
    "run_batch",
]


if __name__ == "__main__":  # pragma: no cover
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print()
        print("Aborted by user.")
        sys.exit(130)
