"""Operator commands run before and after an update.

A command is a program plus an optional argument string. Commands in a
phase run one after another, each awaited to completion. A failing command
marked ``safe`` is logged and the phase continues; any other failure
aborts the phase and, with it, the target.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .errors import CommandFailure, ConfigurationError
from .logging_utils import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandSpec:
    program: str
    arguments: Optional[str] = None
    safe: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CommandSpec":
        if not isinstance(data, Mapping):
            raise ConfigurationError("a command must be an object")
        program = data.get("command")
        if not isinstance(program, str) or not program.strip():
            raise ConfigurationError("a command needs a non-empty 'command'")
        arguments = data.get("arguments")
        if arguments is not None and not isinstance(arguments, str):
            raise ConfigurationError("'arguments' must be a string or null")
        safe = data.get("safe", False)
        if not isinstance(safe, bool):
            raise ConfigurationError("'safe' must be true or false")
        return cls(program=program.strip(), arguments=arguments, safe=safe)

    def to_dict(self) -> dict:
        return {"command": self.program, "arguments": self.arguments, "safe": self.safe}

    def argv(self) -> List[str]:
        args = shlex.split(self.arguments, posix=os.name != "nt") if self.arguments else []
        return [self.program, *args]


def run_command(
    command: CommandSpec,
    *,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> subprocess.CompletedProcess:
    """Run ``command`` to completion with output captured.

    Raises :class:`CommandFailure` when it cannot be started or exits non-zero.
    """
    try:
        result = runner(command.argv(), capture_output=True, text=True)
    except (OSError, ValueError) as e:
        raise CommandFailure(command.program, reason=str(e)) from e
    if result.stdout:
        logger.debug("%s stdout:\n%s", command.program, result.stdout.rstrip())
    if result.stderr:
        logger.debug("%s stderr:\n%s", command.program, result.stderr.rstrip())
    if result.returncode != 0:
        raise CommandFailure(command.program, result.returncode, result.stderr or "")
    return result


def run_commands(
    commands: Sequence[CommandSpec],
    phase: str,
    *,
    run: Callable[[CommandSpec], Any] = run_command,
) -> int:
    """Run a phase's commands in order; return how many succeeded."""
    succeeded = 0
    for index, command in enumerate(commands):
        log_event(
            "command_start",
            f"Running {phase} command #{index}: {command.program}",
            level=logging.DEBUG,
            phase=phase,
        )
        try:
            run(command)
        except CommandFailure as e:
            if not command.safe:
                raise
            log_event(
                "command_failed_safe",
                f"{phase} command #{index} failed and was skipped: {e}",
                level=logging.WARNING,
                phase=phase,
                error_type=type(e).__name__,
            )
            continue
        succeeded += 1
    return succeeded


__all__ = ["CommandSpec", "run_command", "run_commands"]
