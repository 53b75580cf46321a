"""Exception types raised while updating targets.

Every error here is caught at the per-target boundary in
:mod:`auto_updater.orchestrator`; only configuration errors found at
startup end a run early.
"""

from __future__ import annotations

from typing import Optional


class UpdaterError(Exception):
    """Base class for all auto-updater failures."""


class ConfigurationError(UpdaterError):
    """Options are missing or malformed."""


class InvalidConfigurationError(ConfigurationError):
    """A source rejected the options it was given."""


class UnknownSourceError(UpdaterError):
    """A target names a source that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No update source registered under the name '{name}'")
        self.name = name


class SourceNotConfiguredError(UpdaterError):
    """A source was used before ``configure`` was called."""


class RemoteUnavailableError(UpdaterError):
    """The remote system could not be queried."""


class TruncatedDataError(UpdaterError):
    """A byte stream ended before a full fingerprint could be read."""


class CommandFailure(UpdaterError):
    """A pre/post update command could not be launched or exited non-zero."""

    def __init__(
        self,
        program: str,
        returncode: Optional[int] = None,
        stderr: str = "",
        reason: str = "",
    ) -> None:
        if returncode is None:
            msg = f"Command '{program}' could not be started: {reason}"
        else:
            msg = f"Command '{program}' exited with code {returncode}"
            tail = stderr.strip().splitlines()[-1:] if stderr else []
            if tail:
                msg += f": {tail[0]}"
        super().__init__(msg)
        self.program = program
        self.returncode = returncode
        self.stderr = stderr


__all__ = [
    "UpdaterError",
    "ConfigurationError",
    "InvalidConfigurationError",
    "UnknownSourceError",
    "SourceNotConfiguredError",
    "RemoteUnavailableError",
    "TruncatedDataError",
    "CommandFailure",
]
