"""The update source contract.

Every backend the orchestrator can drive implements :class:`UpdateSource`.
An instance is single use: it is created fresh for one target, configured
once, then asked at most once to check and at most once to update.
"""

from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..errors import SourceNotConfiguredError
from ..fingerprint import VersionFingerprint

Logger = Union[logging.Logger, logging.LoggerAdapter]


class UpdateSource(abc.ABC):
    """Abstract remote distribution channel.

    Subclasses set ``description`` (operator help text) and
    ``example_options`` (a JSON-serializable dict); both feed the example
    files written next to the options file.
    """

    description: str = ""
    example_options: Dict[str, Any] = {}

    @abc.abstractmethod
    def configure(self, options: Mapping[str, Any]) -> None:
        """Parse backend options.

        Raises :class:`~auto_updater.errors.InvalidConfigurationError` when a
        required field is missing or malformed.
        """

    @abc.abstractmethod
    def check_for_update(self, current: VersionFingerprint) -> bool:
        """Return True when the latest remote version differs from ``current``.

        Must not touch local files. May raise
        :class:`~auto_updater.errors.RemoteUnavailableError`.
        """

    @abc.abstractmethod
    def perform_update(
        self, logger: Logger, target_directory: Path
    ) -> Optional[VersionFingerprint]:
        """Install the latest version into ``target_directory``.

        Returns the fingerprint of what was installed, or ``None`` when the
        update could not be completed.
        """


class ConfiguredSource(UpdateSource):
    """Helper base for sources that keep parsed options on ``self.options``."""

    options: Any = None

    def require_configured(self) -> Any:
        if self.options is None:
            raise SourceNotConfiguredError(
                f"{type(self).__name__} has not been configured"
            )
        return self.options


__all__ = ["UpdateSource", "ConfiguredSource", "Logger"]
