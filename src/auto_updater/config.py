"""Target configuration (the options file) and example generation.

The options file is a JSON *array*; each element describes one target:

    [
      {
        "source_name": "github-release",
        "target_directory": "/opt/my-app",
        "process_name": "my-app",
        "permit_kill_process": true,
        "source_options": {"repository_owner": "...", "repository_name": "..."},
        "cleanup_all": true,
        "cleanup_exceptions": ["settings.json"],
        "cleanup_list": [],
        "before_update_commands": [{"command": "systemctl", "arguments": "stop my-app", "safe": true}],
        "after_update_commands": [{"command": "systemctl", "arguments": "start my-app", "safe": false}]
      }
    ]

Unknown keys are ignored so that notes can be kept alongside the options.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from .commands import CommandSpec
from .errors import ConfigurationError
from .io_safe import write_if_missing
from .sourcesets.registry import SourceRegistry


@dataclass(frozen=True)
class TargetConfig:
    """One configured update target. Immutable once loaded."""

    source_name: str
    target_directory: Path
    process_name: str
    source_options: Mapping[str, Any] = field(default_factory=dict)
    permit_kill_process: bool = False
    cleanup_all: bool = False
    cleanup_exceptions: Tuple[str, ...] = ()
    cleanup_list: Tuple[str, ...] = ()
    before_update_commands: Tuple[CommandSpec, ...] = ()
    after_update_commands: Tuple[CommandSpec, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TargetConfig":
        if not isinstance(data, Mapping):
            raise ConfigurationError("a target must be a JSON object")

        def _required(key: str) -> str:
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"'{key}' is required and must be a string")
            return value.strip()

        def _flag(key: str) -> bool:
            value = data.get(key, False)
            if not isinstance(value, bool):
                raise ConfigurationError(f"'{key}' must be true or false")
            return value

        def _strings(key: str) -> Tuple[str, ...]:
            value = data.get(key) or []
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError(f"'{key}' must be a list of strings")
            return tuple(value)

        def _commands(key: str) -> Tuple[CommandSpec, ...]:
            value = data.get(key) or []
            if not isinstance(value, list):
                raise ConfigurationError(f"'{key}' must be a list of commands")
            try:
                return tuple(CommandSpec.from_mapping(v) for v in value)
            except ConfigurationError as e:
                raise ConfigurationError(f"{key}: {e}") from None

        options = data.get("source_options")
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise ConfigurationError("'source_options' must be a JSON object")

        return cls(
            source_name=_required("source_name"),
            target_directory=Path(_required("target_directory")).expanduser(),
            process_name=_required("process_name"),
            source_options=options,
            permit_kill_process=_flag("permit_kill_process"),
            cleanup_all=_flag("cleanup_all"),
            cleanup_exceptions=_strings("cleanup_exceptions"),
            cleanup_list=_strings("cleanup_list"),
            before_update_commands=_commands("before_update_commands"),
            after_update_commands=_commands("after_update_commands"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_name": self.source_name,
            "target_directory": str(self.target_directory),
            "process_name": self.process_name,
            "permit_kill_process": self.permit_kill_process,
            "source_options": dict(self.source_options),
            "cleanup_all": self.cleanup_all,
            "cleanup_exceptions": list(self.cleanup_exceptions),
            "cleanup_list": list(self.cleanup_list),
            "before_update_commands": [c.to_dict() for c in self.before_update_commands],
            "after_update_commands": [c.to_dict() for c in self.after_update_commands],
        }


def ensure_options_file(path: Path) -> bool:
    """Create an empty options file (``[]``) if none exists.

    Returns ``True`` when a new file was written.
    """
    return write_if_missing(Path(path), "[]\n")


def load_targets(path: Path) -> List[TargetConfig]:
    """Read and validate every target in the options file.

    Raises :class:`ConfigurationError` when the file is unreadable, is not
    a JSON array, or holds an invalid record (the index is named).
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Could not read {path}: {e}") from e
    except ValueError as e:
        raise ConfigurationError(f"{path} does not contain valid JSON: {e}") from e
    if not isinstance(raw, list):
        raise ConfigurationError(
            f"{path} must contain a JSON array of targets, not a single object"
        )
    targets = []
    for index, item in enumerate(raw):
        try:
            targets.append(TargetConfig.from_dict(item))
        except ConfigurationError as e:
            raise ConfigurationError(f"{path}: target #{index}: {e}") from None
    return targets


_README = """\
Thanks for using auto-updater! A quick explanation:
     - options.json is created automatically on first run
     - It's an /array/ of JSON objects, not a single object
     - examples/options.example.json contains an example for a SINGLE target;
       when copied into options.json it must go inside the array
     - An array in JSON starts with '[' and ends with ']'. Objects inside it
       are separated by commas, with no comma after the last one.

Each available update source has a <name>.description.txt and a
<name>.example.json in the 'examples' directory describing its
"source_options".
"""


def example_target() -> TargetConfig:
    return TargetConfig(
        source_name="github-release",
        target_directory=Path("/opt/my-app"),
        process_name="my-app",
        permit_kill_process=True,
        source_options={
            "repository_owner": "octo-org",
            "repository_name": "octo-app",
        },
        cleanup_all=True,
        cleanup_exceptions=("settings.json", "user-data"),
        cleanup_list=("cache", "old.log"),
        before_update_commands=(CommandSpec("systemctl", "stop my-app", True),),
        after_update_commands=(
            CommandSpec("systemctl", "start my-app", False),
            CommandSpec("some_second_command", None, True),
        ),
    )


def write_example_files(home: Path, registry: SourceRegistry) -> List[Path]:
    """Write the README and example files under ``home``.

    Existing files are left alone. Returns the paths that were created.
    """
    home = Path(home)
    examples = home / "examples"
    created = []

    def _emit(path: Path, text: str) -> None:
        if write_if_missing(path, text):
            created.append(path)

    _emit(home / "README.txt", _README)
    _emit(
        examples / "options.example.json",
        json.dumps(example_target().to_dict(), indent=2) + "\n",
    )
    for name, factory in registry.describe():
        description = getattr(factory, "description", "") or ""
        if description.strip():
            _emit(examples / f"{name}.description.txt", description)
        example = getattr(factory, "example_options", None)
        if example:
            _emit(examples / f"{name}.example.json", json.dumps(example, indent=2) + "\n")
    return created


__all__ = [
    "TargetConfig",
    "ensure_options_file",
    "load_targets",
    "example_target",
    "write_example_files",
]
