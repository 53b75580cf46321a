import json
from pathlib import Path

import pytest

from auto_updater.commands import CommandSpec
from auto_updater.config import (
    TargetConfig,
    ensure_options_file,
    example_target,
    load_targets,
    write_example_files,
)
from auto_updater.errors import ConfigurationError
from auto_updater.sourcesets import build_default_registry

MINIMAL = {
    "source_name": "github-release",
    "target_directory": "/opt/app",
    "process_name": "app",
}


def test_from_dict_defaults():
    target = TargetConfig.from_dict(MINIMAL)
    assert target.target_directory == Path("/opt/app")
    assert target.permit_kill_process is False
    assert target.cleanup_all is False
    assert target.source_options == {}
    assert target.before_update_commands == ()


def test_from_dict_full_record():
    data = dict(
        MINIMAL,
        permit_kill_process=True,
        cleanup_all=True,
        cleanup_exceptions=["settings.json"],
        cleanup_list=["cache"],
        source_options={"repository_id": 1},
        before_update_commands=[{"command": "stop", "safe": True}],
        after_update_commands=[{"command": "start", "arguments": "--now"}],
        notes="ignored",
    )
    target = TargetConfig.from_dict(data)
    assert target.cleanup_exceptions == ("settings.json",)
    assert target.before_update_commands == (CommandSpec("stop", None, True),)
    assert target.after_update_commands == (CommandSpec("start", "--now", False),)


@pytest.mark.parametrize(
    "patch",
    [
        {"source_name": ""},
        {"process_name": None},
        {"target_directory": 3},
        {"permit_kill_process": "true"},
        {"cleanup_list": "cache"},
        {"cleanup_exceptions": [1]},
        {"source_options": []},
        {"after_update_commands": [{"arguments": "x"}]},
    ],
)
def test_from_dict_rejects_invalid(patch):
    with pytest.raises(ConfigurationError):
        TargetConfig.from_dict(dict(MINIMAL, **patch))


def test_ensure_options_file_creates_empty_array(tmp_path):
    path = tmp_path / "home" / "options.json"
    assert ensure_options_file(path) is True
    assert json.loads(path.read_text(encoding="utf-8")) == []
    path.write_text("[ ]", encoding="utf-8")
    assert ensure_options_file(path) is False
    assert path.read_text(encoding="utf-8") == "[ ]"


def test_load_targets_names_bad_record(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps([MINIMAL, {"source_name": "x"}]), encoding="utf-8")
    with pytest.raises(ConfigurationError) as info:
        load_targets(path)
    assert "target #1" in str(info.value)


@pytest.mark.parametrize("content", ["{not json", json.dumps(MINIMAL)])
def test_load_targets_rejects_bad_files(tmp_path, content):
    path = tmp_path / "options.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_targets(path)


def test_load_targets_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_targets(tmp_path / "absent.json")


def test_to_dict_round_trips_through_load(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps([example_target().to_dict()]), encoding="utf-8")
    assert load_targets(path) == [example_target()]


def test_write_example_files_never_overwrites(tmp_path):
    registry = build_default_registry()
    created = write_example_files(tmp_path, registry)
    names = sorted(p.relative_to(tmp_path).as_posix() for p in created)
    assert names == [
        "README.txt",
        "examples/github-release.description.txt",
        "examples/github-release.example.json",
        "examples/options.example.json",
    ]
    example = json.loads(
        (tmp_path / "examples" / "options.example.json").read_text(encoding="utf-8")
    )
    assert TargetConfig.from_dict(example) == example_target()

    (tmp_path / "README.txt").write_text("edited", encoding="utf-8")
    assert write_example_files(tmp_path, registry) == []
    assert (tmp_path / "README.txt").read_text(encoding="utf-8") == "edited"
