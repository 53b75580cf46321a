import pytest

from auto_updater.errors import UnknownSourceError
from auto_updater.sourcesets import (
    GitHubReleaseSource,
    SourceRegistry,
    UpdateSource,
    build_default_registry,
)


class DummySource(UpdateSource):
    def configure(self, options):
        self.options = options

    def check_for_update(self, current):
        return False

    def perform_update(self, logger, target_directory):
        return None


def test_create_returns_fresh_instances():
    registry = SourceRegistry()
    registry.register("dummy", DummySource)
    first = registry.create("dummy")
    second = registry.create("dummy")
    assert isinstance(first, DummySource)
    assert first is not second


def test_unknown_name_raises():
    registry = SourceRegistry()
    with pytest.raises(UnknownSourceError) as info:
        registry.create("nope")
    assert info.value.name == "nope"


def test_duplicate_and_empty_names_rejected():
    registry = SourceRegistry()
    registry.register("dummy", DummySource)
    with pytest.raises(ValueError):
        registry.register("dummy", DummySource)
    with pytest.raises(ValueError):
        registry.register("  ", DummySource)


def test_names_sorted_and_membership():
    registry = SourceRegistry()
    registry.register("zeta", DummySource)
    registry.register("alpha", lambda: DummySource())
    assert registry.names() == ["alpha", "zeta"]
    assert "zeta" in registry and "beta" not in registry
    assert len(registry) == 2


def test_default_registry_has_builtin_sources():
    registry = build_default_registry()
    assert "github-release" in registry
    assert isinstance(registry.create("github-release"), GitHubReleaseSource)


def test_contract_cannot_be_instantiated():
    with pytest.raises(TypeError):
        UpdateSource()
