"""Name → factory registry of update sources.

Backends register themselves explicitly at startup through a module-level
``register(registry)`` function; nothing is discovered by scanning.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Tuple

from ..errors import UnknownSourceError
from .base import UpdateSource

SourceFactory = Callable[[], UpdateSource]


class SourceRegistry:
    """Read-mostly mapping from source name to a zero-argument factory."""

    def __init__(self) -> None:
        self._factories: Dict[str, SourceFactory] = {}

    def register(self, name: str, factory: SourceFactory) -> None:
        name = (name or "").strip()
        if not name:
            raise ValueError("source name must not be empty")
        if name in self._factories:
            raise ValueError(f"source '{name}' is already registered")
        self._factories[name] = factory

    def create(self, name: str) -> UpdateSource:
        """Return a fresh, unconfigured source for ``name``."""
        try:
            factory = self._factories[name]
        except KeyError:
            raise UnknownSourceError(name) from None
        return factory()

    def names(self) -> List[str]:
        return sorted(self._factories)

    def describe(self) -> Iterator[Tuple[str, SourceFactory]]:
        for name in self.names():
            yield name, self._factories[name]

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def register_builtin_sources(registry: SourceRegistry) -> SourceRegistry:
    """Register every source shipped with the package."""
    from . import github

    github.register(registry)
    return registry


def build_default_registry() -> SourceRegistry:
    return register_builtin_sources(SourceRegistry())


__all__ = [
    "SourceFactory",
    "SourceRegistry",
    "register_builtin_sources",
    "build_default_registry",
]
