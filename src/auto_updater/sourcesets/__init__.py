"""Update sources: the contract, the registry and the built-in backends.

Each backend module exposes ``register(registry)``; the registry calls them
explicitly in :func:`register_builtin_sources`.
"""

from __future__ import annotations

from .base import ConfiguredSource, UpdateSource
from .registry import (
    SourceFactory,
    SourceRegistry,
    build_default_registry,
    register_builtin_sources,
)
from .github import GitHubReleaseOptions, GitHubReleaseSource

__all__ = [
    "UpdateSource",
    "ConfiguredSource",
    "SourceFactory",
    "SourceRegistry",
    "build_default_registry",
    "register_builtin_sources",
    "GitHubReleaseOptions",
    "GitHubReleaseSource",
]
