"""Pre-update cleanup of a target directory.

Two policies are supported and may be combined:
 - ``cleanup_directory``: delete everything beneath a root except an
   exception set (clean-all)
 - ``cleanup_listed``: delete only the listed paths

Both always keep the ``versionhash`` marker so that a failed update does
not lose the record of what is installed.

Traversal is iterative. Directories are identified by their canonical
(``realpath``) form: one is entered only when it lies inside the base
directory and has not been entered before during the run, so symlink
cycles terminate and links pointing outside the base are never followed.
Links themselves are removed as links.

Deletion is best effort: a file that cannot be removed is logged and
recorded in the report, and the walk continues.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

from .fingerprint import is_marker_name

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class CleanupReport:
    """What a cleanup pass did."""

    removed_files: List[str] = field(default_factory=list)
    removed_dirs: List[str] = field(default_factory=list)
    visited: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)

    def merge(self, other: "CleanupReport") -> None:
        self.removed_files.extend(other.removed_files)
        self.removed_dirs.extend(other.removed_dirs)
        self.visited.extend(other.visited)
        self.failures.extend(other.failures)


def _canonical(path: PathLike) -> str:
    return os.path.normcase(os.path.realpath(path))


def _is_within(path: str, base: str) -> bool:
    """Component-wise prefix test on canonical paths."""
    if path == base:
        return True
    prefix = base if base.endswith(os.sep) else base + os.sep
    return path.startswith(prefix)


class _Exceptions:
    """Matches entries against the operator's exception list.

    An entry matches by bare name, by its path relative to the cleanup root
    (``/`` or the OS separator), or by its absolute path.
    """

    def __init__(self, exceptions: Optional[Iterable[str]], roots: Iterable[str]):
        self.names: Set[str] = set()
        self.paths: Set[str] = set()
        self.roots = [r for r in roots if r]
        for raw in exceptions or ():
            text = str(raw).strip()
            if not text:
                continue
            norm = os.path.normcase(os.path.normpath(text))
            if os.path.isabs(text):
                self.paths.add(norm)
            else:
                self.names.add(os.path.normcase(text))
                for root in self.roots:
                    self.paths.add(os.path.normcase(os.path.join(root, os.path.normpath(text))))

    def __bool__(self) -> bool:
        return bool(self.names or self.paths)

    def matches(self, name: str, path: str) -> bool:
        if not self:
            return False
        if os.path.normcase(name) in self.names:
            return True
        return os.path.normcase(os.path.normpath(path)) in self.paths

    def covers(self, canon: str, base_canon: str) -> bool:
        """True when canonical directory ``canon`` is, or lies inside, a kept entry."""
        if not self:
            return False
        if any(_is_within(canon, _canonical(p)) for p in self.paths):
            return True
        if not _is_within(canon, base_canon):
            return False
        rel = os.path.relpath(canon, base_canon)
        return any(part in self.names for part in rel.split(os.sep))


def _has_entries(path: str) -> bool:
    try:
        with os.scandir(path) as it:
            return any(True for _ in it)
    except OSError:
        return False


def _unlink(path: str, report: CleanupReport) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Could not delete %s: %s", path, e)
        report.failures.append((path, str(e)))
        return
    report.removed_files.append(path)


def cleanup_directory(
    root: PathLike,
    base: Optional[PathLike] = None,
    visited: Optional[Set[str]] = None,
    exceptions: Optional[Iterable[str]] = None,
) -> CleanupReport:
    """Delete files and subdirectories beneath ``root``.

    Parameters
    - ``root``: Directory to clean. It is kept, even when emptied.
    - ``base``: Containment boundary (defaults to ``root``). Directories whose
      canonical path is outside it are never entered.
    - ``visited``: Canonical directories already processed in this run. The
      set is updated in place so callers can share it across passes.
    - ``exceptions``: Names or paths to keep (see :class:`_Exceptions`).

    Raises ``OSError`` when ``root`` itself cannot be listed; failures below
    it are recorded in the returned report.
    """
    report = CleanupReport()
    visited = set() if visited is None else visited
    base_canon = _canonical(base if base is not None else root)
    root_abs = os.path.abspath(root)
    root_canon = _canonical(root)
    keep = _Exceptions(exceptions, {root_abs, root_canon})

    if not _is_within(root_canon, base_canon) or root_canon in visited:
        return report

    # (directory to list, removable once emptied)
    stack: List[Tuple[str, bool]] = [(root_abs, False)]
    processed: List[Tuple[str, bool]] = []
    first = True

    while stack:
        current, removable = stack.pop()
        canon = _canonical(current)
        if not first and (not _is_within(canon, base_canon) or canon in visited):
            continue
        visited.add(canon)
        report.visited.append(canon)
        processed.append((current, removable))

        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            if first:
                raise
            logger.warning("Could not list %s: %s", current, e)
            report.failures.append((current, str(e)))
            continue
        first = False

        for entry in entries:
            if keep.matches(entry.name, entry.path):
                logger.debug("Keeping %s (cleanup exception)", entry.path)
                continue
            if entry.is_symlink():
                try:
                    points_to_dir = entry.is_dir(follow_symlinks=True)
                except OSError:
                    points_to_dir = False
                if points_to_dir:
                    target = _canonical(entry.path)
                    if keep.covers(target, base_canon):
                        logger.debug("Not following link %s into kept %s", entry.path, target)
                    elif _is_within(target, base_canon) and target not in visited:
                        stack.append((target, True))
                    else:
                        logger.debug("Not following link %s -> %s", entry.path, target)
                if not is_marker_name(entry.name):
                    _unlink(entry.path, report)
                continue
            if entry.is_dir(follow_symlinks=False):
                stack.append((entry.path, True))
                continue
            if is_marker_name(entry.name):
                continue
            _unlink(entry.path, report)

    for directory, removable in reversed(processed):
        if not removable or not os.path.isdir(directory):
            continue
        try:
            os.rmdir(directory)
        except FileNotFoundError:
            continue
        except OSError as e:
            if _has_entries(directory):
                # still holds a kept entry or something that failed to delete
                continue
            logger.warning("Could not remove directory %s: %s", directory, e)
            report.failures.append((directory, str(e)))
            continue
        report.removed_dirs.append(directory)

    return report


def cleanup_listed(paths: Iterable[str], base: PathLike) -> CleanupReport:
    """Delete only the entries named in ``paths``.

    Relative entries resolve against ``base``. Entries outside ``base``,
    ``base`` itself, missing entries and the marker file are skipped.
    Listed directories are emptied with :func:`cleanup_directory` (bounded
    by the directory itself, each with a fresh visited set) and removed
    unless something had to be kept.
    """
    report = CleanupReport()
    base_canon = _canonical(base)

    for raw in paths:
        text = str(raw).strip()
        if not text:
            continue
        path = Path(text)
        if not path.is_absolute():
            path = Path(base) / path
        if is_marker_name(path.name):
            logger.debug("Cleanup list names the version marker; keeping it")
            continue
        if not os.path.lexists(path):
            logger.debug("Cleanup list entry %s does not exist", path)
            continue
        # Resolve the parent only: a link is judged by where it lives.
        entry_canon = os.path.join(_canonical(path.parent), os.path.normcase(path.name))
        if entry_canon == base_canon or not _is_within(entry_canon, base_canon):
            logger.warning("Cleanup list entry %s is outside %s; skipping", path, base)
            continue

        if path.is_symlink() or not path.is_dir():
            _unlink(str(path), report)
            continue

        report.merge(cleanup_directory(path, base=path))
        try:
            os.rmdir(path)
        except OSError as e:
            if not _has_entries(str(path)):
                logger.warning("Could not remove directory %s: %s", path, e)
                report.failures.append((str(path), str(e)))
        else:
            report.removed_dirs.append(str(path))

    return report


__all__ = ["CleanupReport", "cleanup_directory", "cleanup_listed"]
