"""Path resolution across an ordered, possibly nested list of backends.

Backends are searched depth-first in priority order. A backend that
advertises FilesystemIterator is searched through its nested backends before
the search moves on to the next sibling, so stacked overlays resolve exactly
like one flattened overlay.

Only FileNotFoundError lets the search continue. Any other exception from a
backend aborts the search and propagates unchanged.

Nested backends are not checked for cycles; a backend that (transitively)
contains itself recurses until RecursionError.

A miss on a nested overlay is paid twice: once through the overlay's own
stat, which searches its backends, and again through those backends
directly. Lookup cost therefore doubles with each level of nesting.
"""

from __future__ import annotations

import errno
import logging
from collections.abc import Sequence
from typing import Any, NamedTuple

from .base import FileMetadata, sub_filesystems, supports_lstat

logger = logging.getLogger(__name__)


class Resolved(NamedTuple):
    """Result of a successful lookup."""

    fs: Any
    info: FileMetadata
    lstat_used: bool


def _not_found(name: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, "No such file or directory", name)


def _lookup(fs: Any, name: str, lstat_if_possible: bool) -> Resolved:
    if lstat_if_possible and supports_lstat(fs):
        info, used = fs.lstat_if_possible(name)
        return Resolved(fs, info, used)
    return Resolved(fs, fs.stat(name), False)


def _resolve_recursive(fs: Any, name: str, lstat_if_possible: bool) -> Resolved | None:
    try:
        return _lookup(fs, name, lstat_if_possible)
    except FileNotFoundError:
        pass
    for sub in sub_filesystems(fs):
        found = _resolve_recursive(sub, name, lstat_if_possible)
        if found is not None:
            return found
    return None


def resolve(fss: Sequence[Any], name: str, lstat_if_possible: bool = False) -> Resolved:
    """Find the first backend that has an entry at name.

    Args:
        fss: Backends in priority order.
        name: Path to look up.
        lstat_if_possible: Use lstat_if_possible() on backends that offer it.

    Returns:
        The owning backend, its metadata for name, and whether lstat was used.

    Raises:
        FileNotFoundError: If no backend has the path (including when fss
            is empty).
    """
    for fs in fss:
        found = _resolve_recursive(fs, name, lstat_if_possible)
        if found is not None:
            logger.debug("resolved %r on %r", name, found.fs)
            return found
    raise _not_found(name)


def _collect_recursive(fs: Any, name: str, owners: list[Any]) -> None:
    try:
        info = fs.stat(name)
    except FileNotFoundError:
        pass
    else:
        if info.is_dir:
            owners.append(fs)
    for sub in sub_filesystems(fs):
        _collect_recursive(sub, name, owners)


def collect_dirs(fss: Sequence[Any], name: str) -> list[Any]:
    """Collect every backend that has a directory at name.

    A composite backend is collected when its own stat reports a directory,
    followed by whichever of its nested backends do. The merger drops the
    repeated names, so nesting does not change the merged listing.

    Returns:
        Owning backends in discovery (priority) order.
    """
    owners: list[Any] = []
    for fs in fss:
        _collect_recursive(fs, name, owners)
    logger.debug("collected %d directories for %r", len(owners), name)
    return owners
