"""Directory entry merging."""

from __future__ import annotations

from typing import Callable

from .base import DirEntry

# Merges the entries of a lower-priority directory (second argument) into
# the entries collected so far (first argument) and returns the result.
DirsMerger = Callable[[list[DirEntry], list[DirEntry]], list[DirEntry]]


def default_dirs_merger(lofi: list[DirEntry], bofi: list[DirEntry]) -> list[DirEntry]:
    """Append entries of bofi whose names are not already in lofi.

    lofi is extended in place and returned, so the earlier entry always
    wins a name clash and the order of both lists is preserved.
    """
    seen = {entry.name for entry in lofi}
    for entry in bofi:
        if entry.name not in seen:
            seen.add(entry.name)
            lofi.append(entry)
    return lofi
