"""Merged directory handle.

A Dir lists the union of several directories with the same name. Entries
are read from every owner on the first read, folded through a DirsMerger in
priority order and then served page by page.

The per-directory buffers live in pooled slots so that repeated opens reuse
the same lists. A slot is fully reset before it goes back to the pool, and a
Dir drops its slot on close, so a closed Dir never sees another directory's
data.
"""

from __future__ import annotations

import errno
import logging
import threading
from collections.abc import Callable
from typing import Any

from .base import DirEntry, FileMetadata
from .merge import DirsMerger, default_dirs_merger

logger = logging.getLogger(__name__)

InfoFunc = Callable[[], FileMetadata]
DirOpener = Callable[[], Any]


class DirClosedError(ValueError):
    """Raised when a Dir is used after close()."""

    def __init__(self, name: str) -> None:
        super().__init__(f"I/O operation on closed directory: '{name}'")
        self.errno = errno.EBADF
        self.filename = name


class _DirSlot:
    """Reusable state of one open Dir."""

    __slots__ = (
        "name",
        "fss",
        "dir_openers",
        "info",
        "merge",
        "buf",
        "entries",
        "offset",
        "loaded",
        "eof",
    )

    def __init__(self) -> None:
        self.fss: list[Any] = []
        self.dir_openers: list[DirOpener] = []
        # buf is the reused list; entries is whatever the merger returned.
        self.buf: list[DirEntry] = []
        self.reset()

    def reset(self) -> None:
        self.name = ""
        self.fss.clear()
        self.dir_openers.clear()
        self.info: InfoFunc | None = None
        self.merge: DirsMerger = default_dirs_merger
        self.buf.clear()
        self.entries: list[DirEntry] = self.buf
        self.offset = 0
        self.loaded = False
        self.eof = False


class _DirPool:
    """Thread-safe free list of _DirSlot objects."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._free: list[_DirSlot] = []

    def acquire(self) -> _DirSlot:
        with self._lock:
            if self._free:
                return self._free.pop()
        return _DirSlot()

    def release(self, slot: _DirSlot) -> None:
        slot.reset()
        with self._lock:
            self._free.append(slot)


_pool = _DirPool()


def _read_all(f: Any) -> list[DirEntry]:
    """Read every entry of an open directory handle and close it."""
    try:
        read_dir = getattr(f, "read_dir", None)
        if read_dir is not None:
            return list(read_dir(-1))
        return [DirEntry.from_info(info) for info in f.readdir(-1)]
    finally:
        f.close()


class Dir:
    """Directory handle over several directories merged into one listing.

    Attributes:
        name: The directory path this handle was opened for ("" when built
            from directory openers).

    A Dir must not be used after close(). Reads after close raise
    DirClosedError; byte-stream operations always raise NotImplementedError.
    """

    def __init__(self, slot: _DirSlot) -> None:
        self._slot: _DirSlot | None = slot
        self.name = slot.name

    def _require_open(self) -> _DirSlot:
        if self._slot is None:
            raise DirClosedError(self.name)
        return self._slot

    def _load(self, slot: _DirSlot) -> None:
        entries = slot.buf
        try:
            for fs in slot.fss:
                entries = slot.merge(entries, _read_all(fs.open(slot.name)))
            for open_dir_func in slot.dir_openers:
                entries = slot.merge(entries, _read_all(open_dir_func()))
        except Exception:
            slot.buf.clear()
            raise
        slot.entries = entries
        slot.loaded = True
        logger.debug("merged %d entries for %r", len(slot.entries), slot.name)

    def read_dir(self, n: int = -1) -> list[DirEntry]:
        """Read merged directory entries.

        Args:
            n: Maximum number of entries. n <= 0 reads all remaining entries.

        Returns:
            A new list of entries, in priority order.

        Raises:
            EOFError: If no entries remain.
            DirClosedError: If the Dir is closed.
        """
        slot = self._require_open()
        if slot.eof:
            raise EOFError(f"no more entries in directory '{self.name}'")
        if not slot.loaded:
            self._load(slot)

        remaining = len(slot.entries) - slot.offset

        if n <= 0:
            slot.eof = True
            if slot.offset > 0 and remaining <= 0:
                raise EOFError(f"no more entries in directory '{self.name}'")
            result = slot.entries[slot.offset :]
            slot.offset = len(slot.entries)
            return result

        if remaining <= 0:
            slot.eof = True
            raise EOFError(f"no more entries in directory '{self.name}'")

        n = min(n, remaining)
        result = slot.entries[slot.offset : slot.offset + n]
        slot.offset += n
        return result

    def readdir(self, n: int = -1) -> list[FileMetadata]:
        """Read merged entries as metadata. See read_dir()."""
        return [entry.info() for entry in self.read_dir(n)]

    def readdirnames(self, n: int = -1) -> list[str]:
        """Read merged entry names. See read_dir()."""
        return [entry.name for entry in self.read_dir(n)]

    def stat(self) -> FileMetadata:
        """Metadata of the directory on the highest-priority owner."""
        slot = self._require_open()
        if slot.info is not None:
            return slot.info()
        return slot.fss[0].stat(slot.name)

    def close(self) -> None:
        """Release the handle. Closing twice is a no-op."""
        slot, self._slot = self._slot, None
        if slot is not None:
            _pool.release(slot)

    @property
    def closed(self) -> bool:
        return self._slot is None

    def __enter__(self) -> Dir:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _not_supported(self) -> NotImplementedError:
        return NotImplementedError(f"operation not supported on directory '{self.name}'")

    def read(self, size: int = -1) -> bytes:
        raise self._not_supported()

    def read_at(self, size: int, offset: int) -> bytes:
        raise self._not_supported()

    def seek(self, offset: int, whence: int = 0) -> int:
        raise self._not_supported()

    def write(self, data: bytes) -> int:
        raise self._not_supported()

    def write_at(self, data: bytes, offset: int) -> int:
        raise self._not_supported()

    def write_string(self, s: str) -> int:
        raise self._not_supported()

    def sync(self) -> None:
        raise self._not_supported()

    def truncate(self, size: int) -> None:
        raise self._not_supported()


def merged_dir(name: str, fss: list[Any], merge: DirsMerger | None) -> Dir:
    """Create a Dir over the directory name on each of fss."""
    slot = _pool.acquire()
    slot.name = name
    slot.fss.extend(fss)
    slot.merge = merge or default_dirs_merger
    return Dir(slot)


def open_dir(
    merge: DirsMerger | None,
    info: InfoFunc | None,
    *dir_openers: DirOpener,
) -> Dir:
    """Open a Dir over directories supplied by opener functions.

    Args:
        merge: Merger for the listings; None uses default_dirs_merger.
        info: Returns the metadata reported by Dir.stat().
        *dir_openers: Each returns an open directory handle. Listings are
            merged in the order given.

    Raises:
        ValueError: If info is None or no openers are given.
    """
    if info is None:
        raise ValueError("info must not be None")
    if not dir_openers:
        raise ValueError("dir_openers must not be empty")

    slot = _pool.acquire()
    slot.dir_openers.extend(dir_openers)
    slot.info = info
    slot.merge = merge or default_dirs_merger
    return Dir(slot)
