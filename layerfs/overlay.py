"""Overlay filesystem.

OverlayFS layers an ordered list of filesystems. Reads resolve against the
first filesystem (depth-first through nested overlays) that has the path;
directories present in several filesystems are listed as one merged Dir.

OverlayFS is read-only by default. With ``first_writable`` every write is
sent to the first filesystem, without resolution or fallback.
"""

from __future__ import annotations

import dataclasses
import errno
import logging
import os
from typing import Any

from .base import File, FileMetadata
from .config import Options
from .dir import merged_dir
from .merge import DirsMerger, default_dirs_merger
from .resolve import collect_dirs, resolve

logger = logging.getLogger(__name__)

_WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_CREAT | os.O_TRUNC


class OverlayFS:
    """Filesystem that overlays multiple filesystems.

    Filesystems are checked in order until one has the path. If a
    filesystem is itself composite (offers filesystem()/num_filesystems(),
    like OverlayFS does), its filesystems are checked before moving on.

    Instances are immutable. append() and with_dirs_merger() return new
    instances sharing the filesystem tuple, so existing instances keep
    seeing their own configuration.

    Example:
        >>> base, override = MemoryFS(), MemoryFS()
        >>> base.write_file("conf/a.toml", b"base")
        >>> override.write_file("conf/a.toml", b"override")
        >>> ofs = OverlayFS(Options(fss=(override, base)))
        >>> ofs.read("conf/a.toml")
        b'override'
    """

    name = "layerfs"

    def __init__(self, options: Options | None = None) -> None:
        options = options or Options()
        self._fss: tuple[Any, ...] = tuple(options.fss)
        self._merge_dirs: DirsMerger = options.dirs_merger or default_dirs_merger
        self._first_writable = options.first_writable

    def _derive(self, **changes: Any) -> OverlayFS:
        options = Options(
            fss=self._fss,
            first_writable=self._first_writable,
            dirs_merger=self._merge_dirs,
        )
        return OverlayFS(dataclasses.replace(options, **changes))

    def append(self, *fss: Any) -> OverlayFS:
        """Return a copy with fss added after the existing filesystems."""
        return self._derive(fss=self._fss + fss)

    def with_dirs_merger(self, merger: DirsMerger) -> OverlayFS:
        """Return a copy that merges directories with merger."""
        return self._derive(dirs_merger=merger)

    @property
    def first_writable(self) -> bool:
        return self._first_writable

    def filesystem(self, i: int) -> Any:
        """Return the filesystem at index i, or None if out of range."""
        if i < 0 or i >= len(self._fss):
            return None
        return self._fss[i]

    def num_filesystems(self) -> int:
        return len(self._fss)

    def __repr__(self) -> str:
        return f"OverlayFS(fss={list(self._fss)!r}, first_writable={self._first_writable})"

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    def stat(self, path: str) -> FileMetadata:
        """Get metadata of path from the first filesystem that has it.

        Raises:
            FileNotFoundError: If no filesystem has path.
        """
        return resolve(self._fss, path).info

    def lstat_if_possible(self, path: str) -> tuple[FileMetadata, bool]:
        """Like stat(), but uses lstat on filesystems that support it.

        Returns:
            Metadata and whether lstat was used.
        """
        found = resolve(self._fss, path, lstat_if_possible=True)
        return found.info, found.lstat_used

    def open(self, path: str) -> Any:
        """Open a file or directory for reading.

        A directory present in more than one filesystem is returned as a
        merged Dir, which must not be used after it is closed.

        Raises:
            FileNotFoundError: If no filesystem has path.
        """
        found = resolve(self._fss, path)
        if not found.info.is_dir:
            return found.fs.open(path)

        owners = collect_dirs(self._fss, path)
        if not owners:
            # Removed between resolve and collect.
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if len(owners) == 1:
            return owners[0].open(path)
        return merged_dir(path, owners, self._merge_dirs)

    def exists(self, path: str) -> bool:
        try:
            self.stat(path)
        except FileNotFoundError:
            return False
        return True

    def isdir(self, path: str) -> bool:
        try:
            return self.stat(path).is_dir
        except FileNotFoundError:
            return False

    def isfile(self, path: str) -> bool:
        try:
            return not self.stat(path).is_dir
        except FileNotFoundError:
            return False

    def read(self, path: str) -> bytes:
        """Read a whole file as bytes."""
        f = self.open(path)
        try:
            return f.read()
        finally:
            f.close()

    def listdir(self, path: str) -> list[str]:
        """List the merged entry names of a directory."""
        d = self.open(path)
        try:
            return d.readdirnames(-1)
        finally:
            d.close()

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    def _write_fs(self) -> Any:
        if not self._fss:
            raise RuntimeError("layerfs: there are no filesystems to write to")
        if not self._first_writable:
            raise PermissionError(errno.EACCES, "Overlay is read-only")
        return self._fss[0]

    def create(self, path: str) -> File:
        return self._write_fs().create(path)

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> Any:
        """Open path with os.O_* flags.

        Without any of the write, append, create or truncate flags this is
        the same as open().
        """
        if flags & _WRITE_FLAGS:
            fs = self._write_fs()
            logger.debug("open_file %r (flags=%#o) on %r", path, flags, fs)
            return fs.open_file(path, flags, perm)
        return self.open(path)

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        self._write_fs().mkdir(path, perm)

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        self._write_fs().makedirs(path, perm)

    def remove(self, path: str) -> None:
        self._write_fs().remove(path)

    def remove_all(self, path: str) -> None:
        self._write_fs().remove_all(path)

    def rename(self, src: str, dst: str) -> None:
        self._write_fs().rename(src, dst)

    def chmod(self, path: str, mode: int) -> None:
        self._write_fs().chmod(path, mode)

    def chown(self, path: str, uid: int, gid: int) -> None:
        self._write_fs().chown(path, uid, gid)

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        self._write_fs().chtimes(path, atime, mtime)
