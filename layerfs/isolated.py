"""Isolated filesystem with path restriction.

Provides real filesystem access restricted to a specific directory. Paths
are interpreted chroot-style: "/" and "" both mean the root directory.
"""

from __future__ import annotations

import errno
import os
import shutil
from pathlib import Path
from typing import IO

from .base import FileMetadata

_WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_APPEND | os.O_CREAT | os.O_TRUNC


def _fdopen_mode(flags: int) -> str:
    access = flags & (os.O_RDONLY | os.O_WRONLY | os.O_RDWR)
    if flags & os.O_APPEND:
        return "a+b" if access == os.O_RDWR else "ab"
    if access == os.O_RDWR:
        return "r+b"
    if access == os.O_WRONLY:
        return "wb"
    return "rb"


class OSFile:
    """Handle on a real file or directory inside an IsolatedFS.

    Attributes:
        name: The path the handle was opened with.
    """

    def __init__(self, real: Path, name: str, f: IO[bytes] | None = None) -> None:
        self._real = real
        self.name = name
        self._file = f
        self._entries: list[FileMetadata] | None = None
        self._dir_offset = 0
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.name}")

    def _stream(self) -> IO[bytes]:
        self._check_open()
        if self._file is None:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", self.name)
        return self._file

    def stat(self) -> FileMetadata:
        self._check_open()
        return FileMetadata.from_stat_result(_basename(self.name), os.stat(self._real))

    def read(self, size: int = -1) -> bytes:
        return self._stream().read(size)

    def write(self, data: bytes) -> int:
        return self._stream().write(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._stream().seek(offset, whence)

    def tell(self) -> int:
        return self._stream().tell()

    def truncate(self, size: int) -> None:
        self._stream().truncate(size)

    def sync(self) -> None:
        f = self._stream()
        f.flush()
        os.fsync(f.fileno())

    def readdir(self, n: int = -1) -> list[FileMetadata]:
        """Read directory entries (lstat metadata) in name order.

        With n <= 0 all remaining entries are returned (possibly none).
        With n > 0 at most n are returned and EOFError is raised once
        nothing remains.
        """
        self._check_open()
        if self._file is not None:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", self.name)
        if self._entries is None:
            with os.scandir(self._real) as it:
                self._entries = sorted(
                    (
                        FileMetadata.from_stat_result(e.name, e.stat(follow_symlinks=False))
                        for e in it
                    ),
                    key=lambda info: info.name,
                )
        rest = self._entries[self._dir_offset :]
        if n <= 0:
            self._dir_offset = len(self._entries)
            return rest
        if not rest:
            raise EOFError(f"no more entries in directory '{self.name}'")
        rest = rest[:n]
        self._dir_offset += len(rest)
        return rest

    def readdirnames(self, n: int = -1) -> list[str]:
        return [info.name for info in self.readdir(n)]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._file is not None:
            self._file.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "OSFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _basename(path: str) -> str:
    return os.path.basename(os.path.normpath("/" + path.lstrip("/"))) or "/"


class IsolatedFS:
    """FileSystem interface restricted to a root directory.

    All paths are validated to ensure they stay within the configured root
    directory. Symlinks are resolved before the check, so a link pointing
    out of the root is rejected with PermissionError.

    Supports lstat_if_possible(), which reports symlinks themselves.
    """

    name = "isolatedfs"

    def __init__(self, root: str) -> None:
        """Initialize isolated filesystem.

        Args:
            root: Absolute path to root directory (created if missing).

        Raises:
            ValueError: If root is not an absolute path or not a directory.
        """
        root_path = Path(root)
        if not root_path.is_absolute():
            raise ValueError(f"Root must be absolute path: {root}")

        self.root = root_path.resolve()
        if not self.root.exists():
            self.root.mkdir(parents=True, exist_ok=True)
        if not self.root.is_dir():
            raise ValueError(f"Root must be a directory: {root}")

    def __repr__(self) -> str:
        return f"IsolatedFS(root={str(self.root)!r})"

    def _validate_path(self, path: str, follow_symlinks: bool = True) -> Path:
        """Map a virtual path to a real path within root.

        Args:
            path: Virtual path ("/a/b" and "a/b" are equivalent).
            follow_symlinks: Resolve the final component too. When False
                only the parent is resolved, so the result may be a link.

        Raises:
            PermissionError: If path escapes root directory.
        """
        rel = os.path.normpath("/" + path.lstrip("/")).lstrip("/")
        candidate = self.root / rel
        if follow_symlinks or not rel:
            resolved = candidate.resolve()
        else:
            resolved = candidate.parent.resolve() / candidate.name

        try:
            resolved.relative_to(self.root)
        except ValueError:
            raise PermissionError(
                errno.EACCES, f"Path outside root: {resolved} (root: {self.root})", path
            ) from None
        return resolved

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    def stat(self, path: str) -> FileMetadata:
        return FileMetadata.from_stat_result(_basename(path), os.stat(self._validate_path(path)))

    def lstat_if_possible(self, path: str) -> tuple[FileMetadata, bool]:
        real = self._validate_path(path, follow_symlinks=False)
        return FileMetadata.from_stat_result(_basename(path), os.lstat(real)), True

    def open(self, path: str) -> OSFile:
        real = self._validate_path(path)
        if real.is_dir():
            return OSFile(real, path)
        return OSFile(real, path, open(real, "rb"))

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> OSFile:
        if not flags & _WRITE_FLAGS:
            return self.open(path)
        real = self._validate_path(path)
        fd = os.open(real, flags, perm)
        return OSFile(real, path, os.fdopen(fd, _fdopen_mode(flags)))

    def create(self, path: str) -> OSFile:
        return self.open_file(path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o666)

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        os.mkdir(self._validate_path(path), perm)

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        os.makedirs(self._validate_path(path), perm, exist_ok=True)

    def remove(self, path: str) -> None:
        real = self._validate_path(path, follow_symlinks=False)
        if real == self.root:
            raise PermissionError(errno.EPERM, "Cannot remove root", path)
        if real.is_dir() and not real.is_symlink():
            os.rmdir(real)
        else:
            os.remove(real)

    def remove_all(self, path: str) -> None:
        real = self._validate_path(path, follow_symlinks=False)
        if real == self.root:
            raise PermissionError(errno.EPERM, "Cannot remove root", path)
        if real.is_dir() and not real.is_symlink():
            shutil.rmtree(real)
        elif real.exists() or real.is_symlink():
            os.remove(real)

    def rename(self, src: str, dst: str) -> None:
        os.rename(
            self._validate_path(src, follow_symlinks=False),
            self._validate_path(dst, follow_symlinks=False),
        )

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(self._validate_path(path), mode)

    def chown(self, path: str, uid: int, gid: int) -> None:
        os.chown(self._validate_path(path), uid, gid)

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        os.utime(self._validate_path(path), (atime, mtime))
