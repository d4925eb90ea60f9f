"""Base filesystem interface and dataclasses.

Defines the contract every layered backend satisfies (MemoryFS, IsolatedFS,
OverlayFS itself), plus the two optional capabilities a backend may
advertise: a non-symlink-following stat and enumeration of nested backends.
"""

from __future__ import annotations

import os
import stat as stat_mod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class FileMetadata:
    """Metadata for a single file or directory.

    Attributes:
        name: Base name of the file or directory.
        size: File size in bytes (0 for directories).
        mode: Full ``st_mode`` including the file type bits.
        mtime: Modification time as seconds since the epoch.
    """

    name: str
    size: int
    mode: int
    mtime: float = 0.0

    @classmethod
    def from_stat_result(cls, name: str, st: os.stat_result) -> FileMetadata:
        return cls(name=name, size=st.st_size, mode=st.st_mode, mtime=st.st_mtime)

    @property
    def is_dir(self) -> bool:
        return stat_mod.S_ISDIR(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat_mod.S_ISLNK(self.mode)

    # os.stat_result-compatible properties

    @property
    def st_size(self) -> int:
        return self.size

    @property
    def st_mode(self) -> int:
        return self.mode

    @property
    def st_mtime(self) -> float:
        return self.mtime


@dataclass(frozen=True)
class DirEntry:
    """A single directory listing entry.

    Adapts a FileMetadata so that handles which only list metadata can take
    part in directory merging.
    """

    metadata: FileMetadata

    @classmethod
    def from_info(cls, info: FileMetadata) -> DirEntry:
        return cls(info)

    @property
    def name(self) -> str:
        return self.metadata.name

    def is_dir(self) -> bool:
        return self.metadata.is_dir

    def info(self) -> FileMetadata:
        return self.metadata


@runtime_checkable
class File(Protocol):
    """Handle returned by FileSystem.open().

    Directory handles serve readdir()/readdirnames(); file handles serve
    the byte-stream methods. A handle may also offer ``read_dir(n)``
    returning DirEntry objects, which the merged directory prefers.
    """

    name: str

    def stat(self) -> FileMetadata:
        """Get metadata of the opened path."""
        ...

    def close(self) -> None:
        """Release the handle."""
        ...

    def read(self, size: int = -1) -> bytes:
        """Read bytes."""
        ...

    def write(self, data: bytes) -> int:
        """Write bytes."""
        ...

    def seek(self, offset: int, whence: int = 0) -> int:
        """Move the stream position."""
        ...

    def readdir(self, n: int = -1) -> list[FileMetadata]:
        """List up to n entries (all remaining when n <= 0)."""
        ...

    def readdirnames(self, n: int = -1) -> list[str]:
        """List up to n entry names."""
        ...

    def sync(self) -> None:
        """Flush to the backend."""
        ...

    def truncate(self, size: int) -> None:
        """Truncate to size bytes."""
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Operations every layered backend must support.

    Read operations:
    """

    name: str

    def stat(self, path: str) -> FileMetadata:
        """Get file metadata, following symlinks."""
        ...

    def open(self, path: str) -> File:
        """Open a file or directory for reading."""
        ...

    # Write operations, used when the backend is an overlay's write target.

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> File:
        """Open with os.O_* flags."""
        ...

    def create(self, path: str) -> File:
        """Create or truncate a file."""
        ...

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        """Create a directory."""
        ...

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        """Create a directory and all missing parents."""
        ...

    def remove(self, path: str) -> None:
        """Remove a file or empty directory."""
        ...

    def remove_all(self, path: str) -> None:
        """Remove a path and any children. Missing paths are not an error."""
        ...

    def rename(self, src: str, dst: str) -> None:
        """Rename/move a file or directory."""
        ...

    def chmod(self, path: str, mode: int) -> None:
        """Change permission bits."""
        ...

    def chown(self, path: str, uid: int, gid: int) -> None:
        """Change owner and group."""
        ...

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        """Change access and modification times."""
        ...


@runtime_checkable
class Lstater(Protocol):
    """Optional capability: stat without following symlinks."""

    def lstat_if_possible(self, path: str) -> tuple[FileMetadata, bool]:
        """Return metadata and whether lstat was actually used."""
        ...


@runtime_checkable
class FilesystemIterator(Protocol):
    """Optional capability: enumerate nested backends in priority order."""

    def filesystem(self, i: int) -> Any:
        """Return the backend at index i, or None if out of range."""
        ...

    def num_filesystems(self) -> int:
        """Return the number of nested backends."""
        ...


def supports_lstat(fs: Any) -> bool:
    """Check whether a backend advertises lstat_if_possible()."""
    return isinstance(fs, Lstater)


def sub_filesystems(fs: Any) -> list[Any]:
    """Return the nested backends of fs, or [] if it is not composite."""
    if not isinstance(fs, FilesystemIterator):
        return []
    return [fs.filesystem(i) for i in range(fs.num_filesystems())]
