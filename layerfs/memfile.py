"""File handle for MemoryFS."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from .base import DirEntry, FileMetadata

if TYPE_CHECKING:
    from .memory import MemoryFS


class MemoryFile:
    """File-like handle on a MemoryFS file or directory.

    File content is buffered in a BytesIO and written back to the
    filesystem on flush(), sync() or close(). Directory handles list the
    directory's children on first read and serve them page by page.

    Attributes:
        name: The path the handle was opened with.
    """

    def __init__(
        self,
        fs: "MemoryFS",
        path: str,
        name: str,
        *,
        is_dir: bool = False,
        content: bytes = b"",
        readable: bool = True,
        writable: bool = False,
        append: bool = False,
    ):
        """Initialize a handle.

        Args:
            fs: The owning MemoryFS.
            path: Normalized path inside fs.
            name: Path as passed to open (for Name and error messages).
            is_dir: Whether path is a directory.
            content: Initial file content.
            readable: Allow read().
            writable: Allow write() and truncate().
            append: Position writes at the end of the content.
        """
        self._fs = fs
        self._path = path
        self.name = name
        self._is_dir = is_dir
        self._readable = readable
        self._writable = writable
        self._append = append
        self._closed = False
        self._dirty = False
        self._buffer = io.BytesIO(content)
        self._entries: list[FileMetadata] | None = None
        self._dir_offset = 0

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.name}")

    def _check_file(self) -> None:
        self._check_open()
        if self._is_dir:
            raise IsADirectoryError(f"Is a directory: '{self.name}'")

    def stat(self) -> FileMetadata:
        self._check_open()
        return self._fs.stat(self._path)

    def read(self, size: int = -1) -> bytes:
        self._check_file()
        if not self._readable:
            raise io.UnsupportedOperation("read")
        return self._buffer.read(size)

    def write(self, data: bytes) -> int:
        """Write bytes at the current position (at the end in append mode).

        Raises:
            ValueError: If file is already closed.
            io.UnsupportedOperation: If the handle is not writable.
        """
        self._check_file()
        if not self._writable:
            raise io.UnsupportedOperation("write")
        if self._append:
            self._buffer.seek(0, io.SEEK_END)
        self._dirty = True
        return self._buffer.write(data)

    def seek(self, offset: int, whence: int = 0) -> int:
        self._check_file()
        return self._buffer.seek(offset, whence)

    def tell(self) -> int:
        self._check_file()
        return self._buffer.tell()

    def truncate(self, size: int) -> None:
        self._check_file()
        if not self._writable:
            raise io.UnsupportedOperation("truncate")
        self._buffer.truncate(size)
        self._dirty = True

    def flush(self) -> None:
        """Persist buffered content to the filesystem."""
        self._check_open()
        if self._dirty:
            self._fs._store(self._path, self._buffer.getvalue())
            self._dirty = False

    def sync(self) -> None:
        self.flush()

    def _load_entries(self) -> list[FileMetadata]:
        self._check_open()
        if not self._is_dir:
            raise NotADirectoryError(f"Not a directory: '{self.name}'")
        if self._entries is None:
            self._entries = self._fs._list_infos(self._path)
        return self._entries

    def readdir(self, n: int = -1) -> list[FileMetadata]:
        """Read directory entries in name order.

        With n <= 0 all remaining entries are returned (possibly none).
        With n > 0 at most n are returned and EOFError is raised once
        nothing remains.
        """
        entries = self._load_entries()
        rest = entries[self._dir_offset :]
        if n <= 0:
            self._dir_offset = len(entries)
            return rest
        if not rest:
            raise EOFError(f"no more entries in directory '{self.name}'")
        rest = rest[:n]
        self._dir_offset += len(rest)
        return rest

    def read_dir(self, n: int = -1) -> list[DirEntry]:
        return [DirEntry.from_info(info) for info in self.readdir(n)]

    def readdirnames(self, n: int = -1) -> list[str]:
        return [info.name for info in self.readdir(n)]

    def close(self) -> None:
        """Close the handle, persisting any buffered writes."""
        if self._closed:
            return
        self.flush()
        self._closed = True

    @property
    def closed(self) -> bool:
        """Return True if the file is closed."""
        return self._closed

    def __enter__(self) -> "MemoryFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
