"""In-memory filesystem implementation."""

from __future__ import annotations

import errno as _errno
import os
import posixpath
import stat as stat_mod
import threading
import time

from .base import FileMetadata
from .memfile import MemoryFile

_DEFAULT_FILE_PERM = 0o644
_DEFAULT_DIR_PERM = 0o755


class MemoryFS:
    """Simple in-memory filesystem.

    Stores files as ``bytes`` in a plain dict and tracks directories
    in a set. Implements the full ``FileSystem`` contract, so it can be
    used as any layer of an OverlayFS, including the writable one.

    All paths are rooted at "/"; relative paths are taken relative to it.
    Directory listings are sorted by name.
    """

    name = "memoryfs"

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self._perms: dict[str, int] = {"/": _DEFAULT_DIR_PERM}
        self._mtimes: dict[str, float] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"MemoryFS(files={len(self.files)}, dirs={len(self.dirs)})"

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    def stat(self, path: str) -> FileMetadata:
        path = self._resolve(path)
        with self._lock:
            if path in self.files:
                return FileMetadata(
                    name=self._basename(path),
                    size=len(self.files[path]),
                    mode=stat_mod.S_IFREG | self._perms.get(path, _DEFAULT_FILE_PERM),
                    mtime=self._mtimes.get(path, 0.0),
                )
            if path in self.dirs:
                return FileMetadata(
                    name=self._basename(path),
                    size=0,
                    mode=stat_mod.S_IFDIR | self._perms.get(path, _DEFAULT_DIR_PERM),
                    mtime=self._mtimes.get(path, 0.0),
                )
        raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)

    def open(self, path: str) -> MemoryFile:
        return self.open_file(path, os.O_RDONLY)

    def read(self, path: str) -> bytes:
        path = self._resolve(path)
        with self._lock:
            if path not in self.files:
                raise FileNotFoundError(_errno.ENOENT, "No such file", path)
            return self.files[path]

    def exists(self, path: str) -> bool:
        path = self._resolve(path)
        return path in self.files or path in self.dirs

    def isdir(self, path: str) -> bool:
        return self._resolve(path) in self.dirs

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    def open_file(self, path: str, flags: int, perm: int = 0o666) -> MemoryFile:
        name = path
        path = self._resolve(path)
        access = flags & (os.O_RDONLY | os.O_WRONLY | os.O_RDWR)
        readable = access in (os.O_RDONLY, os.O_RDWR)
        writable = access in (os.O_WRONLY, os.O_RDWR)

        with self._lock:
            if path in self.dirs:
                if writable or flags & (os.O_CREAT | os.O_TRUNC):
                    raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
                return MemoryFile(self, path, name, is_dir=True)

            exists = path in self.files
            if exists and flags & os.O_CREAT and flags & os.O_EXCL:
                raise FileExistsError(_errno.EEXIST, "File exists", path)
            if not exists:
                if not flags & os.O_CREAT:
                    raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
                parent = posixpath.dirname(path)
                if parent not in self.dirs:
                    raise FileNotFoundError(_errno.ENOENT, "No such directory", parent)
                self.files[path] = b""
                self._perms[path] = perm & 0o777
                self._mtimes[path] = time.time()

            content = b"" if flags & os.O_TRUNC else self.files[path]
            if flags & os.O_TRUNC and writable:
                self._store(path, b"")

        return MemoryFile(
            self,
            path,
            name,
            content=content,
            readable=readable,
            writable=writable,
            append=bool(flags & os.O_APPEND),
        )

    def create(self, path: str) -> MemoryFile:
        return self.open_file(path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o666)

    def write_file(self, path: str, content: bytes, perm: int = _DEFAULT_FILE_PERM) -> None:
        """Write a file, creating parent directories as needed."""
        path = self._resolve(path)
        with self._lock:
            if path in self.dirs:
                raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
            self.makedirs(posixpath.dirname(path))
            self._perms.setdefault(path, perm & 0o777)
            self._store(path, content)

    def mkdir(self, path: str, perm: int = 0o777) -> None:
        path = self._resolve(path)
        with self._lock:
            if path in self.dirs or path in self.files:
                raise FileExistsError(_errno.EEXIST, "File exists", path)
            parent = posixpath.dirname(path)
            if parent not in self.dirs:
                raise FileNotFoundError(_errno.ENOENT, "No such directory", parent)
            self.dirs.add(path)
            self._perms[path] = perm & 0o777
            self._mtimes[path] = time.time()

    def makedirs(self, path: str, perm: int = 0o777) -> None:
        path = self._resolve(path)
        with self._lock:
            current = ""
            for part in path.strip("/").split("/"):
                if not part:
                    continue
                current += "/" + part
                if current in self.files:
                    raise FileExistsError(_errno.EEXIST, "File exists", current)
                if current not in self.dirs:
                    self.mkdir(current, perm)

    def remove(self, path: str) -> None:
        path = self._resolve(path)
        with self._lock:
            if path in self.files:
                self._forget(path)
                del self.files[path]
                return
            if path not in self.dirs:
                raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
            if self._children(path):
                raise OSError(_errno.ENOTEMPTY, "Directory not empty", path)
            if path == "/":
                raise PermissionError(_errno.EPERM, "Cannot remove root", path)
            self._forget(path)
            self.dirs.discard(path)

    def remove_all(self, path: str) -> None:
        path = self._resolve(path)
        prefix = path.rstrip("/") + "/"
        with self._lock:
            for f in [f for f in self.files if f == path or f.startswith(prefix)]:
                self._forget(f)
                del self.files[f]
            for d in [d for d in self.dirs if d == path or d.startswith(prefix)]:
                if d != "/":
                    self._forget(d)
                    self.dirs.discard(d)

    def rename(self, src: str, dst: str) -> None:
        src = self._resolve(src)
        dst = self._resolve(dst)
        with self._lock:
            if posixpath.dirname(dst) not in self.dirs:
                raise FileNotFoundError(_errno.ENOENT, "No such directory", posixpath.dirname(dst))
            if src in self.files:
                self._move(src, dst)
                self.files[dst] = self.files.pop(src)
            elif src in self.dirs:
                src_prefix = src.rstrip("/") + "/"
                self._move(src, dst)
                self.dirs.discard(src)
                self.dirs.add(dst)
                for d in list(self.dirs):
                    if d.startswith(src_prefix):
                        self._move(d, dst + d[len(src):])
                        self.dirs.discard(d)
                        self.dirs.add(dst + d[len(src):])
                for f in list(self.files):
                    if f.startswith(src_prefix):
                        self._move(f, dst + f[len(src):])
                        self.files[dst + f[len(src):]] = self.files.pop(f)
            else:
                raise FileNotFoundError(_errno.ENOENT, "No such file or directory", src)

    def chmod(self, path: str, mode: int) -> None:
        path = self._resolve(path)
        with self._lock:
            if not self.exists(path):
                raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
            self._perms[path] = mode & 0o777

    def chown(self, path: str, uid: int, gid: int) -> None:
        path = self._resolve(path)
        with self._lock:
            if not self.exists(path):
                raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)

    def chtimes(self, path: str, atime: float, mtime: float) -> None:
        path = self._resolve(path)
        with self._lock:
            if not self.exists(path):
                raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
            self._mtimes[path] = mtime

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _store(self, path: str, content: bytes) -> None:
        with self._lock:
            self.files[path] = content
            self._mtimes[path] = time.time()

    def _forget(self, path: str) -> None:
        self._perms.pop(path, None)
        self._mtimes.pop(path, None)

    def _move(self, src: str, dst: str) -> None:
        if src in self._perms:
            self._perms[dst] = self._perms.pop(src)
        if src in self._mtimes:
            self._mtimes[dst] = self._mtimes.pop(src)

    def _children(self, path: str) -> set[str]:
        prefix = path.rstrip("/") + "/"
        entries: set[str] = set()
        for p in (*self.files, *self.dirs):
            if p != path and p.startswith(prefix):
                entries.add(p[len(prefix):].split("/")[0])
        return entries

    def _list_infos(self, path: str) -> list[FileMetadata]:
        with self._lock:
            if path not in self.dirs:
                if path in self.files:
                    raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", path)
                raise FileNotFoundError(_errno.ENOENT, "No such directory", path)
            prefix = path.rstrip("/") + "/"
            return [self.stat(prefix + child) for child in sorted(self._children(path))]

    @staticmethod
    def _basename(path: str) -> str:
        return posixpath.basename(path) or "/"

    @staticmethod
    def _resolve(path: str) -> str:
        """Root a path at "/" and normalize . and .. components."""
        return posixpath.normpath("/" + path.lstrip("/"))
