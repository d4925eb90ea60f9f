"""layerfs: Union filesystem over an ordered list of filesystems."""

from .base import (
    DirEntry,
    File,
    FileMetadata,
    FileSystem,
    FilesystemIterator,
    Lstater,
)
from .config import (
    FSConfig,
    IsolatedFSConfig,
    MemoryFSConfig,
    Options,
    OverlayFSConfig,
    build_fs,
    connect_fs,
)
from .dir import Dir, DirClosedError, open_dir
from .isolated import IsolatedFS
from .memory import MemoryFS
from .merge import DirsMerger, default_dirs_merger
from .overlay import OverlayFS

__all__ = [
    "build_fs",
    "connect_fs",
    "default_dirs_merger",
    "Dir",
    "DirClosedError",
    "DirEntry",
    "DirsMerger",
    "File",
    "FileMetadata",
    "FileSystem",
    "FilesystemIterator",
    "FSConfig",
    "IsolatedFS",
    "IsolatedFSConfig",
    "Lstater",
    "MemoryFS",
    "MemoryFSConfig",
    "open_dir",
    "Options",
    "OverlayFS",
    "OverlayFSConfig",
]
