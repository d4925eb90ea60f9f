"""Configuration for layered filesystems.

Provides the OverlayFS construction options, configuration dataclasses for
the bundled filesystems, and the connect_fs/build_fs factory functions.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from .merge import DirsMerger


@dataclass(frozen=True)
class Options:
    """Options for OverlayFS.

    Attributes:
        fss: Filesystems to overlay, in priority order (first wins).
        first_writable: Send writes to the first filesystem. When False
            every write fails with PermissionError.
        dirs_merger: Merges the listings of a directory found in several
            filesystems. None means default_dirs_merger.
    """

    fss: Sequence[Any] = ()
    first_writable: bool = False
    dirs_merger: DirsMerger | None = None


@dataclass
class MemoryFSConfig:
    """Configuration for an in-memory filesystem.

    Attributes:
        type: Always "memory".
        files: Initial file contents keyed by path.
    """

    type: Literal["memory"] = "memory"
    files: dict[str, bytes] = field(default_factory=dict)


@dataclass
class IsolatedFSConfig:
    """Configuration for a real filesystem restricted to a directory.

    Attributes:
        type: Always "isolated".
        root: Absolute path to root directory (all file operations restricted to this path).
    """

    type: Literal["isolated"] = "isolated"
    root: str = ""


@dataclass
class OverlayFSConfig:
    """Configuration for an overlay of other filesystems.

    Attributes:
        type: Always "overlay".
        layers: Layer configs in priority order. Layers may be overlays.
        first_writable: Send writes to the first layer.
    """

    type: Literal["overlay"] = "overlay"
    layers: list[FSConfig] = field(default_factory=list)
    first_writable: bool = False


# Type alias for all filesystem configs
FSConfig = Union[MemoryFSConfig, IsolatedFSConfig, OverlayFSConfig]


def connect_fs(
    type: Literal["memory", "isolated", "overlay"] = "memory",
    **kwargs: Any,
) -> FSConfig:
    """Configure a filesystem.

    Args:
        type: FileSystem type.
            - "memory": In-memory filesystem.
            - "isolated": Real filesystem restricted to a directory.
                         Requires 'root' argument.
            - "overlay": Layers of other filesystem configs.
        **kwargs: Additional configuration for the filesystem type.
            For type="memory":
                - files (dict[str, bytes]): Optional initial files.
            For type="isolated":
                - root (str): Required. Absolute path to root directory.
            For type="overlay":
                - layers (list[FSConfig]): Layer configs, first wins.
                - first_writable (bool): Optional. Write to the first layer.

    Returns:
        FSConfig for build_fs().

    Examples:
        >>> connect_fs(type="isolated", root="/srv/site")
        IsolatedFSConfig(type='isolated', root='/srv/site')

        >>> connect_fs(type="overlay", layers=[connect_fs()], first_writable=True)
        OverlayFSConfig(type='overlay', layers=[MemoryFSConfig(type='memory', files={})], first_writable=True)
    """
    if type == "memory":
        files = kwargs.pop("files", None) or {}
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for memory fs: {list(kwargs.keys())}"
            )
        return MemoryFSConfig(files=dict(files))

    elif type == "isolated":
        root = kwargs.pop("root", "")
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for isolated fs: {list(kwargs.keys())}"
            )
        if not root:
            raise ValueError("Isolated filesystem requires 'root' parameter")
        return IsolatedFSConfig(root=root)

    elif type == "overlay":
        layers = kwargs.pop("layers", None) or []
        first_writable = kwargs.pop("first_writable", False)
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for overlay fs: {list(kwargs.keys())}"
            )
        return OverlayFSConfig(layers=list(layers), first_writable=first_writable)

    else:
        raise ValueError(
            f"Unsupported filesystem type: {type}. Use 'memory', 'isolated' or 'overlay'."
        )


def build_fs(config: FSConfig) -> Any:
    """Create the filesystem described by config.

    Overlay configs are built recursively, so nested overlays become nested
    OverlayFS instances.
    """
    from .isolated import IsolatedFS
    from .memory import MemoryFS
    from .overlay import OverlayFS

    if isinstance(config, MemoryFSConfig):
        fs = MemoryFS()
        for path, content in config.files.items():
            fs.write_file(path, content)
        return fs
    if isinstance(config, IsolatedFSConfig):
        return IsolatedFS(config.root)
    if isinstance(config, OverlayFSConfig):
        return OverlayFS(
            Options(
                fss=tuple(build_fs(layer) for layer in config.layers),
                first_writable=config.first_writable,
            )
        )
    raise ValueError(f"Unsupported filesystem config: {config!r}")
