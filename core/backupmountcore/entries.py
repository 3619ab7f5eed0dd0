import dataclasses
from typing import Union

# The root directory is created before any other node and always has this inode.
ROOT_INODE = 1


@dataclasses.dataclass(frozen=True)
class FileInfo:
    # fmt: off
    mtime : float  # seconds since the epoch
    size  : int
    # fmt: on


@dataclasses.dataclass(frozen=True)
class ScannedEntry:
    """One file found while listing an archive. The path is still archive-native, e.g., with backslashes."""

    # fmt: off
    entryId : int  # position inside the archive's central directory
    path    : str
    info    : FileInfo
    # fmt: on


@dataclasses.dataclass(frozen=True)
class SourceRef:
    """
    Locates the content of a file so that it can be opened again at any later time.
    It does not keep anything open by itself.
    """

    # fmt: off
    archivePath : str
    entryId     : int
    # fmt: on


@dataclasses.dataclass(frozen=True)
class ResolvedFile:
    # fmt: off
    info   : FileInfo
    source : SourceRef
    # fmt: on


@dataclasses.dataclass
class FileNode:
    # fmt: off
    inode    : int
    resolved : ResolvedFile
    # fmt: on


@dataclasses.dataclass
class DirectoryNode:
    # fmt: off
    inode    : int
    children : dict[str, "VirtualNode"] = dataclasses.field(default_factory=dict)
    # fmt: on


VirtualNode = Union[FileNode, DirectoryNode]
