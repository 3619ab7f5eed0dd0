import dataclasses
import logging
import os
import stat
from collections.abc import Sequence
from typing import Any, Optional, Union

from .entries import ROOT_INODE, DirectoryNode, FileNode, VirtualNode
from .index import InodeIndex
from .reader import ReadEngine
from .tree import TreeBuilder
from .utils import NoEntryError, ceil_div

logger = logging.getLogger(__name__)

__all__ = ['ATTRIBUTE_TTL', 'BLOCK_SIZE', 'ROOT_INODE', 'BackupFileSystem', 'DirectoryEntry', 'FileAttributes']

BLOCK_SIZE = 64 * 1024
# Backups never change while mounted, so attributes and directory entries may be cached for long.
ATTRIBUTE_TTL = 24 * 60 * 60.0

FILE_PERMISSIONS = 0o644
DIRECTORY_PERMISSIONS = 0o755


@dataclasses.dataclass(frozen=True)
class FileAttributes:
    # fmt: off
    inode     : int
    size      : int
    blocks    : int
    atime     : float
    mtime     : float
    ctime     : float
    crtime    : float
    kind      : int  # stat.S_IFREG or stat.S_IFDIR
    perm      : int
    nlink     : int
    uid       : int
    gid       : int
    blockSize : int
    # fmt: on

    @property
    def mode(self) -> int:
        return self.kind | self.perm

    def is_dir(self) -> bool:
        return self.kind == stat.S_IFDIR

    def to_stat(self) -> dict[str, Any]:
        """Returns the attributes with the key names of the POSIX stat struct as used by fusepy."""
        # fmt: off
        return {
            'st_ino'     : self.inode,
            'st_mode'    : self.mode,
            'st_nlink'   : self.nlink,
            'st_uid'     : self.uid,
            'st_gid'     : self.gid,
            'st_size'    : self.size,
            'st_atime'   : self.atime,
            'st_mtime'   : self.mtime,
            'st_ctime'   : self.ctime,
            'st_blksize' : self.blockSize,
            'st_blocks'  : self.blocks,
        }
        # fmt: on


@dataclasses.dataclass(frozen=True)
class DirectoryEntry:
    # fmt: off
    name   : str
    inode  : int
    mode   : int  # only the file type bits
    offset : int  # position of the next entry, to be used as start for a continued listing
    # fmt: on


class BackupFileSystem:
    """
    Inode-based query surface over the merged backup tree. This is what a FUSE binding calls into.

    Every identifier that cannot be resolved, e.g., unknown inodes, a file inode where a directory
    is required, or missing names, raises NoEntryError. No other errors are raised by the query methods.
    """

    def __init__(self, root: DirectoryNode, uid: Optional[int] = None, gid: Optional[int] = None) -> None:
        self.index = InodeIndex(root)
        self.readEngine = ReadEngine(self.index)
        self.uid = os.getuid() if uid is None else uid
        self.gid = os.getgid() if gid is None else gid

    @classmethod
    def from_archives(cls, archivePaths: Sequence[Union[str, os.PathLike]], **options) -> "BackupFileSystem":
        """
        Scans the given archives and builds the merged tree.
        Supported options: encoding, separator, keepRootFiles, showProgress, uid, gid.
        """
        root = TreeBuilder(**options).build(archivePaths)
        return cls(root, uid=options.get('uid'), gid=options.get('gid'))

    def __enter__(self):
        return self

    def __exit__(self, exception_type, exception_value, exception_traceback):
        self.close()

    def close(self) -> None:
        self.readEngine.close()

    def _node(self, inode: int) -> VirtualNode:
        node = self.index.get(inode)
        if node is None:
            raise NoEntryError(f"Unknown inode: {inode}")
        return node

    def _directory(self, inode: int) -> DirectoryNode:
        node = self._node(inode)
        if not isinstance(node, DirectoryNode):
            raise NoEntryError(f"Inode {inode} is not a directory.")
        return node

    def _attributes(self, node: VirtualNode) -> FileAttributes:
        if isinstance(node, FileNode):
            info = node.resolved.info
            # fmt: off
            return FileAttributes(
                inode     = node.inode,
                size      = info.size,
                blocks    = ceil_div(info.size, BLOCK_SIZE),
                atime     = info.mtime,
                mtime     = info.mtime,
                ctime     = info.mtime,
                crtime    = info.mtime,
                kind      = stat.S_IFREG,
                perm      = FILE_PERMISSIONS,
                nlink     = 1,
                uid       = self.uid,
                gid       = self.gid,
                blockSize = BLOCK_SIZE,
            )
            # fmt: on

        # Directories are only implied by file paths and have no metadata of their own.
        # fmt: off
        return FileAttributes(
            inode     = node.inode,
            size      = 0,
            blocks    = 0,
            atime     = 0.0,
            mtime     = 0.0,
            ctime     = 0.0,
            crtime    = 0.0,
            kind      = stat.S_IFDIR,
            perm      = DIRECTORY_PERMISSIONS,
            nlink     = 2,
            uid       = self.uid,
            gid       = self.gid,
            blockSize = BLOCK_SIZE,
        )
        # fmt: on

    def lookup(self, parentInode: int, name: str) -> FileAttributes:
        child = self._directory(parentInode).children.get(name)
        if child is None:
            raise NoEntryError(f"No entry named '{name}' in inode {parentInode}.")
        return self._attributes(child)

    def get_attributes(self, inode: int) -> FileAttributes:
        return self._attributes(self._node(inode))

    # pylint: disable=unused-argument
    def open(self, inode: int, flags: int = os.O_RDONLY) -> int:
        self._node(inode)
        return self.readEngine.open(inode)

    def read(self, inode: int, handle: int, offset: int, size: int) -> bytes:
        return self.readEngine.read(handle, inode, offset, size)

    def read_directory(self, inode: int, start: int = 0) -> list[DirectoryEntry]:
        """
        Returns the children of the directory beginning at position start. The order is stable
        for the lifetime of the tree. Each entry carries the position at which a continued
        listing should start.
        """
        children = self._directory(inode).children
        return [
            DirectoryEntry(name, child.inode, stat.S_IFDIR if isinstance(child, DirectoryNode) else stat.S_IFREG, i + 1)
            for i, (name, child) in enumerate(children.items())
            if i >= start
        ]

    def release(self, handle: int) -> None:
        self.readEngine.release(handle)
