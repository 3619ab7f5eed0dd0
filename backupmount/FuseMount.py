import errno
import logging
import os
from collections.abc import Sequence
from typing import Any, Union

from backupmountcore.operations import ROOT_INODE, BackupFileSystem
from backupmountcore.utils import NoEntryError, overrides

from .fuse import fuse

logger = logging.getLogger(__name__)


class FuseMount(fuse.Operations):
    """
    This class implements the fusepy interface on top of the inode-based BackupFileSystem.
    fusepy is path-based, so paths are resolved to inodes by looking up each path component
    starting from the root directory. Because the tree never changes, resolved paths are memoized.

    All path arguments for overridden fusepy methods do have a leading slash ('/')!

    https://github.com/fusepy/fusepy/blob/master/fuse.py
    https://github.com/libfuse/libfuse/blob/master/include/fuse.h
    """

    def __init__(self, pathToMount: Union[str, Sequence[str]], mountPoint: str, **options) -> None:
        self.mountPoint = os.path.realpath(mountPoint)  # Strip trailing slashes and normalizes.

        if os.path.exists(self.mountPoint) and not os.path.isdir(self.mountPoint):
            raise ValueError(f"Mount point '{self.mountPoint}' must either not exist or be a directory!")

        if isinstance(pathToMount, (str, os.PathLike)):
            pathToMount = [os.fspath(pathToMount)]

        self.fileSystem = BackupFileSystem.from_archives(list(pathToMount), **options)
        self._inodes: dict[str, int] = {'/': ROOT_INODE}

        self.mountPointWasCreated = False
        if not os.path.exists(self.mountPoint):
            os.mkdir(self.mountPoint)
            self.mountPointWasCreated = True
            logger.info("Created mount point at: %s", self.mountPoint)

    def __enter__(self):
        return self

    def __exit__(self, exception_type, exception_value, exception_traceback):
        self._close()

    def _close(self) -> None:
        self.fileSystem.close()

        if self.mountPointWasCreated:
            try:
                os.rmdir(self.mountPoint)
                self.mountPointWasCreated = False
            except OSError as exception:
                logger.warning(
                    "Failed to remove the created mount point '%s' because of: %s",
                    self.mountPoint,
                    exception,
                    exc_info=logger.isEnabledFor(logging.DEBUG),
                )

    def _resolve(self, path: str) -> int:
        inode = self._inodes.get(path)
        if inode is not None:
            return inode

        parentPath, name = path.rstrip('/').rsplit('/', 1)
        try:
            inode = self.fileSystem.lookup(self._resolve(parentPath or '/'), name).inode
        except NoEntryError as exception:
            raise fuse.FuseOSError(errno.ENOENT) from exception

        self._inodes[path] = inode
        return inode

    @overrides(fuse.Operations)
    def getattr(self, path: str, fh=None) -> dict[str, Any]:
        try:
            return self.fileSystem.get_attributes(self._resolve(path)).to_stat()
        except NoEntryError as exception:
            raise fuse.FuseOSError(errno.ENOENT) from exception

    @overrides(fuse.Operations)
    def readdir(self, path: str, fh):
        try:
            entries = self.fileSystem.read_directory(self._resolve(path))
        except NoEntryError as exception:
            raise fuse.FuseOSError(errno.ENOENT) from exception

        # fusepy does not forward the readdir offset to us, so always return all entries with offset 0.
        yield '.'
        yield '..'
        for entry in entries:
            yield entry.name, {'st_ino': entry.inode, 'st_mode': entry.mode}, 0

    @overrides(fuse.Operations)
    def open(self, path: str, flags: int) -> int:
        """Returns file handle of opened path."""
        if flags & (os.O_WRONLY | os.O_RDWR):
            raise fuse.FuseOSError(errno.EROFS)

        try:
            return self.fileSystem.open(self._resolve(path), flags)
        except NoEntryError as exception:
            raise fuse.FuseOSError(errno.ENOENT) from exception

    @overrides(fuse.Operations)
    def read(self, path: str, size: int, offset: int, fh) -> bytes:
        try:
            return self.fileSystem.read(self._resolve(path), fh, offset, size)
        except NoEntryError as exception:
            raise fuse.FuseOSError(errno.ENOENT) from exception

    @overrides(fuse.Operations)
    def release(self, path: str, fh) -> int:
        self.fileSystem.release(fh)
        return 0

    @overrides(fuse.Operations)
    def destroy(self, path: str) -> None:
        self.fileSystem.close()
