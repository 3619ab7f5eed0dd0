import contextlib
import logging
import os
from collections.abc import Iterable, Sequence
from timeit import default_timer as timer
from typing import Optional, Union

from .entries import ROOT_INODE, DirectoryNode, FileNode, ResolvedFile, SourceRef
from .ProgressBar import ProgressBar
from .scanner import DEFAULT_ENCODING, DEFAULT_SEPARATOR, check_encoding, scan_archive
from .utils import ArchiveScanError

logger = logging.getLogger(__name__)


class TreeBuilder:
    """
    Merges the file listings of multiple backup archives into one virtual directory tree.

    encoding:
        Codec used to decode member names that are not flagged as UTF-8.
    separator:
        Archive-native path separator. Windows backups use backslashes.
    keepRootFiles:
        Paths without any directory part are dropped by default. If true, they are put into
        the root directory instead.
    showProgress:
        Show a progress bar while scanning the archives.
    """

    def __init__(
        self,
        encoding: str = DEFAULT_ENCODING,
        separator: str = DEFAULT_SEPARATOR,
        keepRootFiles: bool = False,
        showProgress: bool = False,
        # pylint: disable=unused-argument
        **options,
    ) -> None:
        if not separator:
            raise ValueError("The path separator must not be empty!")

        # fmt: off
        self.encoding      = check_encoding(encoding)
        self.separator     = separator
        self.keepRootFiles = keepRootFiles
        self.showProgress  = showProgress
        # fmt: on

    def merge(self, archivePaths: Sequence[Union[str, os.PathLike]]) -> dict[str, ResolvedFile]:
        """
        Returns the most recent version of each path over all given archives.
        For identical modification times, the archive coming later in archivePaths wins.
        Archives that cannot be scanned are skipped with a warning.
        """
        files: dict[str, ResolvedFile] = {}

        with ProgressBar(len(archivePaths)) if self.showProgress else contextlib.nullcontext() as progressBar:
            for i, archivePath in enumerate(archivePaths):
                try:
                    entries = scan_archive(archivePath, encoding=self.encoding, separator=self.separator)
                except ArchiveScanError as exception:
                    logger.warning("Skipping archive: %s", exception, exc_info=logger.isEnabledFor(logging.DEBUG))
                    entries = []

                for entry in entries:
                    candidate = ResolvedFile(entry.info, SourceRef(os.fspath(archivePath), entry.entryId))
                    existing = files.get(entry.path)
                    if existing is None or candidate.info.mtime >= existing.info.mtime:
                        files[entry.path] = candidate

                if progressBar:
                    progressBar.update(i + 1, os.fspath(archivePath))

        return files

    def build(self, archivePaths: Sequence[Union[str, os.PathLike]]) -> DirectoryNode:
        return self.build_tree(self.merge(archivePaths))

    def split_path(self, path: str) -> Optional[list[str]]:
        """
        Splits an archive-native path into its segments. Empty and '.' segments are dropped.
        Returns None for paths that cannot be represented in the tree.
        """
        parts = [part for part in path.split(self.separator) if part and part != '.']
        if not parts or '..' in parts or any('/' in part or '\0' in part for part in parts):
            return None
        return parts

    def build_tree(self, files: dict[str, ResolvedFile]) -> DirectoryNode:
        """
        Creates the directory tree for the given winning file versions.

        Paths are inserted in sorted order and inodes are assigned in creation order,
        so the same input always results in the same inode numbers.
        """
        t0 = timer()

        # Differently spelled paths, e.g., with doubled separators, may normalize to the same segments.
        normalizedFiles: dict[tuple[str, ...], ResolvedFile] = {}
        for path in sorted(files):
            parts = self.split_path(path)
            if parts is None:
                logger.warning("Skipping unrepresentable path: %s", path)
                continue
            if len(parts) == 1 and not self.keepRootFiles:
                logger.info("Skipping path without parent directory: %s", path)
                continue

            resolved = files[path]
            existing = normalizedFiles.get(tuple(parts))
            if existing is None or resolved.info.mtime >= existing.info.mtime:
                normalizedFiles[tuple(parts)] = resolved

        # A name may not be a file and a directory at the same time. Keep the directory.
        folders = {parts[:i] for parts in normalizedFiles for i in range(1, len(parts))}

        root = DirectoryNode(ROOT_INODE)
        nextInode = ROOT_INODE + 1
        for parts, resolved in sorted(normalizedFiles.items(), key=lambda item: item[0]):
            if parts in folders:
                logger.warning(
                    "Skipping file because a folder with the same path exists: %s", self.separator.join(parts)
                )
                continue

            folder = root
            for name in parts[:-1]:
                child = folder.children.get(name)
                if child is None:
                    child = DirectoryNode(nextInode)
                    nextInode += 1
                    folder.children[name] = child
                assert isinstance(child, DirectoryNode)
                folder = child

            folder.children[parts[-1]] = FileNode(nextInode, resolved)
            nextInode += 1

        logger.info("Built tree with %d nodes in %.3fs.", nextInode - ROOT_INODE, timer() - t0)
        return root


def iterate_tree(root: DirectoryNode) -> Iterable[Union[DirectoryNode, FileNode]]:
    """Yields all nodes of the tree in depth-first pre-order including the root."""
    stack: list[Union[DirectoryNode, FileNode]] = [root]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, DirectoryNode):
            stack.extend(reversed(list(node.children.values())))
