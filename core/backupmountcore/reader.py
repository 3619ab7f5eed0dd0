import logging
import lzma
import zipfile
import zlib
from typing import IO, Optional

from .entries import FileNode, SourceRef
from .index import InodeIndex
from .scanner import ARCHIVE_ERRORS
from .utils import NoEntryError

logger = logging.getLogger(__name__)

# Errors raised by the zipfile decompressors. bz2 reports corrupt data as OSError.
DECODE_ERRORS = (zlib.error, lzma.LZMAError, *ARCHIVE_ERRORS)


class OpenedEntry:
    """
    Owns an opened archive together with the decompressing stream for one of its members.
    Both are created and closed together, and the stream is never handed out on its own,
    so it cannot outlive the archive it reads from.

    The stream is only ever read forward. Reading at an offset before the current position is
    not possible with this object. The caller has to open a new one instead, see is_viable.
    """

    # Discarded bytes are read in chunks of this size so that skipping far ahead does not
    # require a buffer proportional to the skipped distance.
    SKIP_CHUNK_SIZE = 64 * 1024

    def __init__(self, source: SourceRef) -> None:
        self.source = source
        self.offset = 0
        self.broken = False

        self._archive = zipfile.ZipFile(source.archivePath, 'r')
        try:
            infos = self._archive.infolist()
            if not 0 <= source.entryId < len(infos):
                raise zipfile.BadZipFile(
                    f"Archive '{source.archivePath}' has no member with index {source.entryId} anymore."
                )
            self._stream: Optional[IO[bytes]] = self._archive.open(infos[source.entryId], 'r')
        except BaseException:
            self._archive.close()
            raise

    def __enter__(self):
        return self

    def __exit__(self, exception_type, exception_value, exception_traceback):
        self.close()

    @property
    def closed(self) -> bool:
        return self._stream is None

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        self._archive.close()

    def is_viable(self, offset: int) -> bool:
        """Returns true if a read at the given offset can continue with this decoder."""
        return not self.broken and not self.closed and offset >= self.offset

    def read_bytes(self, offset: int, size: int) -> bytes:
        """
        Skips forward to offset and returns up to size bytes. Fewer bytes are returned at the end of
        the member or when decompression fails. In the latter case, the object becomes unviable.
        """
        if not self.is_viable(offset):
            raise ValueError(f"Cannot read backwards from offset {self.offset} to {offset}!")
        assert self._stream is not None

        data = b""
        try:
            toSkip = offset - self.offset
            while toSkip > 0:
                skipped = len(self._stream.read(min(toSkip, self.SKIP_CHUNK_SIZE)))
                if skipped == 0:
                    break
                toSkip -= skipped

            if toSkip == 0 and size > 0:
                data = self._stream.read(size)
        except DECODE_ERRORS as exception:
            logger.warning(
                "Failed to decompress member %d of '%s': %s",
                self.source.entryId,
                self.source.archivePath,
                exception,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            self.broken = True

        self.offset = offset + len(data)
        return data


class ReadEngine:
    """
    Manages the decoder states for all file handles. Handle IDs are never reused.
    The decoder for a handle is only opened on the first read so that handles which are
    opened but never read from do not cost anything.

    Calls must be serialized. Concurrent reads on the same handle would race on the decoder position.
    """

    def __init__(self, index: InodeIndex) -> None:
        self.index = index
        self.handles: dict[int, Optional[OpenedEntry]] = {}
        self.lastFileHandle: int = 0  # It will be incremented before being returned. So, 0 is never returned.

    def __enter__(self):
        return self

    def __exit__(self, exception_type, exception_value, exception_traceback):
        self.close()

    def close(self) -> None:
        for openedEntry in self.handles.values():
            if openedEntry is not None:
                openedEntry.close()
        self.handles.clear()

    # pylint: disable=unused-argument
    def open(self, inode: int) -> int:
        self.lastFileHandle += 1
        self.handles[self.lastFileHandle] = None
        return self.lastFileHandle

    def _source(self, inode: int) -> SourceRef:
        node = self.index.get(inode)
        if not isinstance(node, FileNode):
            raise NoEntryError(f"Inode {inode} is not a file.")
        return node.resolved.source

    @staticmethod
    def _open_entry(inode: int, source: SourceRef) -> OpenedEntry:
        try:
            return OpenedEntry(source)
        except (NotImplementedError, RuntimeError, *DECODE_ERRORS) as exception:
            logger.error(
                "Failed to open member %d of '%s': %s",
                source.entryId,
                source.archivePath,
                exception,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise NoEntryError(f"Content of inode {inode} is not accessible anymore.") from exception

    def read(self, handle: int, inode: int, offset: int, size: int) -> bytes:
        source = self._source(inode)
        openedEntry = self.handles.get(handle)
        if openedEntry is None or openedEntry.source != source or not openedEntry.is_viable(offset):
            if openedEntry is not None:
                logger.debug("Reopen inode %d for handle %d to read at offset %d.", inode, handle, offset)
                openedEntry.close()
            # Leave the handle without state until the new decoder exists, so that a failure does not
            # leave a stale decoder behind and the next read simply tries again.
            self.handles[handle] = None
            openedEntry = self._open_entry(inode, source)
            self.handles[handle] = openedEntry

        return openedEntry.read_bytes(offset, size)

    def release(self, handle: int) -> None:
        openedEntry = self.handles.pop(handle, None)
        if openedEntry is not None:
            openedEntry.close()
