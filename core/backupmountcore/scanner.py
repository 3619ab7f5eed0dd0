import codecs
import datetime
import logging
import os
import zipfile
from timeit import default_timer as timer
from typing import Union

from .entries import FileInfo, ScannedEntry
from .utils import ArchiveScanError

logger = logging.getLogger(__name__)

# Windows backups store paths with backslashes and names in the OEM code page of the system
# that created them. CP866 is the OEM code page for Cyrillic Windows installations.
DEFAULT_ENCODING = 'cp866'
DEFAULT_SEPARATOR = '\\'

# General purpose bit 11: file name and comment are encoded in UTF-8.
UTF8_FLAG = 0x800

# Exceptions zipfile may raise for unreadable or corrupt archives.
ARCHIVE_ERRORS = (OSError, EOFError, ValueError, zipfile.BadZipFile, zipfile.LargeZipFile)


def check_encoding(encoding: str) -> str:
    """Returns the canonical codec name or raises ValueError for unknown encodings."""
    try:
        return codecs.lookup(encoding).name
    except LookupError as exception:
        raise ValueError(f"Unknown file name encoding: {encoding}") from exception


def decode_name(info: zipfile.ZipInfo, encoding: str) -> str:
    """
    Returns the member name decoded with the given encoding. Undecodable bytes are replaced.

    zipfile decodes names without the UTF-8 flag as CP437. Because CP437 maps all 256 byte values,
    encoding it again recovers the raw name bytes exactly.
    """
    if info.flag_bits & UTF8_FLAG:
        return info.filename

    try:
        rawName = info.filename.encode('cp437')
    except UnicodeEncodeError:
        # The ZipFile was opened with a custom metadata_encoding, so the name is already decoded.
        return info.filename
    return rawName.decode(encoding, errors='replace')


def modification_time(info: zipfile.ZipInfo) -> float:
    # ZIP stores DOS timestamps without any time zone. Treat them as UTC like the rest of the code base.
    try:
        return datetime.datetime(*info.date_time, tzinfo=datetime.timezone.utc).timestamp()
    except (TypeError, ValueError, OverflowError):
        return 0.0


def scan_archive(
    archivePath: Union[str, os.PathLike],
    encoding: str = DEFAULT_ENCODING,
    separator: str = DEFAULT_SEPARATOR,
) -> list[ScannedEntry]:
    """
    Lists all file members of a ZIP archive without decompressing anything.
    Directory members are skipped because directories are reconstructed from the file paths.

    Raises ArchiveScanError if the archive cannot be opened or parsed.
    """
    t0 = timer()
    try:
        with zipfile.ZipFile(archivePath, 'r') as archive:
            infos = archive.infolist()
    except ARCHIVE_ERRORS as exception:
        raise ArchiveScanError(f"Failed to list archive '{archivePath}': {exception}") from exception

    entries: list[ScannedEntry] = []
    for entryId, info in enumerate(infos):
        if info.is_dir():
            continue

        name = decode_name(info, encoding)
        if not name or name.endswith(separator):
            continue

        entries.append(ScannedEntry(entryId, name, FileInfo(mtime=modification_time(info), size=info.file_size)))

    logger.debug(
        "Listed %d files out of %d members in '%s' in %.3fs.", len(entries), len(infos), archivePath, timer() - t0
    )
    return entries
