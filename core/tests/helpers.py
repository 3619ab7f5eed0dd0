import datetime
import struct
import zipfile

OLD_TIME = (2021, 3, 1, 12, 0, 0)
NEW_TIME = (2022, 7, 15, 8, 30, 0)


class LegacyZipInfo(zipfile.ZipInfo):
    """Writes the member name in a legacy code page without the UTF-8 flag like old Windows backup tools."""

    encoding = 'cp866'

    def _encodeFilenameFlags(self):
        return self.filename.encode(self.encoding), self.flag_bits & ~0x800


def to_timestamp(dateTime) -> float:
    return datetime.datetime(*dateTime, tzinfo=datetime.timezone.utc).timestamp()


def create_archive(path, members, legacyNames: bool = False, compression: int = zipfile.ZIP_DEFLATED):
    """
    members: Iterable of (name, contents, date_time) tuples. They are written in the given order,
             so the position of a member equals its index in this iterable.
    """
    with zipfile.ZipFile(path, 'w', compression=compression) as archive:
        for name, contents, dateTime in members:
            info = LegacyZipInfo(name, dateTime) if legacyNames else zipfile.ZipInfo(name, dateTime)
            info.compress_type = compression
            archive.writestr(info, contents)
    return path


def corrupt_member(path, index: int = 0, size: int = 256) -> None:
    """Inverts size bytes in the middle of the compressed data of the member at the given position."""
    with zipfile.ZipFile(path) as archive:
        info = archive.infolist()[index]

    with open(path, 'r+b') as file:
        # The local file header may carry a different extra field than the central directory.
        file.seek(info.header_offset + 26)
        nameLength, extraLength = struct.unpack('<HH', file.read(4))
        offset = info.header_offset + 30 + nameLength + extraLength + info.compress_size // 2
        size = min(size, info.compress_size // 4)

        file.seek(offset)
        data = bytes(byte ^ 0xFF for byte in file.read(size))
        file.seek(offset)
        file.write(data)
