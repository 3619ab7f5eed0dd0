#!/usr/bin/env python3

import dataclasses
import zipfile
from pathlib import Path

import pytest
from helpers import NEW_TIME, OLD_TIME, create_archive


@dataclasses.dataclass
class SampleBackup:
    path: Path
    # name -> (contents, date_time) in the order they were written
    members: dict[str, tuple[bytes, tuple]]


def _create_backup(path: Path, members: dict[str, tuple[bytes, tuple]], **kwargs) -> SampleBackup:
    create_archive(path, [(name, contents, dateTime) for name, (contents, dateTime) in members.items()], **kwargs)
    return SampleBackup(path=path, members=members)


@pytest.fixture(name="backup_monday")
def fixture_backup_monday(tmp_path):
    return _create_backup(
        tmp_path / "monday.zip",
        {
            "docs\\": (b"", OLD_TIME),
            "docs\\note.txt": (b"0123456789", OLD_TIME),
            "docs\\only-monday.txt": (b"monday", OLD_TIME),
            "photos\\2021\\cat.jpg": (b"meow" * 1000, OLD_TIME),
        },
    )


@pytest.fixture(name="backup_tuesday")
def fixture_backup_tuesday(tmp_path):
    return _create_backup(
        tmp_path / "tuesday.zip",
        {
            "docs\\note.txt": (b"01234567890123456789", NEW_TIME),
            "docs\\only-tuesday.txt": (b"tuesday", NEW_TIME),
            "readme.txt": (b"no folder", NEW_TIME),
        },
    )


@pytest.fixture(name="big_file_backup")
def fixture_big_file_backup(tmp_path):
    # Incompressible enough to span multiple deflate blocks but deterministic.
    contents = bytes((i * 7 + i // 251) % 256 for i in range(200_000))
    return _create_backup(tmp_path / "big.zip", {"data\\big.bin": (contents, NEW_TIME)})


@pytest.fixture(name="stored_backup")
def fixture_stored_backup(tmp_path):
    return _create_backup(
        tmp_path / "stored.zip",
        {"data\\plain.txt": (b"uncompressed contents " * 100, OLD_TIME)},
        compression=zipfile.ZIP_STORED,
    )


@pytest.fixture(name="broken_backup")
def fixture_broken_backup(tmp_path):
    path = tmp_path / "broken.zip"
    path.write_bytes(b"PK\x03\x04 this is not really a zip file")
    return path
