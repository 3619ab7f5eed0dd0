# pylint: disable=wrong-import-position

import os
import stat
import sys

from helpers import NEW_TIME, OLD_TIME, create_archive, to_timestamp

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest  # noqa: E402
from backupmountcore.operations import (  # noqa: E402
    BLOCK_SIZE,
    ROOT_INODE,
    BackupFileSystem,
    DirectoryEntry,
    FileAttributes,
)
from backupmountcore.utils import NoEntryError  # noqa: E402


@pytest.fixture(name="filesystem")
def fixture_filesystem(backup_monday, backup_tuesday):
    with BackupFileSystem.from_archives([backup_monday.path, backup_tuesday.path], uid=1234, gid=5678) as filesystem:
        yield filesystem


class TestBackupFileSystem:
    @staticmethod
    def test_lookup(filesystem):
        docs = filesystem.lookup(ROOT_INODE, "docs")
        assert docs.is_dir()
        assert docs.mode == stat.S_IFDIR | 0o755

        note = filesystem.lookup(docs.inode, "note.txt")
        assert not note.is_dir()
        assert note.size == 20
        assert note.mtime == to_timestamp(NEW_TIME)
        assert note.mode == stat.S_IFREG | 0o644

        assert filesystem.lookup(docs.inode, "only-monday.txt").mtime == to_timestamp(OLD_TIME)

    @staticmethod
    def test_lookup_errors(filesystem):
        note = filesystem.lookup(filesystem.lookup(ROOT_INODE, "docs").inode, "note.txt")
        with pytest.raises(NoEntryError):
            filesystem.lookup(ROOT_INODE, "readme.txt")
        with pytest.raises(NoEntryError):
            filesystem.lookup(note.inode, "anything")
        with pytest.raises(NoEntryError):
            filesystem.lookup(12345, "docs")

    @staticmethod
    def test_file_attributes(filesystem):
        cat = filesystem.lookup(filesystem.lookup(filesystem.lookup(ROOT_INODE, "photos").inode, "2021").inode, "cat.jpg")
        attributes = filesystem.get_attributes(cat.inode)

        assert attributes == cat
        assert attributes.size == 4000
        assert attributes.blocks == 1
        assert attributes.blockSize == BLOCK_SIZE
        assert attributes.nlink == 1
        assert attributes.uid == 1234
        assert attributes.gid == 5678
        assert attributes.atime == attributes.mtime == attributes.ctime == attributes.crtime

    @staticmethod
    def test_blocks_are_rounded_up(tmp_path):
        path = create_archive(
            tmp_path / "sizes.zip",
            [("a\\empty", b"", OLD_TIME), ("a\\exact", b"x" * BLOCK_SIZE, OLD_TIME), ("a\\more", b"x" * 70000, OLD_TIME)],
        )
        with BackupFileSystem.from_archives([path]) as filesystem:
            folder = filesystem.lookup(ROOT_INODE, "a").inode
            assert filesystem.lookup(folder, "empty").blocks == 0
            assert filesystem.lookup(folder, "exact").blocks == 1
            assert filesystem.lookup(folder, "more").blocks == 2

    @staticmethod
    def test_directory_attributes(filesystem):
        root = filesystem.get_attributes(ROOT_INODE)
        assert root.inode == ROOT_INODE
        assert root.is_dir()
        assert root.size == 0
        assert root.blocks == 0
        assert root.nlink == 2
        assert root.mtime == 0

        with pytest.raises(NoEntryError):
            filesystem.get_attributes(0)
        with pytest.raises(NoEntryError):
            filesystem.get_attributes(10**9)

    @staticmethod
    def test_default_owner(backup_monday):
        with BackupFileSystem.from_archives([backup_monday.path]) as filesystem:
            attributes = filesystem.get_attributes(ROOT_INODE)
            assert attributes.uid == os.getuid()
            assert attributes.gid == os.getgid()

    @staticmethod
    def test_to_stat(filesystem):
        note = filesystem.lookup(filesystem.lookup(ROOT_INODE, "docs").inode, "note.txt")
        result = note.to_stat()
        assert result['st_ino'] == note.inode
        assert result['st_mode'] == stat.S_IFREG | 0o644
        assert result['st_size'] == 20
        assert result['st_nlink'] == 1
        assert result['st_mtime'] == note.mtime
        assert result['st_blocks'] == 1

    @staticmethod
    def test_read_directory(filesystem):
        entries = filesystem.read_directory(ROOT_INODE)
        assert [entry.name for entry in entries] == ["docs", "photos"]
        assert all(entry.mode == stat.S_IFDIR for entry in entries)
        assert [entry.offset for entry in entries] == [1, 2]

        docs = entries[0].inode
        entries = filesystem.read_directory(docs)
        assert [entry.name for entry in entries] == ["note.txt", "only-monday.txt", "only-tuesday.txt"]
        assert all(entry.mode == stat.S_IFREG for entry in entries)

        # Continuing a listing at the offset of an entry yields exactly the entries after it.
        assert filesystem.read_directory(docs, entries[0].offset) == entries[1:]
        assert filesystem.read_directory(docs, entries[-1].offset) == []
        assert filesystem.read_directory(docs, 100) == []

        assert filesystem.read_directory(docs) == entries

    @staticmethod
    def test_read_directory_errors(filesystem):
        note = filesystem.lookup(filesystem.lookup(ROOT_INODE, "docs").inode, "note.txt")
        with pytest.raises(NoEntryError):
            filesystem.read_directory(note.inode)
        with pytest.raises(NoEntryError):
            filesystem.read_directory(999)

    @staticmethod
    def test_open_and_read(filesystem, backup_tuesday):
        note = filesystem.lookup(filesystem.lookup(ROOT_INODE, "docs").inode, "note.txt")
        contents = backup_tuesday.members["docs\\note.txt"][0]

        handle = filesystem.open(note.inode)
        assert filesystem.read(note.inode, handle, 0, 10) == contents[:10]
        assert filesystem.read(note.inode, handle, 10, 100) == contents[10:]
        assert filesystem.read(note.inode, handle, 2, 3) == contents[2:5]
        filesystem.release(handle)

        with pytest.raises(NoEntryError):
            filesystem.open(999)

    @staticmethod
    def test_read_folder(filesystem):
        handle = filesystem.open(ROOT_INODE)
        with pytest.raises(NoEntryError):
            filesystem.read(ROOT_INODE, handle, 0, 10)

    @staticmethod
    def test_value_types():
        entry = DirectoryEntry("a", 2, stat.S_IFREG, 1)
        assert entry == DirectoryEntry("a", 2, stat.S_IFREG, 1)

        # fmt: off
        attributes = FileAttributes(
            inode=2, size=0, blocks=0, atime=0, mtime=0, ctime=0, crtime=0,
            kind=stat.S_IFDIR, perm=0o755, nlink=2, uid=0, gid=0, blockSize=BLOCK_SIZE,
        )
        # fmt: on
        assert attributes.is_dir()
        assert stat.S_ISDIR(attributes.to_stat()['st_mode'])
