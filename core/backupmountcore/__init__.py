"""Backupmount Core

This is the backend of backupmount. It is intended to be used as a library.

It merges the listings of many ZIP backup snapshots into one immutable virtual directory
tree, in which every path shows its most recent version, and serves file contents by
decompressing archive members lazily and forward-only. The query surface is inode-based
and independent of any particular FUSE binding.

Example:

    from backupmountcore.operations import BackupFileSystem, ROOT_INODE

    with BackupFileSystem.from_archives(["monday.zip", "tuesday.zip"]) as fileSystem:
        for entry in fileSystem.read_directory(ROOT_INODE):
            print(entry.name, entry.inode)

        attributes = fileSystem.lookup(ROOT_INODE, "Documents")
        handle = fileSystem.open(attributes.inode)
        ...
        fileSystem.release(handle)
"""

from .version import __version__
