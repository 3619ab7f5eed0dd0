"""Backupmount

This is the frontend for backupmount. It is normally not intended to be used as a library.

The installed backupmount script will load this module and call its 'cli' function,
which could also be done programmatically:

    from backupmount.cli import cli

    cli(["--foreground", "/backups/*.zip", "mounted"])

The merging of the archives and the serving of file contents is implemented in the
backupmountcore package.
"""

from .version import __version__
