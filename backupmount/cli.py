#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# We explicitly do want to import everything as late as possible here so that --help and --version
# do not have to load FUSE.
# pylint: disable=import-outside-toplevel

import argparse
import sys
import traceback
from typing import Optional

from backupmountcore.operations import ATTRIBUTE_TTL
from backupmountcore.scanner import DEFAULT_ENCODING, DEFAULT_SEPARATOR
from backupmountcore.utils import BackupMountError


class _CustomFormatter(argparse.ArgumentDefaultsHelpFormatter, argparse.RawDescriptionHelpFormatter):
    def add_arguments(self, actions):
        actions = sorted(actions, key=lambda x: getattr(x, 'option_strings'))
        super().add_arguments(actions)


class PrintVersionAction(argparse.Action):
    def __call__(self, parser, args, values, option_string=None):
        from .actions import print_versions

        print_versions()
        parser.exit()


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='backupmount',
        formatter_class=_CustomFormatter,
        add_help=False,
        description='''\
With backupmount, you can:
  - Mount a series of ZIP backup snapshots as one read-only folder
  - See the most recent version of every file over all snapshots
  - Read files without extracting any archive, decompressing only what is requested
''',
        epilog='''\
Examples:

 - backupmount '/backups/*.zip' mountpoint
 - backupmount monday.zip tuesday.zip mountpoint
 - backupmount --encoding cp1251 --foreground 'D:/Backup Set*/*.zip' mountpoint
 - backupmount --unmount mountpoint
''',
    )

    commonGroup = parser.add_argument_group("Optional Arguments")
    positionalGroup = parser.add_argument_group("Positional Options")
    archiveGroup = parser.add_argument_group("Archive Options")
    advancedGroup = parser.add_argument_group("Advanced Options")

    # fmt: off
    commonGroup.add_argument(
        '-h', '--help', action='help', default=argparse.SUPPRESS,
        help='Show this help message and exit.')

    commonGroup.add_argument(
        '-u', '--unmount', action='store_true',
        help='Unmount the given mount point(s). Equivalent to calling "fusermount -u" for each mount point.')

    commonGroup.add_argument(
        '-v', '--version', action=PrintVersionAction, nargs=0, default=argparse.SUPPRESS,
        help='Print version information and exit.')

    # Archive Options

    archiveGroup.add_argument(
        '-e', '--encoding', type=str, default=DEFAULT_ENCODING,
        help='Specify the encoding used for member names that are not flagged as UTF-8. '
             'Windows backups use the OEM code page of the creating system, e.g., cp437, cp850, or cp866. '
             'Undecodable bytes are replaced. '
             'Possible encodings: https://docs.python.org/3/library/codecs.html#standard-encodings')

    archiveGroup.add_argument(
        '--separator', type=str, default=DEFAULT_SEPARATOR,
        help='The path separator used inside the archives.')

    archiveGroup.add_argument(
        '--keep-root-files', action='store_true', default=False,
        help='Files without any folder in their archive path are skipped by default. '
             'If specified, they will be shown in the mount point root instead.')

    # Advanced Options

    advancedGroup.add_argument(
        '-o', '--fuse', type=str, default='',
        help='Comma separated FUSE options. See "man mount.fuse" for help. '
             'Example: --fuse "allow_other,gid=0". ')

    advancedGroup.add_argument(
        '-f', '--foreground', action='store_true', default=False,
        help='Keeps the python program in foreground so it can print debug '
             'output when the mounted path is accessed.')

    advancedGroup.add_argument(
        '-d', '--debug', type=int, default=1,
        help='Sets the debugging level. Higher means more output. Currently, 3 is the highest.')

    advancedGroup.add_argument(
        '--attribute-timeout', type=float, default=ATTRIBUTE_TTL,
        help='Seconds for which the kernel may cache file attributes and directory entries.')

    advancedGroup.add_argument(
        '--no-progress', action='store_true', default=False,
        help='Do not show a progress bar while scanning the archives.')

    # Positional Arguments

    positionalGroup.add_argument(
        'mount_source', nargs='+',
        help='Paths or glob patterns for the backup archives. Quote patterns to keep the shell from '
             'expanding them. If the same file exists in multiple archives, the version with the most '
             'recent modification time is shown. For identical times, archives specified later win.')
    positionalGroup.add_argument(
        'mount_point', nargs='?',
        help='The path to a folder to mount the merged backups into.')
    # fmt: on

    return parser


def _parse_args(rawArgs: Optional[list[str]] = None):
    return create_parser().parse_args(rawArgs)


def cli(rawArgs: Optional[list[str]] = None) -> int:
    """
    Command line interface for backupmount. Call with args = [ '--help' ] for a description.

    rawArgs: In general, rawArgs is None, meaning sys.argv is used. When used programmatically with a custom
             list of arguments, the first argument should not be the path to the script / the executable,
             i.e., call either cli() or cli(sys.argv[1:])!
    """

    # Manually parse --debug argument in case argument parsing with argparse itself goes wrong.
    tmpArgs = rawArgs if rawArgs else sys.argv
    debug = 1
    for i in range(len(tmpArgs) - 1):
        if tmpArgs[i] in ['-d', '--debug'] and tmpArgs[i + 1].isdecimal():
            debug = int(tmpArgs[i + 1])

    try:
        args = _parse_args(rawArgs)
        from .actions import process_parsed_arguments

        return process_parsed_arguments(args)
    except (FileNotFoundError, BackupMountError, argparse.ArgumentTypeError, ValueError) as exception:
        print("[Error]", exception)
        if debug >= 3:
            traceback.print_exc()

    return 1


if __name__ == '__main__':
    sys.exit(cli())
