import argparse
import importlib.metadata as imeta
import logging
import os
import re
import shutil
import subprocess
import sys
import time
from typing import Optional

import backupmountcore.version
from backupmountcore.utils import BackupMountError

from . import CLIHelpers
from .version import __version__

logger = logging.getLogger(__name__)


def _find_distribution_version(name: str) -> Optional[str]:
    try:
        return imeta.version(name)
    except imeta.PackageNotFoundError:
        return None


def print_versions() -> None:
    print("backupmount", __version__)
    print("backupmountcore", backupmountcore.version.__version__)

    print()
    print("System Software:")
    print()
    print("Python", sys.version.split(' ', maxsplit=1)[0])

    try:
        fusermountVersion = subprocess.run(
            ["fusermount", "--version"], stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=False
        ).stdout.strip()
        print("fusermount", re.sub('.* ([0-9][.][0-9.]+).*', r'\1', fusermountVersion.decode()))
    except OSError:
        pass

    print()
    print("Python Modules:")
    print()
    for name in ['mfusepy', 'fusepy', 'rich']:
        version = _find_distribution_version(name)
        if version:
            print(name, version)


def unmount(mountPoint: str) -> None:
    # Do not test with os.path.ismount or anything other because if the FUSE process was killed without
    # unmounting, then any file system query might return with errors.
    try:
        subprocess.run(["fusermount", "-u", mountPoint], check=True, capture_output=True)
        logger.info("Successfully called fusermount -u.")
        return
    except (OSError, subprocess.CalledProcessError) as exception:
        logger.info("fusermount -u %s failed with: %s", mountPoint, exception)

    if os.path.ismount(mountPoint) and shutil.which("umount"):
        try:
            subprocess.run(["umount", mountPoint], check=True, capture_output=True)
            logger.info("Successfully called umount '%s'.", mountPoint)
        except (OSError, subprocess.CalledProcessError) as exception:
            logger.info("umount %s failed with: %s", mountPoint, exception)


def unmount_list_checked(mountPoints: list[str]) -> int:
    if not mountPoints:
        raise argparse.ArgumentTypeError("Unmounting requires a path to the mount point!")

    for mountPoint in mountPoints:
        unmount(mountPoint)

    # Unmounting might take some time. Only wait once for all mount points.
    errorPrinted = False
    if any(os.path.ismount(mountPoint) for mountPoint in mountPoints):
        time.sleep(1)
        for mountPoint in mountPoints:
            if not os.path.ismount(mountPoint):
                continue
            if not errorPrinted:
                logger.error(
                    "Failed to unmount the given mount point. Alternatively, the process providing the "
                    "mount point can be looked for and killed, e.g., with this command:"
                )
                errorPrinted = True
            logger.error("""    pkill --full 'backupmount.*%s' -G "$( id -g )" --newest""", mountPoint)

    return 1 if errorPrinted else 0


def process_parsed_arguments(args) -> int:
    CLIHelpers.configure_logging(args.debug)

    if args.unmount:
        # args.mount_source suffices because it eats all arguments and args.mount_point is always empty by default.
        return unmount_list_checked([mountPoint for mountPoint in args.mount_source or [] if mountPoint])

    # All positional arguments, including the mount point, are parsed into args.mount_source
    # because of the variable number of archive arguments. Separate the last one manually.
    if len(args.mount_source) < 2 and not args.mount_point:
        raise argparse.ArgumentTypeError("You must specify at least one archive and the mount point!")
    if not args.mount_point:
        args.mount_point = args.mount_source.pop()
    if os.path.exists(args.mount_point) and not os.path.isdir(args.mount_point):
        raise argparse.ArgumentTypeError(f"Mount point '{args.mount_point}' must either not exist or be a folder!")
    args.mount_point = os.path.realpath(args.mount_point)

    CLIHelpers.process_trivial_parsed_arguments(args)

    args.mount_source = [
        CLIHelpers.check_input_file_type(path) for path in CLIHelpers.expand_archive_globs(args.mount_source)
    ]
    if not args.mount_source:
        raise argparse.ArgumentTypeError("The given patterns did not match any archive!")
    logger.info("Found %d archives to merge.", len(args.mount_source))

    create_fuse_mount(args)  # Throws on errors.
    return 0


def create_fuse_mount(args) -> None:
    # Import late so that FUSE is only required for actually mounting.
    # pylint: disable=import-outside-toplevel
    from .fuse import fuse
    from .FuseMount import FuseMount

    fusekwargs = {
        'fsname': 'backupmount',
        'ro': True,
        'use_ino': True,
        'kernel_cache': True,
        'entry_timeout': args.attribute_timeout,
        'attr_timeout': args.attribute_timeout,
    }
    fusekwargs.update(CLIHelpers.parse_fuse_options(args.fuse))

    with FuseMount(**CLIHelpers.parsed_args_to_options(args)) as fuseOperationsObject:
        try:
            fuse.FUSE(
                operations=fuseOperationsObject,
                mountpoint=args.mount_point,
                foreground=args.foreground,
                nothreads=True,  # Handle states are not synchronized, so requests must be serialized.
                **fusekwargs,
            )
        except RuntimeError as exception:
            raise BackupMountError(
                "FUSE mountpoint could not be created. See previous output for more information."
            ) from exception
