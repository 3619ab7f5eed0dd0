import argparse
import glob
import logging
import os
from typing import Any

from backupmountcore.scanner import check_encoding
from backupmountcore.utils import remove_duplicates_stable

logger = logging.getLogger(__name__)

# Maps the --debug level to the log level of the root logger.
DEBUG_LOG_LEVELS = {0: logging.ERROR, 1: logging.WARNING, 2: logging.INFO}


def log_level_from_debug(debug: int) -> int:
    return DEBUG_LOG_LEVELS.get(debug, logging.DEBUG if debug > 2 else logging.ERROR)


def configure_logging(debug: int) -> None:
    """Routes all log output through rich so that it interleaves nicely with the scan progress bar."""
    # pylint: disable=import-outside-toplevel
    from rich.logging import RichHandler

    logging.basicConfig(
        level=log_level_from_debug(debug),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=debug > 2, rich_tracebacks=debug > 2)],
        force=True,
    )


def expand_archive_globs(patterns: list[str]) -> list[str]:
    """
    Expands each pattern into the sorted list of matching files. Patterns without any matches
    are taken as literal paths so that a missing archive results in a helpful error.
    The order of the patterns is kept because later archives win ties between identical timestamps.
    """
    paths: list[str] = []
    for pattern in patterns:
        expanded = sorted(path for path in glob.glob(os.path.expanduser(pattern)) if os.path.isfile(path))
        if not expanded and not glob.has_magic(pattern):
            expanded = [pattern]
        if not expanded:
            logger.warning("Pattern '%s' did not match any archive.", pattern)
        paths.extend(expanded)
    return remove_duplicates_stable(os.path.realpath(path) for path in paths)


def check_input_file_type(path: str) -> str:
    """Raises an exception if the path does not point to a readable file else returns the real path."""
    if not os.path.isfile(path):
        raise argparse.ArgumentTypeError(f"File '{path}' is not a file!")
    if not os.access(path, os.R_OK):
        raise argparse.ArgumentTypeError(f"File '{path}' is not readable!")
    return os.path.realpath(path)


def process_trivial_parsed_arguments(args) -> None:
    """
    Checks and post-processes 'trivial' arguments, i.e., those that do not depend on others or require
    filesystem access for checks.
    """
    try:
        args.encoding = check_encoding(args.encoding)
    except ValueError as exception:
        raise argparse.ArgumentTypeError(str(exception)) from exception

    if not args.separator:
        raise argparse.ArgumentTypeError("The path separator must not be empty!")

    if args.attribute_timeout < 0:
        raise argparse.ArgumentTypeError("The attribute timeout must not be negative!")


def parse_fuse_options(fuseOptions: str) -> dict[str, Any]:
    """Converts the comma separated list of key[=value] options into a dictionary for fusepy."""
    if not fuseOptions:
        return {}
    return dict(
        option.split('=', 1) if '=' in option else (option, True) for option in fuseOptions.split(',') if option
    )


def parsed_args_to_options(args) -> dict[str, Any]:
    # fmt: off
    return {
        'pathToMount'   : args.mount_source,
        'mountPoint'    : args.mount_point,
        'encoding'      : args.encoding,
        'separator'     : args.separator,
        'keepRootFiles' : bool(args.keep_root_files),
        'showProgress'  : not args.no_progress,
    }
    # fmt: on
