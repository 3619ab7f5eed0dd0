import os
import platform
from collections.abc import Iterable
from typing import get_type_hints


class BackupMountError(Exception):
    """Base exception for backupmount modules."""


class ArchiveScanError(BackupMountError):
    """Exception for archives that cannot be opened or whose member listing cannot be parsed."""


class NoEntryError(BackupMountError):
    """Exception for inodes, handles, or names that do not resolve to a suitable tree node."""


def overrides(parentClass):
    """Simple decorator that checks that a method with the same name exists in the parent class"""

    def overrider(method):
        if platform.python_implementation() == 'PyPy':
            return method

        assert method.__name__ in dir(parentClass)
        parentMethod = getattr(parentClass, method.__name__)
        assert callable(parentMethod)

        if os.getenv('BACKUPMOUNT_CHECK_OVERRIDES', '').lower() not in ('1', 'yes', 'on', 'enable', 'enabled'):
            return method

        # fusepy is not typed, so only arguments typed in both classes can be compared.
        parentTypes = get_type_hints(parentMethod)
        for argument, argumentType in get_type_hints(method).items():
            if argument in parentTypes:
                parentType = parentTypes[argument]
                assert argumentType == parentType, f"{method.__name__}: {argument}: {argumentType} != {parentType}"

        return method

    return overrider


def ceil_div(dividend, divisor):
    return -(dividend // -divisor)


def remove_duplicates_stable(iterable: Iterable):
    seen = set()
    deduplicated = []
    for x in iterable:
        if x not in seen:
            deduplicated.append(x)
            seen.add(x)
    return deduplicated
