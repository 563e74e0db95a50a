"""Shared CLI helpers for the rpztar command."""

import sys
from typing import Optional

from rpztar.constants import ExitCodes
from rpztar.errors import (
    AllowListError,
    FilesystemError,
    InvalidContainerError,
    OwnershipError,
    UnsafePathError,
)


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: Exception) -> Optional[int]:
    """Translate known exceptions to rpztar exit codes."""
    if isinstance(exc, UnsafePathError):
        return ExitCodes.UNSAFE_PATH
    if isinstance(exc, InvalidContainerError):
        return ExitCodes.INVALID_CONTAINER
    if isinstance(exc, FilesystemError):
        return ExitCodes.FILESYSTEM_ERROR
    if isinstance(exc, OwnershipError):
        return ExitCodes.OWNERSHIP_ERROR
    if isinstance(exc, AllowListError):
        return ExitCodes.ALLOW_LIST_ERROR
    return None
