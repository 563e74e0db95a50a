"""
Custom exception classes for rpztar.

Every error carries the archive-internal path it concerns (when one is known)
and the operation that was being attempted.
"""

from typing import Optional


class RpzTarError(Exception):
    """Base exception class for rpztar errors."""

    def __init__(self, message: str, path: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.operation = operation


class UnsafePathError(RpzTarError):
    """Raised when an archive path tries to escape the destination tree."""
    pass


class InvalidContainerError(RpzTarError):
    """Raised when the input is neither a gzip nor a plain tar container."""
    pass


class FilesystemError(RpzTarError):
    """Raised when a filesystem operation needed to unpack an entry fails."""
    pass


class CollisionError(FilesystemError):
    """Raised when an existing directory would have to be destroyed but replacement is disabled."""
    pass


class OwnershipError(RpzTarError):
    """Raised when owner/group cannot be restored in strict mode."""
    pass


class AllowListError(RpzTarError):
    """Raised when the allow-list file cannot be read."""
    pass
