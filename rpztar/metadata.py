"""Restoration of mode, modification time and ownership of unpacked entries."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Optional

from .config import OwnershipPolicy
from .entries import ArchiveEntry, EntryKind
from .errors import FilesystemError, OwnershipError
from .logging_config import get_logger

_SPECIAL_BITS = stat.S_ISUID | stat.S_ISGID


def _is_link(target: Path, entry: ArchiveEntry) -> bool:
    return entry.kind is EntryKind.SYMLINK or os.path.islink(target)


def apply_mode_and_mtime(target: Path, entry: ArchiveEntry) -> None:
    """Set permissions and modification time without following symlinks.

    A hard link to an archived symlink is itself a symlink, so the kind of
    object on disk decides, not the entry kind.
    """
    try:
        is_link = _is_link(target, entry)
        if not is_link:
            os.chmod(target, stat.S_IMODE(entry.mode))
        if not is_link or os.utime in os.supports_follow_symlinks:
            os.utime(target, (entry.mtime, entry.mtime), follow_symlinks=False)
    except OSError as exc:
        raise FilesystemError(
            f"Error restoring mode/mtime of {str(target)!r}: {exc}",
            path=entry.display_path,
            operation="restore mode",
        ) from exc


def restore_ownership(
    target: Path,
    entry: ArchiveEntry,
    policy: OwnershipPolicy = OwnershipPolicy.STRICT,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """Set owner/group of ``target`` to the archived uid/gid.

    A symlink's own ownership is changed, never its target's. With the
    permissive policy a failure is logged and False is returned; with the
    strict policy it raises OwnershipError.
    """
    log = logger or get_logger(__name__)
    try:
        os.chown(target, entry.uid, entry.gid, follow_symlinks=False)
    except OSError as exc:
        if policy is OwnershipPolicy.PERMISSIVE:
            log.warning(
                "Could not restore ownership of %s to %s:%s: %s",
                target,
                entry.uid,
                entry.gid,
                exc,
            )
            return False
        raise OwnershipError(
            f"Error restoring ownership of {str(target)!r} to {entry.uid}:{entry.gid}: {exc}",
            path=entry.display_path,
            operation="restore ownership",
        ) from exc

    # chown clears setuid/setgid, put them back
    if entry.mode & _SPECIAL_BITS and not _is_link(target, entry):
        try:
            os.chmod(target, stat.S_IMODE(entry.mode))
        except OSError as exc:
            raise FilesystemError(
                f"Error restoring mode of {str(target)!r} after ownership change: {exc}",
                path=entry.display_path,
                operation="restore mode",
            ) from exc
    return True
