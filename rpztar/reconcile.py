"""Make room for an entry on disk and write it.

Existing filesystem objects lose to the archive: files and symlinks in the
way of a directory are deleted, and a directory in the way of a
non-directory entry is removed with its whole tree.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Dict, Optional

from .config import ExtractSettings
from .constants import COPY_BUFFER_SIZE
from .entries import STRUCTURAL_ERRORS, ArchiveEntry, EntryKind
from .errors import CollisionError, FilesystemError, InvalidContainerError, UnsafePathError
from .logging_config import get_logger
from .metadata import apply_mode_and_mtime
from .paths import destination_path, require_canonical

_DEVICE_TYPES = {
    EntryKind.CHARDEV: stat.S_IFCHR,
    EntryKind.BLOCKDEV: stat.S_IFBLK,
}


def _lstat(path: Path, entry: ArchiveEntry) -> Optional[os.stat_result]:
    try:
        return os.lstat(path)
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise FilesystemError(
            f"Error stat()ing {str(path)!r} to unpack {entry.display_path!r}: {exc}",
            path=entry.display_path,
            operation="stat",
        ) from exc


def prepare_ancestors(
    destination: Path,
    canonical: bytes,
    entry: ArchiveEntry,
    unlocked: Optional[Dict[Path, int]] = None,
) -> None:
    """Create the directories leading to ``canonical``, replacing non-directories.

    Existing directories the process cannot write into get owner ``rwx``
    added. Their previous mode is recorded in ``unlocked`` (first one wins) so
    the caller can put it back once extraction is over.
    """
    ancestor = destination
    for part in canonical.split(b"/")[:-1]:
        ancestor = ancestor / os.fsdecode(part)
        info = _lstat(ancestor, entry)
        if info is not None:
            if stat.S_ISDIR(info.st_mode):
                if not os.access(ancestor, os.W_OK | os.X_OK):
                    _make_writable(ancestor, info, entry)
                    if unlocked is not None:
                        unlocked.setdefault(ancestor, stat.S_IMODE(info.st_mode))
                continue
            try:
                os.unlink(ancestor)
            except OSError as exc:
                raise FilesystemError(
                    f"Error deleting {str(ancestor)!r} to unpack {entry.display_path!r}: {exc}",
                    path=entry.display_path,
                    operation="delete blocking file",
                ) from exc
        try:
            os.mkdir(ancestor)
        except OSError as exc:
            raise FilesystemError(
                f"Error creating directory {str(ancestor)!r} to unpack {entry.display_path!r}: {exc}",
                path=entry.display_path,
                operation="create directory",
            ) from exc


def _make_writable(directory: Path, info: os.stat_result, entry: ArchiveEntry) -> None:
    try:
        os.chmod(directory, stat.S_IMODE(info.st_mode) | stat.S_IRWXU)
    except OSError as exc:
        raise FilesystemError(
            f"Error making {str(directory)!r} writable to unpack {entry.display_path!r}: {exc}",
            path=entry.display_path,
            operation="chmod directory",
        ) from exc


def clear_target(
    target: Path,
    entry: ArchiveEntry,
    replace_directories: bool = True,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Remove whatever occupies ``target`` unless it can be reused."""
    log = logger or get_logger(__name__)
    info = _lstat(target, entry)
    if info is None:
        return

    if stat.S_ISDIR(info.st_mode):
        if entry.is_dir():
            return
        if not replace_directories:
            raise CollisionError(
                f"Refusing to remove directory {str(target)!r} to extract {entry.kind.value} over it",
                path=entry.display_path,
                operation="remove directory",
            )
        log.warning("Removing directory %s to extract %s over it", target, entry.kind.value)
        try:
            shutil.rmtree(target)
        except OSError as exc:
            raise FilesystemError(
                f"Error removing directory {str(target)!r} to extract file over: {exc}",
                path=entry.display_path,
                operation="remove directory",
            ) from exc
        return

    try:
        os.unlink(target)
    except OSError as exc:
        raise FilesystemError(
            f"Error removing file {str(target)!r} to extract {entry.kind.value} over it: {exc}",
            path=entry.display_path,
            operation="remove file",
        ) from exc


def _write_file(target: Path, entry: ArchiveEntry) -> None:
    with open(target, "xb") as out:
        if entry.content is None:
            return
        try:
            shutil.copyfileobj(entry.content, out, COPY_BUFFER_SIZE)
        except STRUCTURAL_ERRORS as exc:
            raise InvalidContainerError(
                f"Invalid container while reading {entry.display_path!r}: {exc}",
                path=entry.display_path,
                operation="read entry content",
            ) from exc


def _hardlink_source(destination: Path, entry: ArchiveEntry, namespace: bytes) -> Path:
    canonical = require_canonical(entry.linkname, namespace)
    if canonical is None:
        raise UnsafePathError(
            f"Hard link {entry.display_path!r} points outside of the archive data",
            path=entry.display_path,
            operation="create hard link",
        )
    source = destination_path(destination, canonical)
    # Symlinks unpacked earlier may lead the source path out of the destination
    parent = os.path.realpath(source.parent)
    root = os.path.realpath(destination)
    if os.path.commonpath([parent, root]) != root:
        raise UnsafePathError(
            f"Hard link {entry.display_path!r} resolves outside of the destination",
            path=entry.display_path,
            operation="create hard link",
        )
    return Path(parent, source.name)


def materialize(target: Path, entry: ArchiveEntry, destination: Path, namespace: bytes) -> None:
    """Create the filesystem object for ``entry`` at ``target``."""
    kind = entry.kind
    try:
        if kind is EntryKind.FILE:
            _write_file(target, entry)
        elif kind is EntryKind.DIRECTORY:
            if not target.is_dir():
                os.mkdir(target)
        elif kind is EntryKind.SYMLINK:
            os.symlink(os.fsdecode(entry.linkname), target)
        elif kind is EntryKind.HARDLINK:
            os.link(_hardlink_source(destination, entry, namespace), target, follow_symlinks=False)
        elif kind is EntryKind.FIFO:
            os.mkfifo(target)
        else:
            os.mknod(
                target,
                stat.S_IMODE(entry.mode) | _DEVICE_TYPES[kind],
                os.makedev(entry.devmajor, entry.devminor),
            )
    except OSError as exc:
        raise FilesystemError(
            f"failed to unpack {str(target)!r}: {exc}",
            path=entry.display_path,
            operation=f"create {kind.value}",
        ) from exc


def reconcile(
    destination: Path,
    canonical: bytes,
    entry: ArchiveEntry,
    settings: ExtractSettings,
    logger: Optional[logging.Logger] = None,
    apply_metadata: bool = True,
    unlocked: Optional[Dict[Path, int]] = None,
) -> Optional[Path]:
    """Unpack one entry at its canonical location below ``destination``.

    Returns the path written, or None if the entry was skipped.
    """
    log = logger or get_logger(__name__)
    target = destination_path(destination, canonical)
    if target.parent == target:
        return None

    prepare_ancestors(destination, canonical, entry, unlocked)
    clear_target(target, entry, settings.replace_directories, log)
    materialize(target, entry, destination, settings.namespace)
    if apply_metadata:
        apply_mode_and_mtime(target, entry)
    log.debug("Unpacked %s %s", entry.kind.value, target)
    return target
