"""Streaming access to the entries of a (possibly compressed) tar container.

Containers are read once, front to back, with ``tarfile`` in stream mode, so
an entry's content is only readable until the next entry is requested.
"""

from __future__ import annotations

import enum
import gzip
import io
import tarfile
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from .constants import GZIP_MAGIC
from .errors import InvalidContainerError
from .logging_config import get_logger

# Errors meaning the byte stream is not a valid (compressed) tar container
STRUCTURAL_ERRORS = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile)


class EntryKind(enum.Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    HARDLINK = "hardlink"
    FIFO = "fifo"
    CHARDEV = "chardev"
    BLOCKDEV = "blockdev"


@dataclass
class ArchiveEntry:
    """One record of a tar container.

    ``raw_path`` and ``linkname`` are the header bytes as stored in the
    archive; they are not assumed to be valid text. ``content`` is set for
    regular files only.
    """

    raw_path: bytes
    kind: EntryKind
    size: int = 0
    mode: int = 0o644
    uid: int = 0
    gid: int = 0
    mtime: float = 0
    linkname: bytes = b""
    devmajor: int = 0
    devminor: int = 0
    content: Optional[BinaryIO] = None

    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def display_path(self) -> str:
        return self.raw_path.decode("utf-8", "backslashreplace")


def _encode(name: str) -> bytes:
    return name.encode("utf-8", "surrogateescape")


def _kind_of(member: tarfile.TarInfo) -> EntryKind:
    if member.isdir():
        return EntryKind.DIRECTORY
    if member.issym():
        return EntryKind.SYMLINK
    if member.islnk():
        return EntryKind.HARDLINK
    if member.isfifo():
        return EntryKind.FIFO
    if member.ischr():
        return EntryKind.CHARDEV
    if member.isblk():
        return EntryKind.BLOCKDEV
    # Regular, contiguous, sparse and unknown types are all unpacked as files
    return EntryKind.FILE


def _to_entry(tar: tarfile.TarFile, member: tarfile.TarInfo) -> ArchiveEntry:
    kind = _kind_of(member)
    return ArchiveEntry(
        raw_path=_encode(member.name),
        kind=kind,
        size=member.size,
        mode=member.mode,
        uid=member.uid,
        gid=member.gid,
        mtime=member.mtime,
        linkname=_encode(member.linkname),
        devmajor=member.devmajor,
        devminor=member.devminor,
        content=tar.extractfile(member) if kind is EntryKind.FILE else None,
    )


def iter_entries(stream: BinaryIO) -> Iterator[ArchiveEntry]:
    """Yield the entries of an uncompressed tar stream in archive order.

    Raises:
        InvalidContainerError: If the stream is not a readable tar container
    """
    try:
        with tarfile.open(
            fileobj=stream,
            mode="r|",
            encoding="utf-8",
            errors="surrogateescape",
        ) as tar:
            for member in tar:
                yield _to_entry(tar, member)
    except STRUCTURAL_ERRORS as exc:
        raise InvalidContainerError(f"Invalid container: {exc}", operation="read container") from exc


def _is_seekable(fileobj: BinaryIO) -> bool:
    try:
        return fileobj.seekable()
    except (AttributeError, OSError, ValueError):
        return False


def open_container(fileobj: BinaryIO) -> BinaryIO:
    """Return a stream of tar bytes, decompressing gzip input transparently.

    Seekable input is first read as gzip; if that fails on the header, the
    input is rewound and read as a plain tar. Non-seekable input is buffered
    and its magic bytes are peeked at instead.
    """
    log = get_logger(__name__)
    if _is_seekable(fileobj):
        start = fileobj.tell()
        decompressed = gzip.GzipFile(fileobj=fileobj, mode="rb")
        try:
            decompressed.peek(1)
        except gzip.BadGzipFile:
            log.debug("Input is not gzip compressed; reading it as a plain tar stream.")
            fileobj.seek(start)
            return fileobj
        except (EOFError, zlib.error) as exc:
            raise InvalidContainerError(
                f"Invalid container: truncated or corrupt gzip stream ({exc})",
                operation="detect compression",
            ) from exc
        log.debug("Input is gzip compressed.")
        return decompressed

    buffered = fileobj if isinstance(fileobj, io.BufferedReader) else io.BufferedReader(fileobj)
    if buffered.peek(len(GZIP_MAGIC))[:len(GZIP_MAGIC)] == GZIP_MAGIC:
        log.debug("Input stream is gzip compressed.")
        return gzip.GzipFile(fileobj=buffered, mode="rb")
    return buffered


def open_nested(entry: ArchiveEntry) -> BinaryIO:
    """Open the gzip compressed container stored as ``entry``'s content."""
    if entry.content is None:
        raise InvalidContainerError(
            f"Nested container {entry.display_path!r} is not a regular file",
            path=entry.display_path,
            operation="open nested container",
        )
    return gzip.GzipFile(fileobj=entry.content, mode="rb")
