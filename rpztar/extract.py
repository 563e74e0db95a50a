"""
Extraction of RPZ containers.

One pass reads the entry stream in order. Directory entries are held back
and finalized after everything else, since writing into a directory changes
its mtime and may need permissions its archived mode does not grant. If the
container stores its data in a nested ``DATA.tar.gz``, the outer stream is
abandoned and the pass continues over the nested container, one level deep.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Tuple, Union

from .allowlist import AllowList, is_selected
from .config import ExtractSettings
from .entries import ArchiveEntry, iter_entries, open_container, open_nested
from .errors import FilesystemError
from .logging_config import get_logger
from .metadata import apply_mode_and_mtime, restore_ownership
from .paths import Reserved, classify_reserved, require_canonical
from .reconcile import reconcile

PendingDirectory = Tuple[ArchiveEntry, bytes]


@dataclass
class ExtractionSummary:
    """Counters describing one extraction run."""

    extracted: int = 0
    directories: int = 0
    skipped: int = 0
    ownership_failures: int = 0
    nested: bool = False


class Extractor:
    """Unpacks the ``DATA`` part of an RPZ container into a destination."""

    def __init__(
        self,
        settings: Optional[ExtractSettings] = None,
        allow_list: Optional[AllowList] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or ExtractSettings()
        self.allow_list = allow_list
        self.destination = Path(self.settings.destination)
        self.log = logger or get_logger(__name__)
        # Existing directories made writable on the way, with their previous mode
        self._unlocked: Dict[Path, int] = {}

    def extract(self, fileobj: BinaryIO) -> ExtractionSummary:
        """Extract a gzip compressed or plain container read from ``fileobj``."""
        try:
            self.destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Error creating destination {str(self.destination)!r}: {exc}",
                operation="create destination",
            ) from exc

        summary = ExtractionSummary()
        stream = open_container(fileobj)
        try:
            self._run_pass(stream, nested_allowed=self.settings.follow_nested, summary=summary)
        finally:
            self._relock_directories()
        self.log.info(
            "Extracted %d entries and %d directories into %s (%d skipped%s).",
            summary.extracted,
            summary.directories,
            self.destination,
            summary.skipped,
            ", from nested container" if summary.nested else "",
        )
        return summary

    def _run_pass(self, stream: BinaryIO, nested_allowed: bool, summary: ExtractionSummary) -> None:
        pending: List[PendingDirectory] = []
        with closing(iter_entries(stream)) as entries:
            nested_entry = self._process_stream(entries, nested_allowed, pending, summary)
            if nested_entry is not None:
                # No data left in the outer container, it is all in there
                self.log.info("Following nested container %s", nested_entry.display_path)
                summary.nested = True
                with open_nested(nested_entry) as inner:
                    self._run_pass(inner, nested_allowed=False, summary=summary)
        self._finalize_directories(pending, summary)

    def _process_stream(
        self,
        entries: Iterable[ArchiveEntry],
        nested_allowed: bool,
        pending: List[PendingDirectory],
        summary: ExtractionSummary,
    ) -> Optional[ArchiveEntry]:
        """Unpack non-directory entries, deferring directories.

        Returns the nested container entry if one was found, in which case the
        rest of the stream has not been read.
        """
        for entry in entries:
            reserved = classify_reserved(entry.raw_path)
            if reserved is Reserved.AUXILIARY:
                continue
            if reserved is Reserved.NESTED_CONTAINER and nested_allowed:
                return entry

            canonical = require_canonical(entry.raw_path, self.settings.namespace)
            if canonical is None or not is_selected(canonical, self.allow_list):
                summary.skipped += 1
                continue

            if entry.is_dir():
                pending.append((entry, canonical))
                continue

            target = reconcile(
                self.destination, canonical, entry, self.settings, self.log, unlocked=self._unlocked,
            )
            if target is None:
                summary.skipped += 1
                continue
            self._restore_ownership(target, entry, summary)
            summary.extracted += 1
        return None

    def _finalize_directories(self, pending: List[PendingDirectory], summary: ExtractionSummary) -> None:
        # Create every directory before any of them gets its final, possibly
        # read-only, mode
        targets = []
        for entry, canonical in pending:
            target = reconcile(
                self.destination, canonical, entry, self.settings, self.log,
                apply_metadata=False, unlocked=self._unlocked,
            )
            if target is None:
                summary.skipped += 1
                continue
            targets.append((entry, target))

        for entry, target in targets:
            self._unlocked.pop(target, None)
            apply_mode_and_mtime(target, entry)
            self._restore_ownership(target, entry, summary)
            summary.directories += 1

    def _relock_directories(self) -> None:
        # Deepest first, a parent may lose its search permission again
        for directory, mode in reversed(list(self._unlocked.items())):
            if directory.is_symlink() or not directory.is_dir():
                # Replaced by a later entry
                continue
            try:
                os.chmod(directory, mode)
            except OSError as exc:
                raise FilesystemError(
                    f"Error restoring mode of {str(directory)!r}: {exc}",
                    operation="restore directory mode",
                ) from exc
            self.log.debug("Restored mode %o of %s", mode, directory)
        self._unlocked.clear()

    def _restore_ownership(self, target: Path, entry: ArchiveEntry, summary: ExtractionSummary) -> None:
        if not restore_ownership(target, entry, self.settings.ownership, self.log):
            summary.ownership_failures += 1


def extract_archive(
    archive: Union[str, Path],
    settings: Optional[ExtractSettings] = None,
    allow_list: Optional[AllowList] = None,
    logger: Optional[logging.Logger] = None,
) -> ExtractionSummary:
    """Extract the container at ``archive`` ("-" reads standard input)."""
    extractor = Extractor(settings, allow_list, logger)
    if str(archive) == "-":
        return extractor.extract(sys.stdin.buffer)
    try:
        fileobj = open(archive, "rb")
    except OSError as exc:
        raise FilesystemError(
            f"Error opening container {str(archive)!r}: {exc}",
            operation="open container",
        ) from exc
    with fileobj:
        return extractor.extract(fileobj)


__all__ = ["ExtractionSummary", "Extractor", "extract_archive"]
