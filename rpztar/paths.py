"""Canonicalization of archive-internal paths.

Archive paths are raw bytes. They are split on ``/`` and walked component by
component: empty and ``.`` components are ignored, a ``..`` component anywhere
rejects the whole path, and the first real component has to be the namespace
literal. What remains is a relative path below the destination.
"""

from __future__ import annotations

import enum
import os
from pathlib import Path
from typing import List, NamedTuple, Optional

from .constants import AUXILIARY_NAMES, NAMESPACE, NESTED_CONTAINER_NAME
from .errors import UnsafePathError


class PathStatus(enum.Enum):
    REJECTED = "rejected"
    NOT_IN_NAMESPACE = "not-in-namespace"
    CANONICAL = "canonical"


class CanonicalResult(NamedTuple):
    """Outcome of canonicalizing one raw archive path."""
    status: PathStatus
    path: bytes = b""

    @property
    def is_noop(self) -> bool:
        return self.status is PathStatus.CANONICAL and not self.path


class Reserved(enum.Enum):
    NONE = "none"
    AUXILIARY = "auxiliary"
    NESTED_CONTAINER = "nested-container"


class _State(enum.Enum):
    EXPECT_NAMESPACE = 0
    INSIDE = 1
    OUTSIDE = 2


def split_components(raw_path: bytes) -> List[bytes]:
    """Split a raw path into its real components, dropping root and ``.`` markers."""
    return [part for part in raw_path.split(b"/") if part not in (b"", b".")]


def canonicalize(raw_path: bytes, namespace: bytes = NAMESPACE) -> CanonicalResult:
    """Map a raw archive path to a destination-relative path.

    Returns ``REJECTED`` if any component is ``..``, ``NOT_IN_NAMESPACE`` if
    the first real component is not ``namespace``, and ``CANONICAL``
    otherwise. A canonical result with an empty path means the entry names the
    destination itself and has nothing to unpack.
    """
    state = _State.EXPECT_NAMESPACE
    accumulated: List[bytes] = []
    for part in raw_path.split(b"/"):
        if part in (b"", b"."):
            continue
        if part == b"..":
            return CanonicalResult(PathStatus.REJECTED)
        if state is _State.EXPECT_NAMESPACE:
            state = _State.INSIDE if part == namespace else _State.OUTSIDE
        elif state is _State.INSIDE:
            accumulated.append(part)
    if state is not _State.INSIDE:
        return CanonicalResult(PathStatus.NOT_IN_NAMESPACE)
    return CanonicalResult(PathStatus.CANONICAL, b"/".join(accumulated))


def require_canonical(raw_path: bytes, namespace: bytes = NAMESPACE) -> Optional[bytes]:
    """Canonicalize ``raw_path``, raising on traversal.

    Returns None for entries that are skipped (outside the namespace, or
    naming the destination itself).
    """
    result = canonicalize(raw_path, namespace)
    if result.status is PathStatus.REJECTED:
        raise UnsafePathError(
            f"invalid path: {display_path(raw_path)!r}",
            path=display_path(raw_path),
            operation="canonicalize",
        )
    if result.status is PathStatus.NOT_IN_NAMESPACE or result.is_noop:
        return None
    return result.path


def classify_reserved(raw_path: bytes) -> Reserved:
    """Recognize the top-level names an RPZ container reserves."""
    components = split_components(raw_path)
    if not components:
        return Reserved.NONE
    if components[0] in AUXILIARY_NAMES:
        return Reserved.AUXILIARY
    if components == [NESTED_CONTAINER_NAME]:
        return Reserved.NESTED_CONTAINER
    return Reserved.NONE


def destination_path(destination: Path, canonical: bytes) -> Path:
    """Join a canonical path below ``destination``."""
    return destination.joinpath(*(os.fsdecode(part) for part in canonical.split(b"/")))


def display_path(raw_path: bytes) -> str:
    return raw_path.decode("utf-8", "backslashreplace")
