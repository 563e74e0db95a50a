"""Selective extraction against an optional list of relative paths."""

from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, Optional, Union

from .errors import AllowListError

AllowList = FrozenSet[bytes]


def parse_allow_list(data: bytes) -> AllowList:
    """Parse NUL-separated relative paths, ignoring empty records."""
    return frozenset(record for record in data.split(b"\0") if record)


def load_allow_list(path: Union[str, Path]) -> AllowList:
    """Read an allow-list file once.

    Raises:
        AllowListError: If the file cannot be read
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise AllowListError(
            f"Error reading allow-list {str(path)!r}: {exc}",
            operation="read allow-list",
        ) from exc
    return parse_allow_list(data)


def is_selected(canonical: bytes, allow_list: Optional[AllowList]) -> bool:
    """Exact membership test; no allow-list means everything is selected."""
    return allow_list is None or canonical in allow_list
