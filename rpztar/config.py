"""Extraction settings sourced from the environment and the command line."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from pathlib import Path

from .constants import NAMESPACE
from .logging_config import get_logger


class OwnershipPolicy(enum.Enum):
    """What to do when owner/group cannot be restored."""

    STRICT = "strict"
    PERMISSIVE = "permissive"


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def env_bool(key: str, default: bool = False) -> bool:
    value = (os.environ.get(key) or "").strip().lower()
    if not value:
        return default
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    get_logger(__name__).warning(
        "Invalid %s %r; falling back to %s. Use one of: %s.",
        key,
        value,
        "on" if default else "off",
        ", ".join(sorted(_TRUE_WORDS | _FALSE_WORDS)),
    )
    return default


def env_ownership(key: str, default: OwnershipPolicy = OwnershipPolicy.STRICT) -> OwnershipPolicy:
    value = (os.environ.get(key) or "").strip().lower()
    if not value:
        return default
    try:
        return OwnershipPolicy(value)
    except ValueError:
        get_logger(__name__).warning(
            "Invalid %s %r; falling back to %s. Valid values: %s.",
            key,
            value,
            default.value,
            ", ".join(policy.value for policy in OwnershipPolicy),
        )
        return default


@dataclass
class ExtractSettings:
    """Typed extraction settings."""

    destination: Path = Path(".")
    ownership: OwnershipPolicy = OwnershipPolicy.STRICT
    replace_directories: bool = True
    follow_nested: bool = True
    namespace: bytes = NAMESPACE

    @classmethod
    def from_env(cls) -> "ExtractSettings":
        return cls(
            destination=Path(os.environ.get("RPZTAR_DESTINATION") or "."),
            ownership=env_ownership("RPZTAR_OWNERSHIP"),
            replace_directories=env_bool("RPZTAR_REPLACE_DIRECTORIES", True),
            follow_nested=env_bool("RPZTAR_FOLLOW_NESTED", True),
        )
