"""Presence overrides.

Lets callers toggle params on or off without spelling out values:
- key or +key → present (True)
- -key → absent (None), which also masks a default for that key
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class PresenceOverride(Enum):
    """Override mode for a param."""

    PRESENT = "present"  # coerced to True
    ABSENT = "absent"  # coerced to None


@dataclass
class OverrideSet:
    """Parsed presence overrides.

    Attributes:
        overrides: Mapping of param key to override mode
        raw: Original text for debugging
    """

    overrides: dict[str, PresenceOverride]
    raw: str

    def get_override(self, key: str) -> PresenceOverride | None:
        """Get the override mode for a key, or None if not mentioned."""
        return self.overrides.get(key)

    def as_params(self) -> dict[str, Any]:
        """Convert to explicit params (True for present, None for absent)."""
        return {
            key: True if mode is PresenceOverride.PRESENT else None for key, mode in self.overrides.items()
        }


def parse_overrides(value: str | Iterable[str] | None) -> OverrideSet:
    """Parse presence overrides.

    Format: comma-separated keys (or an iterable of keys)
    - +key or key → present
    - -key → absent

    Args:
        value: Raw text, iterable of keys, or None

    Returns:
        OverrideSet with parsed overrides

    Examples:
        >>> parse_overrides("archived,-page").as_params()
        {'archived': True, 'page': None}
        >>> parse_overrides(None).overrides
        {}
    """
    if not value:
        return OverrideSet(overrides={}, raw="")

    parts = value.split(",") if isinstance(value, str) else list(value)
    raw = value.strip() if isinstance(value, str) else ",".join(parts)

    overrides: dict[str, PresenceOverride] = {}
    for part in parts:
        part = part.strip()
        if not part:
            continue

        if part.startswith("-"):
            key = part[1:]
            if key:
                overrides[key] = PresenceOverride.ABSENT
        elif part.startswith("+"):
            key = part[1:]
            if key:
                overrides[key] = PresenceOverride.PRESENT
        else:
            overrides[part] = PresenceOverride.PRESENT

    if overrides:
        logger.debug("Parsed presence overrides: %s", overrides)

    return OverrideSet(overrides=overrides, raw=raw)


def merge_overrides(
    params: Mapping[str, Any] | None,
    presence_keys: Iterable[str] = (),
    extra: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge params, presence keys (as True) and extra params, later winning."""
    merged = dict(params or {})
    merged.update({key: True for key in presence_keys})
    merged.update(extra or {})
    return merged
