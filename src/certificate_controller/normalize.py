"""Normalization helpers shared by the create and read paths."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime

# Azure tag limits
MAX_TAG_COUNT = 50
MAX_TAG_KEY_LENGTH = 512
MAX_TAG_VALUE_LENGTH = 256


def normalize_location(location: str) -> str:
    """Canonicalize a location so "West US" and "westus" compare equal."""
    return location.replace(" ", "").lower()


def expand_tags(tags: Mapping[str, str] | None) -> dict[str, str]:
    """Convert configured tags into the SDK's tag representation."""
    return {str(key): str(value) for key, value in (tags or {}).items()}


def flatten_tags(tags: Mapping[str, str | None] | None) -> dict[str, str]:
    """Convert SDK tags back into a flat mapping, keeping every key."""
    if not tags:
        return {}
    return {key: "" if value is None else value for key, value in tags.items()}


def validate_tags(tags: Mapping[str, str]) -> list[str]:
    """Return tag limit violations, empty when the tags are acceptable."""
    errors = []
    if len(tags) > MAX_TAG_COUNT:
        errors.append(f"a maximum of {MAX_TAG_COUNT} tags can be applied, got {len(tags)}")
    for key, value in tags.items():
        if len(key) > MAX_TAG_KEY_LENGTH:
            errors.append(f"tag key {key[:32]!r}... exceeds {MAX_TAG_KEY_LENGTH} characters")
        if len(value) > MAX_TAG_VALUE_LENGTH:
            errors.append(f"tag {key!r} value exceeds {MAX_TAG_VALUE_LENGTH} characters")
    return errors


def format_timestamp(value: datetime | None) -> str | None:
    """Format a timestamp as RFC 3339 with second precision.

    Naive datetimes are treated as UTC. UTC is rendered with a trailing "Z".
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat(timespec="seconds").replace("+00:00", "Z")
