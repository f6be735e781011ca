"""Lightweight validation helpers."""

from typing import Any


def ensure_present(value: Any, field: str) -> None:
    """Raise ValueError if value is falsy."""
    if value in (None, "", []):
        raise ValueError(f"{field} is required")


def is_present(value: Any) -> bool:
    """Return True when value is a non-blank string or a non-empty collection."""
    if isinstance(value, str):
        return bool(value.strip())
    return value not in (None, [])
