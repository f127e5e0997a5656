"""Helpers describing the PatMatch value model.

Source values are ordinary Python objects: scalars (str, int, float, bool,
None), sequences (list, tuple) and mappings (any Mapping, or a plain object
whose attributes are looked up by name).
"""

from collections.abc import Mapping
from typing import Any


def is_number(value: Any) -> bool:
    """Check if a value is an int or float (booleans are not numbers)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_scalar(value: Any) -> bool:
    """Check if a value is a string, number, boolean or None."""
    return value is None or isinstance(value, (str, int, float, bool))


def is_sequence(value: Any) -> bool:
    """Check if a value is a list or tuple."""
    return isinstance(value, (list, tuple))


def is_mapping(value: Any) -> bool:
    """Check if a value is a key/value mapping."""
    return isinstance(value, Mapping)


def values_equal(left: Any, right: Any) -> bool:
    """
    Compare two scalars by primitive kind and value.

    A boolean never equals a number, a number never equals a string, while
    an int and a float of the same value are equal.

    Args:
        left: First scalar
        right: Second scalar

    Returns:
        True if both values are the same kind and equal
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if is_number(left) and is_number(right):
        return bool(left == right)

    if isinstance(left, str) and isinstance(right, str):
        return left == right

    return left is None and right is None


def type_name(value: Any) -> str:
    """Return a short type name for error messages."""
    if value is None:
        return "null"

    if isinstance(value, bool):
        return "boolean"

    if is_number(value):
        return "number"

    if isinstance(value, str):
        return "string"

    if is_sequence(value):
        return "sequence"

    if is_mapping(value):
        return "mapping"

    return type(value).__name__


def format_value(value: Any, limit: int = 60) -> str:
    """
    Format a source value for display in error messages.

    Args:
        value: Value to format
        limit: Maximum length before the text is truncated

    Returns:
        Readable representation of the value
    """
    text = repr(value)
    if len(text) > limit:
        text = text[:limit - 3] + "..."

    return text
