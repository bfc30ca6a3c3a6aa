"""Composite ledger keys built from an object type and attributes."""

from __future__ import annotations

from typing import Iterable

_MIN_RUNE = "\x00"
_MAX_RUNE = "\U0010ffff"
_NAMESPACE = "\x00"


class CompositeKeyError(ValueError):
    """An object type or attribute cannot be part of a composite key."""


def _rune_label(char: str) -> str:
    return f"U+{ord(char):04X}"


def _validate_attribute(value: str) -> None:
    try:
        encoded = value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise CompositeKeyError(
            f"not a valid utf8 string: [{value.encode('utf-8', 'surrogatepass').hex()}]"
        ) from exc
    del encoded
    for position, char in enumerate(value):
        if char in (_MIN_RUNE, _MAX_RUNE):
            byte_offset = len(value[:position].encode("utf-8"))
            raise CompositeKeyError(
                f"input contain unicode {_rune_label(char)} starting at position "
                f"[{byte_offset}]. {_rune_label(_MIN_RUNE)} and {_rune_label(_MAX_RUNE)} "
                "are not allowed in the input attribute of a composite key"
            )


def create_composite_key(object_type: str, attributes: Iterable[str]) -> str:
    """Join an object type and attributes into a composite key."""
    _validate_attribute(object_type)
    parts = [_NAMESPACE, object_type, _MIN_RUNE]
    for attribute in attributes:
        _validate_attribute(attribute)
        parts.append(attribute)
        parts.append(_MIN_RUNE)
    return "".join(parts)


def split_composite_key(composite_key: str) -> tuple[str, list[str]]:
    """Split a composite key into its object type and attributes.

    A key without separators is returned unchanged with no attributes.
    """
    pieces = composite_key[1:].split(_MIN_RUNE)
    if len(pieces) == 1:
        return composite_key, []
    components = pieces[:-1]
    return components[0], components[1:]