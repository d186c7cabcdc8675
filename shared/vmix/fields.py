"""
Wire-name helpers for vMix input fields.

Field identifiers are persisted bare (``TeamA``); the suffix that tells vMix
which attribute of the title element to address is appended only when a
command is built.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Union


class UnknownFieldKind(ValueError):
    """Raised when a field kind has no wire suffix (config/schema mismatch)."""

    def __init__(self, kind: Any):
        super().__init__(f"Unknown field kind: {kind!r}")
        self.kind = kind


class FieldKind(Enum):
    TEXT = "text"
    IMAGE = "image"
    FILL = "fill"

    @classmethod
    def parse(cls, value: Union["FieldKind", str, None]) -> "FieldKind":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if normalized == member.value:
                    return member
        raise UnknownFieldKind(value)


FIELD_SUFFIXES: Dict[FieldKind, str] = {
    FieldKind.TEXT: ".Text",
    FieldKind.IMAGE: ".Source",
    FieldKind.FILL: ".Fill.Color",
}

# Longest first so ".Fill.Color" is never mistaken for a shorter suffix
_SUFFIXES_LONGEST_FIRST = sorted(FIELD_SUFFIXES.values(), key=len, reverse=True)


def to_wire_name(identifier: Optional[str], kind: Union[FieldKind, str]) -> str:
    """Append the kind's suffix unless the identifier already carries it."""
    suffix = FIELD_SUFFIXES[FieldKind.parse(kind)]
    name = "" if identifier is None else str(identifier)
    if name.endswith(suffix):
        return name
    return name + suffix


def strip_suffix(identifier: Optional[str]) -> str:
    if not identifier:
        return ""

    name = str(identifier)
    for suffix in _SUFFIXES_LONGEST_FIRST:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def has_suffix(identifier: Optional[str], kind: Union[FieldKind, str]) -> bool:
    if not identifier:
        return False
    try:
        suffix = FIELD_SUFFIXES[FieldKind.parse(kind)]
    except UnknownFieldKind:
        return False
    return str(identifier).endswith(suffix)
