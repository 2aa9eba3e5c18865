"""Helpers shared by the ``to_dict()`` / ``from_dict()`` implementations.

Records are flat dicts with enums stored as integer ordinals. Readers must
tolerate absent keys (older data) by falling back to the same defaults the
dataclass constructors use; only an ordinal that names no enum member is a
hard failure.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

E = TypeVar("E", bound=Enum)


class AffixDataError(ValueError):
    """Serialized affix data can't be turned into a valid resource.

    Raised only while loading data. Asset validation should surface this before
    a combat ever starts.
    """


def enum_to_ordinal(member: Enum) -> int:
    return int(member.value)


def enum_from_ordinal(enum_cls: type[E], value: Any, default: E) -> E:
    """Decode an enum field.

    ``None`` means the field was absent and yields ``default``. Members and
    member names are accepted as well as ordinals so hand-written data stays
    readable.

    Raises:
        AffixDataError: If ``value`` doesn't identify a member of ``enum_cls``.
    """
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str) and not value.lstrip("-").isdigit():
        try:
            return enum_cls[value.upper()]
        except KeyError:
            raise AffixDataError(
                f"'{value}' is not a valid {enum_cls.__name__} name"
            ) from None
    try:
        return enum_cls(int(value))
    except (TypeError, ValueError):
        raise AffixDataError(
            f"{value!r} is not a valid {enum_cls.__name__} ordinal"
        ) from None


def to_bool(value: Any) -> bool:
    """Robustly convert a value to a boolean.

    Handles common string representations for True (e.g., "true", "1", "yes")
    and False (e.g., "false", "0", "no"). Falls back to standard Python
    boolean casting for other types.
    """
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on", "t", "y"}:
            return True
        if lowered in {"false", "0", "no", "off", "f", "n"}:
            return False
    return bool(value)


def read_number(record: dict[str, Any], key: str, default: float) -> float:
    """Read a numeric field, keeping ints as ints."""
    value = record.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float):
        return value
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise AffixDataError(f"Field '{key}' is not numeric: {value!r}") from None
    return int(as_float) if as_float.is_integer() else as_float
