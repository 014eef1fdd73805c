"""Owned-field comparison between a stored PocketBase record and a payload.

PocketBase never stores null: an unset text or relation field reads back as
``""``, an unset number as ``0`` and an unset bool as ``false``.  A payload
``None`` therefore matches those zero values instead of counting as a change.
"""

from collections.abc import Iterable
from typing import Any


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_zero_value(value: Any) -> bool:
    if value is None or value is False or value == "":
        return True
    return _is_number(value) and value == 0


def values_differ(old: Any, new: Any) -> bool:
    """Return True when ``new`` should overwrite ``old``.

    Type-strict (``"0"`` and ``0`` differ), except that ints and floats
    compare numerically and ``None`` on either side matches PocketBase's
    zero value for the other (``""``, ``0``, ``false``).
    """
    if old is None or new is None:
        return not (_is_zero_value(old) and _is_zero_value(new))
    if _is_number(old) and _is_number(new):
        return old != new
    return type(old) is not type(new) or old != new


def detect_field_changes(
    existing: dict[str, Any],
    incoming: dict[str, Any],
    compare_fields: Iterable[str] | None = None,
) -> dict[str, tuple[Any, Any]]:
    """Map each changed field to its ``(stored, incoming)`` pair.

    Only ``compare_fields`` are inspected; without them every public key the
    two dicts share is compared.  A field missing from ``existing`` reads as
    ``None``.
    """
    if compare_fields is None:
        compare_fields = (key for key in incoming if key in existing and not key.startswith("_"))

    return {
        name: (existing.get(name), incoming.get(name))
        for name in compare_fields
        if values_differ(existing.get(name), incoming.get(name))
    }
