"""Defensive coercion helpers for loosely-typed brief fields.

Brief payloads arrive from form posts, parsed documents and legacy records, so a
field that should be a number may be a string, a list may be a comma separated
string, and booleans may be ``"yes"``. Every reader here returns a sensible
empty value instead of raising.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Iterable, List, Mapping, Optional, cast

_TRUTHY_STRINGS = frozenset({"true", "yes", "y", "1", "on"})
_DIGITS = re.compile(r"(\d{1,6})")


def to_number(value: Any) -> Optional[float]:
    """Parse a finite number from numbers or numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_count(value: Any) -> Optional[int]:
    """Return the first positive integer found in ``value`` (``"3 major prizes"`` -> 3)."""
    if value is None or isinstance(value, bool):
        return None
    match = _DIGITS.search(str(value))
    if not match:
        return None
    count = int(match.group(1))
    return count if count > 0 else None


def to_bool(value: Any) -> bool:
    """Interpret boolean-ish values (``True``, ``"yes"``, ``1``)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return False


def to_str_list(value: Any) -> List[str]:
    """Normalise a list or comma separated string into a list of non-empty strings."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        items = cast(Iterable[Any], value)
        return [str(item).strip() for item in items if item is not None and str(item).strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    text = str(value).strip()
    return [text] if text else []


def to_text(value: Any) -> str:
    """Render any brief value as trimmed display text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (list, tuple)):
        parts = [to_text(item) for item in cast(Iterable[Any], value)]
        return ", ".join(part for part in parts if part)
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def to_optional_text(value: Any) -> Optional[str]:
    """Like :func:`to_text` but ``None`` for empty values."""
    text = to_text(value)
    return text or None


def is_present(value: Any) -> bool:
    """Truthiness as the brief editor sees it: empty mappings still count as present."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return value != 0
    return True


def as_mapping(value: Any) -> Mapping[str, Any]:
    """Return ``value`` when it is a mapping, else an empty one."""
    if isinstance(value, Mapping):
        return cast(Mapping[str, Any], value)
    return {}


__all__ = [
    "to_number",
    "to_count",
    "to_bool",
    "to_str_list",
    "to_text",
    "to_optional_text",
    "is_present",
    "as_mapping",
]
