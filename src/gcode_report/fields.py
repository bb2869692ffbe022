"""Priority resolution of loosely-typed service payload fields.

The analysis service names the same value differently depending on the
analysis stage (``event_line_index`` vs ``line_index``, ``original`` vs
``original_line``). Each concept has one candidate tuple, in priority
order, and ``resolve`` returns the first candidate that is present and
converts cleanly.
"""

import re
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

ISSUE_ID_FIELDS = ("id", "issue_id")
ISSUE_LINE_FIELDS = ("event_line_index", "line_index", "line", "line_number")
ISSUE_TYPE_FIELDS = ("type", "issue_type", "category")
ISSUE_SEVERITY_FIELDS = ("severity", "level")
ISSUE_TITLE_FIELDS = ("title", "name")
ISSUE_DESCRIPTION_FIELDS = ("description", "message", "detail")
ISSUE_MEMBER_FIELDS = ("lines", "affected_lines")

PATCH_ID_FIELDS = ("id", "patch_id")
PATCH_LINE_FIELDS = ("line_index", "line", "line_number")
PATCH_ACTION_FIELDS = ("action", "type")
PATCH_ORIGINAL_FIELDS = ("original_line", "original", "original_code")
PATCH_NEW_FIELDS = ("new_line", "modified", "fixed", "modified_code")
PATCH_ISSUE_FIELDS = ("issue_id", "related_issue_id")
PATCH_AUTOFIX_FIELDS = ("autofix_allowed", "auto_fix", "can_auto_apply")
PATCH_REASON_FIELDS = ("reason", "description")

# "123: G1 X10" and ">>> 123: G1 X10 <<<" (highlighted context line)
_LINE_PREFIX = re.compile(r"^\s*(?:>>>\s*)?(\d+)\s*:")


def identity(value: Any) -> Any:
    return value


def resolve(
    payload: Mapping[str, Any],
    candidates: Sequence[str],
    convert: Callable[[Any], Optional[T]] = identity,
) -> Optional[T]:
    """Return the first candidate value that is present and converts.

    Args:
        payload: Service payload
        candidates: Field names in priority order
        convert: Converter returning None for unusable values

    Returns:
        Converted value, or None if no candidate qualifies

    Example:
        >>> resolve({"line": "12", "event_line_index": None}, ISSUE_LINE_FIELDS, to_line_index)
        12
    """
    for key in candidates:
        value = payload.get(key)
        if value is None:
            continue
        converted = convert(value)
        if converted is not None:
            return converted
    return None


def to_line_index(value: Any) -> Optional[int]:
    """1-based line number from an int, a numeric string or a ``"123: ..."`` prefix."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 1 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            number = int(text)
            return number if number >= 1 else None
        match = _LINE_PREFIX.match(text)
        if match:
            number = int(match.group(1))
            return number if number >= 1 else None
    return None


def to_line_indexes(value: Any) -> Optional[Tuple[int, ...]]:
    """Unique line numbers, in first-seen order, from a list of line values."""
    if not isinstance(value, (list, tuple)):
        return None
    seen = []
    for item in value:
        line = to_line_index(item)
        if line is not None and line not in seen:
            seen.append(line)
    return tuple(seen) if seen else None


def to_label(value: Any) -> Optional[str]:
    """Stripped, non-empty text."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def to_verbatim(value: Any) -> Optional[str]:
    """Text exactly as received (G-code lines are never trimmed)."""
    return value if isinstance(value, str) else None


def to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "yes", "1"):
            return True
        if text in ("false", "no", "0"):
            return False
    return None


def to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
