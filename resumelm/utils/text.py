"""Text helpers shared by extraction, reconciliation and error surfacing."""

from __future__ import annotations

import re
from typing import Any

UNKNOWN_SENTINEL = "<UNKNOWN>"

GPA_MIN = 0.0
GPA_MAX = 4.0

_SECRET_PATTERNS = [
    (re.compile(r"Bearer\s+[^,\s]+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"sk-[a-zA-Z0-9_\-]{8,}"), "sk-***"),
    (re.compile(r"AIza[0-9A-Za-z\-_]{20,}"), "AIza***"),
]

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")


def sanitize_unknown_strings(data: Any) -> Any:
    """Replace every ``<UNKNOWN>`` string (surrounding whitespace ignored) with ""
    at any nesting depth.

    Works on plain JSON-like data (dicts, lists, tuples, scalars). Non-string
    scalars are returned unchanged.
    """
    if isinstance(data, str):
        return "" if data.strip() == UNKNOWN_SENTINEL else data
    if isinstance(data, dict):
        return {key: sanitize_unknown_strings(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [sanitize_unknown_strings(item) for item in data]
    return data


def parse_gpa(value: Any) -> float | None:
    """Parse a GPA from a number or string.

    Strings are read like a lenient float parse: the leading number wins
    ("3.8/4.0" -> 3.8). Anything non-numeric, empty or outside 0.0-4.0
    yields None rather than an error.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match is None:
            return None
        try:
            number = float(match.group(1))
        except ValueError:
            return None
    else:
        return None

    if number != number or not (GPA_MIN <= number <= GPA_MAX):
        return None
    return number


def redact_secrets(text: str) -> str:
    """Mask bearer tokens and provider API keys embedded in text."""
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def is_blank(value: Any) -> bool:
    """True for None, empty/whitespace strings and the unknown sentinel."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped == UNKNOWN_SENTINEL
    return False
