from __future__ import annotations

import re
import unicodedata

"""String normalization for dictionary labels and spreadsheet headers.

normalize_string():
- Unicode control characters (category Cc) -> single space
- whitespace runs collapsed to one space, leading/trailing whitespace trimmed
- whitespace in front of a trailing run of ``*`` removed ("Field *" -> "Field*",
  "Field * *" -> "Field**")

The same function is used for dictionary names/titles and for header cells so
header -> schema property lookups always agree. The function is idempotent.
"""

__all__ = [
    "normalize_string",
    "has_required_marker",
]

# 末尾の "*" 連続 (間の空白を含む)
_TRAILING_MARKERS = re.compile(r"\s*(\*[\s*]*)$")


def _replace_control_chars(text: str) -> str:
    return "".join(" " if unicodedata.category(ch) == "Cc" else ch for ch in text)


def normalize_string(text: str) -> str:
    collapsed = " ".join(_replace_control_chars(text).split())
    match = _TRAILING_MARKERS.search(collapsed)
    if match is None:
        return collapsed
    stars = "*" * match.group(1).count("*")
    return collapsed[: match.start()] + stars


def has_required_marker(label: str | None) -> bool:
    """True when the normalized label ends with the ``*`` required marker."""
    if not label:
        return False
    return normalize_string(label).endswith("*")
