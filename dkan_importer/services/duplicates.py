from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..normalize import normalize_string

"""Duplicate detection for dictionary fields and spreadsheet headers.

Both checks share ``find_duplicates``: labels are normalized, grouped, and every
group with more than one member is reported with its 1-based positions.
Absent or empty labels are skipped. Failures carry the full multi-line report
as the exception message so it can be logged verbatim.
"""

__all__ = [
    "DuplicateFieldsError",
    "DuplicateHeadersError",
    "find_duplicates",
    "check_dictionary_duplicates",
    "check_header_duplicates",
]


class DuplicateFieldsError(Exception):
    """Raised when dictionary field names or titles collide after normalization."""


class DuplicateHeadersError(Exception):
    """Raised when spreadsheet column headers collide after normalization."""


def find_duplicates(labels: Sequence[str | None]) -> dict[str, list[int]]:
    """Group labels by normalized value; return only groups of size > 1.

    Positions are 1-based. Insertion order follows first appearance.
    """
    groups: dict[str, list[int]] = {}
    for position, label in enumerate(labels, start=1):
        if not label:
            continue
        normalized = normalize_string(label)
        if not normalized:
            continue
        groups.setdefault(normalized, []).append(position)
    return {label: positions for label, positions in groups.items() if len(positions) > 1}


def _join_positions(positions: list[int], prefix: str = "") -> str:
    return ", ".join(f"{prefix}{p}" for p in positions)


def _column_key(name: str | None, title: str | None) -> str | None:
    # タイトル優先 (空ならフィールド名)
    if title and normalize_string(title):
        return title
    return name


def check_dictionary_duplicates(root: Mapping[str, Any]) -> None:
    """Fail when two fields collide on a normalized name or title, or on their column key.

    The column key is the title when present, else the name; it is what
    spreadsheet headers are matched against, so it must be unique as well.

    Raises:
        DuplicateFieldsError: duplicates found, or the root has no valid ``fields`` array
    """
    fields = root.get("fields") if isinstance(root, Mapping) else None
    if not isinstance(fields, list):
        raise DuplicateFieldsError("Data dictionary must contain a valid 'fields' array")

    names: list[str | None] = []
    titles: list[str | None] = []
    for entry in fields:
        entry = entry if isinstance(entry, Mapping) else {}
        name = entry.get("name")
        title = entry.get("title")
        names.append(name if isinstance(name, str) else None)
        titles.append(title if isinstance(title, str) else None)

    duplicate_names = find_duplicates(names)
    duplicate_titles = find_duplicates(titles)
    reported = list(duplicate_names.values()) + list(duplicate_titles.values())
    duplicate_keys = {
        key: positions
        for key, positions in find_duplicates([_column_key(n, t) for n, t in zip(names, titles)]).items()
        if positions not in reported
    }
    if not duplicate_names and not duplicate_titles and not duplicate_keys:
        return

    lines = ["Data dictionary contains duplicate fields:"]
    for name, positions in duplicate_names.items():
        lines.append(f"  • Field name '{name}' appears at positions: {_join_positions(positions)}")
    for title, positions in duplicate_titles.items():
        lines.append(f"  • Field title '{title}' appears at positions: {_join_positions(positions)}")
    for key, positions in duplicate_keys.items():
        lines.append(f"  • Column key '{key}' appears at positions: {_join_positions(positions)}")
    lines.append("Please ensure all field names and titles are unique.")
    raise DuplicateFieldsError("\n".join(lines))


def check_header_duplicates(headers: Sequence[str | None]) -> None:
    """Fail when two spreadsheet column headers collide after normalization.

    Raises:
        DuplicateHeadersError: duplicates found
    """
    duplicates = find_duplicates(headers)
    if not duplicates:
        return

    lines = ["Excel file contains duplicate column headers:"]
    for header, positions in duplicates.items():
        lines.append(f"  • Header '{header}' appears in: {_join_positions(positions, 'column ')}")
    lines.append("Please ensure all column headers are unique.")
    raise DuplicateHeadersError("\n".join(lines))
