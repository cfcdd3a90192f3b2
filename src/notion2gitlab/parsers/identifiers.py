"""Heuristics for locating the column that holds Notion page identifiers."""

from __future__ import annotations

import re
from typing import Callable, Mapping, Sequence

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
NOTION_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$", re.IGNORECASE)

_NAME_FRAGMENTS = ("notion", "id")
_EXACT_NAMES = {"key", "uid"}

ColumnStrategy = Callable[[Sequence[str], Mapping[str, str]], "str | None"]


def looks_like_notion_id(value: str | None) -> bool:
    if not value:
        return False
    return bool(UUID_PATTERN.match(value) or NOTION_ID_PATTERN.match(value))


def _is_identifier_header(header: str) -> bool:
    lower = header.lower()
    return any(fragment in lower for fragment in _NAME_FRAGMENTS) or lower in _EXACT_NAMES


def match_by_header_name(headers: Sequence[str], sample: Mapping[str, str]) -> str | None:
    for header in headers:
        if _is_identifier_header(header) and looks_like_notion_id(sample.get(header)):
            return header
    return None


def match_by_value_shape(headers: Sequence[str], sample: Mapping[str, str]) -> str | None:
    for header in headers:
        if looks_like_notion_id(sample.get(header)):
            return header
    return None


# Tried in order; the first strategy returning a header wins.
DETECTION_STRATEGIES: tuple[ColumnStrategy, ...] = (
    match_by_header_name,
    match_by_value_shape,
)


def detect_id_column(headers: Sequence[str], rows: Sequence[Mapping[str, str]]) -> str | None:
    """Guess the identifier column from the header names and the first row."""

    if not rows:
        return None

    sample = rows[0]
    for strategy in DETECTION_STRATEGIES:
        header = strategy(headers, sample)
        if header is not None:
            return header
    return None
