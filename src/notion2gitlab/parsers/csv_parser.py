"""Tolerant CSV parsing for Notion database exports."""

from __future__ import annotations

from typing import Protocol

from ..models.notion import ParsedTable

_BOM = "\ufeff"


class TextSource(Protocol):
    def read_text(self) -> str: ...


def parse_csv(content: str) -> ParsedTable:
    """Parse CSV text into headers and rows.

    Never raises: empty input yields an empty table and ragged rows are padded
    with ``""`` or truncated to the header width.
    """

    if content.startswith(_BOM):
        content = content[1:]

    records = _split_records(content)
    if not records:
        return ParsedTable(headers=[], rows=[])

    headers = _unique_headers(records[0])
    rows: list[dict[str, str]] = []
    for values in records[1:]:
        rows.append({header: values[idx] if idx < len(values) else "" for idx, header in enumerate(headers)})

    return ParsedTable(headers=headers, rows=rows)


def read_csv_file(source: TextSource) -> ParsedTable:
    return parse_csv(source.read_text())


def _split_records(text: str) -> list[list[str]]:
    """Split text into records of trimmed fields.

    Quotes toggle a literal mode in which commas and line breaks belong to the
    field and ``""`` stands for one quote. Records made only of whitespace
    are dropped.
    """

    records: list[list[str]] = []
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    has_content = False

    def flush_record() -> None:
        nonlocal fields, current, has_content
        fields.append("".join(current).strip())
        if has_content:
            records.append(fields)
        fields = []
        current = []
        has_content = False

    idx = 0
    length = len(text)
    while idx < length:
        char = text[idx]
        if not char.isspace():
            has_content = True

        if in_quotes:
            if char == '"':
                if idx + 1 < length and text[idx + 1] == '"':
                    current.append('"')
                    idx += 1
                else:
                    in_quotes = False
            else:
                current.append(char)
        elif char == '"':
            in_quotes = True
        elif char == ",":
            fields.append("".join(current).strip())
            current = []
        elif char == "\r" or char == "\n":
            if char == "\r" and idx + 1 < length and text[idx + 1] == "\n":
                idx += 1
            flush_record()
        else:
            current.append(char)
        idx += 1

    flush_record()
    return records


def _unique_headers(raw_headers: list[str]) -> list[str]:
    headers: list[str] = []
    seen: dict[str, int] = {}
    for header in raw_headers:
        if header in seen:
            seen[header] += 1
            candidate = f"{header} ({seen[header]})"
            while candidate in seen:
                seen[header] += 1
                candidate = f"{header} ({seen[header]})"
            seen[candidate] = 1
            headers.append(candidate)
        else:
            seen[header] = 1
            headers.append(header)
    return headers
