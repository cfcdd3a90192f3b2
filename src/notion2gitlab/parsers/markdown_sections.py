"""Extraction of the issue description from a Notion Markdown page."""

from __future__ import annotations

import re

_METADATA_LINE_RE = re.compile(r"^[A-Za-zÄÖÜäöüß-]+:\s*.+$")
_ANY_HEADING_RE = re.compile(r"^#{1,6}[ \t]", re.MULTILINE)
_LEADING_HASHES_RE = re.compile(r"^#+\s*")


def _is_leading_title(line: str, index: int) -> bool:
    return index == 0 and line.startswith("# ")


def _is_metadata(line: str) -> bool:
    return line == "" or bool(_METADATA_LINE_RE.match(line))


def extract_body(content: str) -> str:
    """Drop the page title and the ``Property: value`` block Notion puts before the body."""

    lines = content.split("\n")
    start_index = 0

    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if _is_leading_title(line, index) or _is_metadata(line):
            start_index = index + 1
            continue
        break

    return "\n".join(lines[start_index:]).strip()


def extract_named_section(content: str, section_header: str) -> str | None:
    """Return the text under the heading named ``section_header``, or ``None`` if absent."""

    cleaned_header = _LEADING_HASHES_RE.sub("", section_header).strip()
    header_pattern = re.compile(
        rf"^#{{1,6}}[ \t]*{re.escape(cleaned_header)}[ \t]*\r?$",
        re.MULTILINE | re.IGNORECASE,
    )

    match = header_pattern.search(content)
    if match is None:
        return None

    remaining = content[match.end() :]
    next_heading = _ANY_HEADING_RE.search(remaining)
    if next_heading is not None:
        return remaining[: next_heading.start()].strip()
    return remaining.strip()


def extract_section(content: str, section_header: str | None = None) -> str:
    """Extract the description text of a page.

    Without a header the body after the front matter is returned. With a
    header, the section under it is returned, falling back to the whole
    document when no such heading exists.
    """

    if not section_header or not section_header.strip():
        return extract_body(content)

    section = extract_named_section(content, section_header)
    if section is None:
        return content
    return section
