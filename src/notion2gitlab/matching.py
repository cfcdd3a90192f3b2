"""Index Notion Markdown pages by the identifiers found in their paths and content."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Protocol

from .core.logging import get_logger
from .parsers.markdown_sections import extract_section

logger = get_logger(__name__)

_HEX_ID_RE = re.compile(r"([0-9a-f]{32})", re.IGNORECASE)
_UUID_RE = re.compile(r"([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})", re.IGNORECASE)
_TOKEN_RE = re.compile(r"([A-Z]+-\d+)", re.IGNORECASE)
_CONTENT_ID_PATTERNS = (
    re.compile(r"Aufgaben-ID:\s*([A-Z]+-\d+)", re.IGNORECASE),
    re.compile(r"Task-ID:\s*([A-Z]+-\d+)", re.IGNORECASE),
    re.compile(r"Issue-ID:\s*([A-Z]+-\d+)", re.IGNORECASE),
    re.compile(r"ID:\s*([A-Z]+-\d+)", re.IGNORECASE),
)


class MarkdownSource(Protocol):
    name: str
    path: str

    def read_text(self) -> str: ...


@dataclass(slots=True)
class DocumentMatch:
    source_path: str
    content: str
    extracted_description: str


@dataclass(slots=True)
class DocumentCandidate:
    """Inputs every key derivation may look at."""

    path: str
    name: str
    content: str


KeyDerivation = Callable[[DocumentCandidate], list[str]]


def hex_id_in_path(candidate: DocumentCandidate) -> list[str]:
    match = _HEX_ID_RE.search(candidate.path)
    return [match.group(1).lower()] if match else []


def uuid_in_path(candidate: DocumentCandidate) -> list[str]:
    match = _UUID_RE.search(candidate.path)
    return [match.group(1).replace("-", "").lower()] if match else []


def token_in_file_name(candidate: DocumentCandidate) -> list[str]:
    match = _TOKEN_RE.search(candidate.name)
    return [match.group(1).upper()] if match else []


def labelled_token_in_content(candidate: DocumentCandidate) -> list[str]:
    keys: list[str] = []
    for pattern in _CONTENT_ID_PATTERNS:
        match = pattern.search(candidate.content)
        if match:
            keys.append(match.group(1).upper())
    return keys


KEY_DERIVATIONS: tuple[KeyDerivation, ...] = (
    hex_id_in_path,
    uuid_in_path,
    token_in_file_name,
    labelled_token_in_content,
)


def derive_document_keys(path: str, name: str, content: str) -> list[str]:
    """Return every identifier key a document can be reached by, in registration order."""

    candidate = DocumentCandidate(path=path, name=name, content=content)
    keys: list[str] = []
    for derive in KEY_DERIVATIONS:
        keys.extend(derive(candidate))
    return keys


def lookup_keys(identifier: str) -> list[str]:
    """Probe order used when resolving a CSV identifier against the index."""

    return [
        identifier.upper(),
        identifier.replace("-", "").lower(),
        identifier.lower(),
    ]


@dataclass(slots=True)
class DocumentIndex:
    """Identifier key to document mapping; a later document overwrites an earlier one on the same key."""

    _entries: dict[str, DocumentMatch] = field(default_factory=dict)

    def register(self, key: str, match: DocumentMatch) -> None:
        existing = self._entries.get(key)
        if existing is not None and existing.source_path != match.source_path:
            logger.warning(
                "documents.index.collision",
                key=key,
                previous=existing.source_path,
                replacement=match.source_path,
            )
        self._entries[key] = match

    def get(self, key: str) -> DocumentMatch | None:
        return self._entries.get(key)

    def lookup(self, identifier: str) -> DocumentMatch | None:
        if not identifier:
            return None
        for key in lookup_keys(identifier):
            match = self._entries.get(key)
            if match is not None:
                return match
        return None

    def keys(self) -> list[str]:
        return list(self._entries)

    def documents(self) -> list[DocumentMatch]:
        unique: dict[str, DocumentMatch] = {}
        for match in self._entries.values():
            unique.setdefault(match.source_path, match)
        return list(unique.values())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)


def build_document_index(
    sources: Iterable[MarkdownSource],
    section_header: str | None = None,
) -> DocumentIndex:
    """Read every Markdown page once and register it under all keys it yields."""

    index = DocumentIndex()
    document_count = 0

    for source in sources:
        content = source.read_text()
        match = DocumentMatch(
            source_path=source.path,
            content=content,
            extracted_description=extract_section(content, section_header),
        )
        document_count += 1

        keys = derive_document_keys(source.path, source.name, content)
        if not keys:
            logger.debug("documents.index.unkeyed", path=source.path)
        for key in keys:
            index.register(key, match)

    logger.info("documents.index.built", documents=document_count, keys=len(index))
    return index
