"""Schemas describing a parsed Notion database export."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ParsedTable(BaseModel):
    """Header list plus string-keyed rows; every row carries every header."""

    model_config = ConfigDict(frozen=True)

    headers: list[str] = Field(default_factory=list)
    rows: list[dict[str, str]] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.headers
