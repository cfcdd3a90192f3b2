"""Pydantic schemas for import configuration, preview rows and processing state."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from .gitlab import GitLabProject
from .notion import ParsedTable

FilterOperator = Literal[
    "equals",
    "not_equals",
    "contains",
    "not_contains",
    "is_empty",
    "is_not_empty",
]
ResultStatus = Literal["success", "failed", "skipped"]
ProcessingStatus = Literal["idle", "running", "paused", "completed", "failed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_rule_id() -> str:
    return uuid.uuid4().hex


class FilterRule(BaseModel):
    id: str = Field(default_factory=_new_rule_id, description="Opaque rule identifier.")
    column: str = Field(default="", description="CSV header the rule reads; may no longer exist.")
    operator: FilterOperator = "equals"
    value: str = ""
    enabled: bool = True


class IssueMappingConfig(BaseModel):
    title_column: str | None = None
    repository_column: str | None = None
    default_repository: str | None = None
    use_markdown_description: bool = True
    markdown_section_header: str | None = None
    label_columns: list[str] = Field(default_factory=list)
    static_labels: list[str] = Field(default_factory=list)


class RepositoryRef(BaseModel):
    path: str = Field(..., description="GitLab path_with_namespace.")
    id: int = Field(..., description="Numeric GitLab project id.")


class PreviewRow(BaseModel):
    """A filtered CSV row validated against the project catalog and Markdown pages."""

    id: str
    notion_id: str = ""
    title: str = ""
    repository: RepositoryRef | None = None
    markdown_file: str | None = None
    description: str | None = None
    labels: list[str] = Field(default_factory=list)
    is_valid: bool = False
    validation_errors: list[str] = Field(default_factory=list)
    is_excluded: bool = False
    source_row: dict[str, str] = Field(default_factory=dict)


class ProcessingResult(BaseModel):
    row_id: str
    notion_id: str
    title: str
    status: ResultStatus
    issue_url: str | None = None
    issue_iid: int | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class ProcessingState(BaseModel):
    status: ProcessingStatus = "idle"
    current_index: int = Field(default=0, description="Number of processed rows.")
    total_count: int = 0
    results: list[ProcessingResult] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.status == "success")

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if result.status == "failed")


class GitLabConnection(BaseModel):
    """Connection details kept in state; the access token is never stored."""

    domain: str = ""
    is_connected: bool = False
    username: str | None = None
    projects: list[GitLabProject] = Field(default_factory=list)
    error: str | None = None


class WizardState(BaseModel):
    """Owned application state handed to each pipeline stage by the host shell."""

    gitlab: GitLabConnection = Field(default_factory=GitLabConnection)
    selected_csv_file: str | None = None
    parsed_data: ParsedTable | None = None
    notion_id_column: str | None = None
    filters: list[FilterRule] = Field(default_factory=list)
    issue_mapping: IssueMappingConfig = Field(default_factory=IssueMappingConfig)
    preview_rows: list[PreviewRow] = Field(default_factory=list)
    processing: ProcessingState = Field(default_factory=ProcessingState)
