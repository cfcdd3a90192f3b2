"""Data models shared across the import pipeline."""

from .gitlab import CreateIssuePayload, GitLabIssue, GitLabProject, GitLabUser
from .notion import ParsedTable
from .wizard import (
    FilterOperator,
    FilterRule,
    GitLabConnection,
    IssueMappingConfig,
    PreviewRow,
    ProcessingResult,
    ProcessingState,
    ProcessingStatus,
    RepositoryRef,
    ResultStatus,
    WizardState,
)

__all__ = [
    "CreateIssuePayload",
    "FilterOperator",
    "FilterRule",
    "GitLabConnection",
    "GitLabIssue",
    "GitLabProject",
    "GitLabUser",
    "IssueMappingConfig",
    "ParsedTable",
    "PreviewRow",
    "ProcessingResult",
    "ProcessingState",
    "ProcessingStatus",
    "RepositoryRef",
    "ResultStatus",
    "WizardState",
]
