"""Import Notion database exports into GitLab as issues."""

from .matching import DocumentIndex, build_document_index
from .pipeline import ImportPipeline, ImportResult, PipelineConfig
from .processing import BatchSubmitter, submit_rows
from .services.gitlab_client import GitLabApiError, GitLabClient, ProxiedGitLabClient
from .validation import validate_rows

__all__ = [
    "BatchSubmitter",
    "DocumentIndex",
    "GitLabApiError",
    "GitLabClient",
    "ImportPipeline",
    "ImportResult",
    "PipelineConfig",
    "ProxiedGitLabClient",
    "build_document_index",
    "submit_rows",
    "validate_rows",
]
