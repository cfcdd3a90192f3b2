"""Validation of filtered CSV rows against GitLab projects and Markdown pages."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .core.logging import get_logger
from .matching import DocumentIndex
from .models.gitlab import GitLabProject
from .models.wizard import IssueMappingConfig, PreviewRow, RepositoryRef

logger = get_logger(__name__)

TITLE_EMPTY = "Title is empty"
REPOSITORY_EMPTY = "Repository is empty"
DEFAULT_REPOSITORY_NOT_FOUND = "Default repository not found in your GitLab projects"


def repository_not_found(value: str) -> str:
    return f'Repository "{value}" not found in your GitLab projects'


def is_repository_error(message: str) -> bool:
    lowered = message.lower()
    return lowered.startswith("repository") or lowered.startswith("default repository")


def build_project_index(projects: Iterable[GitLabProject]) -> dict[str, GitLabProject]:
    """Merge full path, name and short path into one lowercase lookup.

    Keys are inserted per project in that order, so on a clash the project
    inserted last wins.
    """

    index: dict[str, GitLabProject] = {}
    for project in projects:
        index[project.path_with_namespace.lower()] = project
        index[project.name.lower()] = project
        index[project.path.lower()] = project
    return index


def _to_ref(project: GitLabProject) -> RepositoryRef:
    return RepositoryRef(path=project.path_with_namespace, id=project.id)


def resolve_repository(
    repo_value: str,
    default_repository: str | None,
    project_index: Mapping[str, GitLabProject],
) -> tuple[RepositoryRef | None, str | None]:
    """Resolve the target repository; returns the reference or an error message."""

    if repo_value.strip():
        project = project_index.get(repo_value.strip().lower())
        if project is None:
            return None, repository_not_found(repo_value)
        return _to_ref(project), None

    if default_repository and default_repository.strip():
        project = project_index.get(default_repository.strip().lower())
        if project is None:
            return None, DEFAULT_REPOSITORY_NOT_FOUND
        return _to_ref(project), None

    return None, REPOSITORY_EMPTY


def split_labels(value: str) -> list[str]:
    return [label.strip() for label in value.split(",") if label.strip()]


def collect_labels(row: Mapping[str, str], mapping: IssueMappingConfig) -> list[str]:
    labels = [label.strip() for label in mapping.static_labels if label.strip()]
    for column in mapping.label_columns:
        labels.extend(split_labels(row.get(column, "")))
    return labels


def validate_rows(
    rows: Sequence[Mapping[str, str]],
    *,
    projects: Iterable[GitLabProject],
    document_index: DocumentIndex | None,
    notion_id_column: str | None,
    issue_mapping: IssueMappingConfig,
) -> list[PreviewRow]:
    """Build one preview row per filtered CSV row, in order.

    Row ids are ``row-<n>`` positions within ``rows``. Problems are collected
    into ``validation_errors``; a row is never excluded automatically.
    """

    project_index = build_project_index(projects)
    preview_rows: list[PreviewRow] = []

    for index, row in enumerate(rows):
        errors: list[str] = []
        notion_id = row.get(notion_id_column, "") if notion_id_column else ""
        title = row.get(issue_mapping.title_column, "") if issue_mapping.title_column else ""
        repo_value = row.get(issue_mapping.repository_column, "") if issue_mapping.repository_column else ""

        if not title.strip():
            errors.append(TITLE_EMPTY)

        repository, repository_error = resolve_repository(repo_value, issue_mapping.default_repository, project_index)
        if repository_error:
            errors.append(repository_error)

        markdown_file: str | None = None
        description: str | None = None
        if issue_mapping.use_markdown_description and notion_id and document_index is not None:
            match = document_index.lookup(notion_id)
            if match is not None:
                markdown_file = match.source_path
                description = match.extracted_description

        preview_rows.append(
            PreviewRow(
                id=f"row-{index}",
                notion_id=notion_id,
                title=title,
                repository=repository,
                markdown_file=markdown_file,
                description=description,
                labels=collect_labels(row, issue_mapping),
                is_valid=not errors,
                validation_errors=errors,
                is_excluded=False,
                source_row=dict(row),
            )
        )

    logger.info(
        "validation.completed",
        rows=len(preview_rows),
        valid=sum(1 for row in preview_rows if row.is_valid),
        with_markdown=sum(1 for row in preview_rows if row.markdown_file),
    )
    return preview_rows


def apply_repository_override(
    row: PreviewRow,
    value: str,
    project_index: Mapping[str, GitLabProject],
) -> PreviewRow:
    """Re-resolve a manually chosen repository, replacing only repository errors."""

    remaining = [error for error in row.validation_errors if not is_repository_error(error)]

    repository: RepositoryRef | None = None
    if not value.strip():
        remaining.append(REPOSITORY_EMPTY)
    else:
        project = project_index.get(value.strip().lower())
        if project is None:
            remaining.append(repository_not_found(value))
        else:
            repository = _to_ref(project)

    return row.model_copy(
        update={
            "repository": repository,
            "validation_errors": remaining,
            "is_valid": not remaining and bool(row.title.strip()),
        }
    )


def apply_description_override(row: PreviewRow, description: str) -> PreviewRow:
    return row.model_copy(update={"description": description})


def apply_labels_override(row: PreviewRow, labels: str | Iterable[str]) -> PreviewRow:
    if isinstance(labels, str):
        parsed = split_labels(labels)
    else:
        parsed = [label.strip() for label in labels if label.strip()]
    return row.model_copy(update={"labels": parsed})


def toggle_row_exclusion(rows: Sequence[PreviewRow], row_id: str) -> list[PreviewRow]:
    return [row.model_copy(update={"is_excluded": not row.is_excluded}) if row.id == row_id else row for row in rows]


def exclude_invalid_rows(rows: Sequence[PreviewRow]) -> list[PreviewRow]:
    return [row.model_copy(update={"is_excluded": row.is_excluded or not row.is_valid}) for row in rows]


def include_all_rows(rows: Sequence[PreviewRow]) -> list[PreviewRow]:
    return [row.model_copy(update={"is_excluded": False}) for row in rows]


def rows_to_process(rows: Iterable[PreviewRow]) -> list[PreviewRow]:
    return [row for row in rows if row.is_valid and not row.is_excluded]
