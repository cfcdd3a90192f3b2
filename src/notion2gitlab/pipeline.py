"""High-level import workflow orchestration."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core.logging import get_logger
from .export import write_results
from .files import ExportFile, categorize_files, collect_files
from .filters import apply_filters
from .matching import DocumentIndex, build_document_index
from .models.gitlab import GitLabProject
from .models.wizard import (
    FilterRule,
    GitLabConnection,
    IssueMappingConfig,
    PreviewRow,
    ProcessingResult,
    ProcessingState,
    WizardState,
)
from .parsers.csv_parser import read_csv_file
from .parsers.identifiers import detect_id_column
from .processing import BatchSubmitter
from .services.gitlab_client import IssueTrackerClient, create_client, list_all_projects
from .state import save_state, with_processing
from .validation import build_project_index, rows_to_process, validate_rows

console = Console()
logger = get_logger(__name__)


@dataclass(slots=True)
class PipelineConfig:
    export_path: Path
    output_dir: Path = Path("./data/results")
    gitlab_domain: str | None = None
    gitlab_token: str | None = None
    proxy_url: str | None = None
    csv_file: str | None = None
    notion_id_column: str | None = None
    issue_mapping: IssueMappingConfig = field(default_factory=IssueMappingConfig)
    filters: list[FilterRule] = field(default_factory=list)
    rate_limit_seconds: float = 1.0
    project_page_size: int = 100
    project_max_pages: int = 10
    request_timeout_seconds: float = 30.0
    dry_run: bool = False
    state_path: Path | None = None
    client_factory: Callable[[], IssueTrackerClient] | None = None


@dataclass(slots=True)
class ImportResult:
    csv_file: str
    notion_id_column: str | None
    rows_total: int
    rows_filtered: int
    rows_valid: int
    rows_submitted: int
    documents_indexed: int
    status: str
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    results_path: Path | None = None
    state_path: Path | None = None
    error: str | None = None
    preview_rows: list[PreviewRow] = field(default_factory=list)


def select_csv_file(csv_files: Sequence[ExportFile], requested: str | None) -> ExportFile:
    """Pick the requested CSV (by name or relative path) or the only one present."""

    if not csv_files:
        raise ValueError("No CSV file found in the export.")

    if requested:
        for csv_file in csv_files:
            if requested in (csv_file.name, csv_file.path):
                return csv_file
        available = ", ".join(csv_file.path for csv_file in csv_files)
        raise ValueError(f"CSV file {requested!r} not found. Available: {available}")

    if len(csv_files) > 1:
        available = ", ".join(csv_file.path for csv_file in csv_files)
        raise ValueError(f"Export contains several CSV files; choose one of: {available}")
    return csv_files[0]


@dataclass(slots=True)
class ImportPipeline:
    config: PipelineConfig
    state: WizardState = field(default_factory=WizardState)

    def run(self) -> ImportResult:
        console.rule(f"[bold cyan]Import start[/] :: {escape(str(self.config.export_path))}")

        files = collect_files(self.config.export_path)
        csv_files, markdown_files, _ = categorize_files(files)
        csv_file = select_csv_file(csv_files, self.config.csv_file)
        console.print(
            f"[cyan]Found {len(csv_files)} CSV and {len(markdown_files)} Markdown files; using {escape(csv_file.path)}.[/]"
        )

        table = read_csv_file(csv_file)
        notion_id_column = self.config.notion_id_column or detect_id_column(table.headers, table.rows)
        if notion_id_column is None:
            console.print("[yellow]No Notion ID column detected; Markdown pages cannot be matched.[/]")

        filtered_rows = apply_filters(table.rows, self.config.filters)
        logger.info("pipeline.filtered", total=table.row_count, kept=len(filtered_rows))

        mapping = self.config.issue_mapping
        if mapping.use_markdown_description:
            document_index = build_document_index(markdown_files, mapping.markdown_section_header)
        else:
            document_index = DocumentIndex()

        client = self._create_client()
        user = client.validate_connection()
        projects = list_all_projects(
            client,
            per_page=self.config.project_page_size,
            max_pages=self.config.project_max_pages,
        )
        projects = self._with_default_repository(client, projects)
        console.print(f"[cyan]Connected as {escape(user.username)}; {len(projects)} projects available.[/]")

        preview_rows = validate_rows(
            filtered_rows,
            projects=projects,
            document_index=document_index,
            notion_id_column=notion_id_column,
            issue_mapping=mapping,
        )
        self._print_preview(preview_rows)

        self.state = self.state.model_copy(
            update={
                "gitlab": GitLabConnection(
                    domain=self.config.gitlab_domain or "",
                    is_connected=True,
                    username=user.username,
                    projects=projects,
                ),
                "selected_csv_file": csv_file.path,
                "parsed_data": table,
                "notion_id_column": notion_id_column,
                "filters": list(self.config.filters),
                "issue_mapping": mapping,
                "preview_rows": preview_rows,
            }
        )
        self._save_state()

        submittable = rows_to_process(preview_rows)
        result = ImportResult(
            csv_file=csv_file.path,
            notion_id_column=notion_id_column,
            rows_total=table.row_count,
            rows_filtered=len(filtered_rows),
            rows_valid=sum(1 for row in preview_rows if row.is_valid),
            rows_submitted=len(submittable),
            documents_indexed=len(document_index.documents()),
            status="previewed",
            state_path=self.config.state_path,
            preview_rows=preview_rows,
        )

        if self.config.dry_run:
            console.print("[yellow]Dry run enabled: skipping issue creation.[/]")
            return result

        submitter = BatchSubmitter(
            lambda: client,
            mapping,
            rate_limit_seconds=self.config.rate_limit_seconds,
            on_progress=self._report_progress,
        )
        processing = asyncio.run(submitter.run(preview_rows))

        self.state = with_processing(self.state, processing)
        self._save_state()

        result.status = processing.status
        result.error = processing.error
        result.succeeded = processing.success_count
        result.failed = processing.failed_count
        result.skipped = sum(1 for item in processing.results if item.status == "skipped")
        if processing.results:
            result.results_path = write_results(processing.results, self.config.output_dir)

        colour = "green" if processing.status == "completed" and not result.failed else "yellow"
        console.print(
            f"[{colour}]Import {processing.status}: {result.succeeded} created, "
            f"{result.failed} failed, {result.skipped} skipped.[/]"
        )
        return result

    def _create_client(self) -> IssueTrackerClient:
        if self.config.client_factory is not None:
            return self.config.client_factory()
        if not self.config.gitlab_domain or not self.config.gitlab_token:
            raise ValueError("GitLab domain and token are required.")
        return create_client(
            self.config.gitlab_domain,
            self.config.gitlab_token,
            proxy_url=self.config.proxy_url,
            timeout=self.config.request_timeout_seconds,
        )

    def _with_default_repository(
        self,
        client: IssueTrackerClient,
        projects: list[GitLabProject],
    ) -> list[GitLabProject]:
        """Fetch the default repository by path when it is not among the listed projects."""

        default_repository = (self.config.issue_mapping.default_repository or "").strip()
        if not default_repository or default_repository.lower() in build_project_index(projects):
            return projects

        project = client.get_project_by_path(default_repository)
        if project is None:
            logger.warning("pipeline.default_repository.missing", repository=default_repository)
            return projects
        return [*projects, project]

    def _print_preview(self, preview_rows: Sequence[PreviewRow]) -> None:
        preview_table = Table(show_header=True, header_style="bold magenta")
        preview_table.add_column("Row")
        preview_table.add_column("Notion ID")
        preview_table.add_column("Title")
        preview_table.add_column("Repository")
        preview_table.add_column("Markdown")
        preview_table.add_column("Labels")
        preview_table.add_column("Status")

        for row in preview_rows:
            status = "[green]valid[/]" if row.is_valid else f"[red]{escape('; '.join(row.validation_errors))}[/]"
            preview_table.add_row(
                escape(row.id),
                escape(row.notion_id[:12]),
                escape(row.title),
                escape(row.repository.path) if row.repository else "-",
                escape(row.markdown_file) if row.markdown_file else "-",
                escape(", ".join(row.labels)),
                status,
            )

        console.print(preview_table)

    def _report_progress(self, result: ProcessingResult, processing: ProcessingState) -> None:
        marker = "[green]created[/]" if result.status == "success" else f"[red]{result.status}[/]"
        detail = escape(result.issue_url or result.error or "")
        console.print(
            f"({processing.current_index}/{processing.total_count}) {marker} {escape(result.title)} {detail}"
        )

    def _save_state(self) -> None:
        if self.config.state_path is not None:
            save_state(self.state, self.config.state_path)
