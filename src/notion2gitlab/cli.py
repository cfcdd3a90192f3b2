"""Typer-based CLI for importing a Notion export into GitLab issues."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import requests
import typer

from .core.config import get_settings
from .core.logging import setup_logging
from .files import categorize_files, collect_files
from .filters import parse_filter_expression
from .models.wizard import IssueMappingConfig, WizardState
from .parsers.csv_parser import read_csv_file
from .parsers.identifiers import detect_id_column
from .pipeline import ImportPipeline, PipelineConfig, select_csv_file
from .services.gitlab_client import GitLabApiError, create_client, describe_client_error
from .state import add_filter_rule, load_state

app = typer.Typer(help="Import Notion database exports as GitLab issues")


def _resolve_credentials(domain: Optional[str], token: Optional[str]) -> tuple[str, str]:
    settings = get_settings()
    resolved_domain = domain or settings.gitlab_domain
    resolved_token = token or settings.gitlab_token

    if not resolved_domain:
        raise typer.BadParameter("GitLab domain not provided via flag or environment.")
    if not resolved_token:
        raise typer.BadParameter("GitLab token not provided via flag or environment.")
    return resolved_domain, resolved_token


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (defaults to settings)."),
) -> None:
    """Configure logging before any command runs."""

    setup_logging(log_level or get_settings().log_level)


@app.command()
def check(
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="GitLab domain, e.g. gitlab.example.com."),
    token: Optional[str] = typer.Option(None, "--token", "-t", help="Personal access token (falls back to env)."),
    proxy_url: Optional[str] = typer.Option(None, "--proxy-url", help="Route calls through a gitlab-proxy endpoint."),
):
    """Validate the GitLab connection and count accessible projects."""

    settings = get_settings()
    resolved_domain, resolved_token = _resolve_credentials(domain, token)

    try:
        client = create_client(
            resolved_domain,
            resolved_token,
            proxy_url=proxy_url,
            timeout=settings.request_timeout_seconds,
        )
        user = client.validate_connection()
        projects = client.list_projects(per_page=settings.project_page_size)
    except (GitLabApiError, requests.RequestException) as exc:
        typer.secho(f"Connection failed: {describe_client_error(exc)}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    typer.secho(f"Connected as {user.username}", fg=typer.colors.GREEN)
    typer.echo(f"Found {len(projects)} accessible projects")


@app.command()
def inspect(
    export_path: Path = typer.Argument(..., help="Notion export directory (or a single CSV file)."),
    csv_file: Optional[str] = typer.Option(None, "--csv", help="CSV file name when the export has several."),
):
    """Show the files of an export, its CSV headers and the detected Notion ID column."""

    try:
        files = collect_files(export_path)
        csv_files, markdown_files, other_files = categorize_files(files)
        selected = select_csv_file(csv_files, csv_file)
    except (FileNotFoundError, ValueError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    table = read_csv_file(selected)
    typer.echo(f"CSV files: {len(csv_files)}")
    typer.echo(f"Markdown files: {len(markdown_files)}")
    typer.echo(f"Other files: {len(other_files)}")
    typer.echo(f"Selected CSV: {selected.path} ({table.row_count} rows)")
    typer.echo(f"Headers: {', '.join(table.headers)}")

    detected = detect_id_column(table.headers, table.rows)
    if detected:
        typer.secho(f"Detected Notion ID column: {detected}", fg=typer.colors.GREEN)
    else:
        typer.secho("No Notion ID column detected.", fg=typer.colors.YELLOW)


@app.command()
def run(
    export_path: Path = typer.Argument(..., help="Notion export directory (or a single CSV file)."),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="GitLab domain, e.g. gitlab.example.com."),
    token: Optional[str] = typer.Option(None, "--token", "-t", help="Personal access token (falls back to env)."),
    proxy_url: Optional[str] = typer.Option(None, "--proxy-url", help="Route calls through a gitlab-proxy endpoint."),
    csv_file: Optional[str] = typer.Option(None, "--csv", help="CSV file name when the export has several."),
    id_column: Optional[str] = typer.Option(None, "--id-column", help="Notion ID column. Leave unset to detect."),
    title_column: str = typer.Option(..., "--title-column", help="Column used as the issue title."),
    repository_column: Optional[str] = typer.Option(None, "--repository-column", help="Column naming the target project."),
    default_repository: Optional[str] = typer.Option(None, "--default-repository", help="Project used when the row has none."),
    label_columns: list[str] = typer.Option([], "--label-column", help="Column with comma separated labels (repeatable)."),
    static_labels: list[str] = typer.Option([], "--label", help="Label added to every issue (repeatable)."),
    section_header: Optional[str] = typer.Option(None, "--section", help="Markdown heading used as the description."),
    markdown_description: bool = typer.Option(True, "--markdown-description/--no-markdown-description", help="Use matched Markdown pages as descriptions."),
    filters: list[str] = typer.Option([], "--filter", help="Row filter 'Column:operator[:value]' (repeatable)."),
    rate_limit: Optional[float] = typer.Option(None, "--rate-limit", help="Seconds to wait between issues."),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for the results CSV."),
    state_file: Optional[Path] = typer.Option(None, "--state-file", help="Where to save the import state."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and preview without creating issues."),
):
    """Validate the export against GitLab and create one issue per valid row."""

    settings = get_settings()
    resolved_domain, resolved_token = _resolve_credentials(domain, token)
    state_path = state_file or Path(settings.state_path)

    restored = load_state(state_path) if state_file else None
    if restored is not None:
        typer.secho(f"Restored previous filters from {state_path}", fg=typer.colors.BLUE)
    state = restored or WizardState()

    # --filter flags replace the restored rules rather than adding to them.
    if filters:
        state = state.model_copy(update={"filters": []})
    for expression in filters:
        try:
            rule = parse_filter_expression(expression)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--filter") from exc
        state = add_filter_rule(state, rule)

    mapping = IssueMappingConfig(
        title_column=title_column,
        repository_column=repository_column,
        default_repository=default_repository,
        use_markdown_description=markdown_description,
        markdown_section_header=section_header,
        label_columns=label_columns,
        static_labels=static_labels,
    )

    config = PipelineConfig(
        export_path=export_path,
        output_dir=output_dir or Path(settings.results_dir),
        gitlab_domain=resolved_domain,
        gitlab_token=resolved_token,
        proxy_url=proxy_url,
        csv_file=csv_file,
        notion_id_column=id_column,
        issue_mapping=mapping,
        filters=list(state.filters),
        rate_limit_seconds=rate_limit if rate_limit is not None else settings.rate_limit_seconds,
        project_page_size=settings.project_page_size,
        project_max_pages=settings.project_max_pages,
        request_timeout_seconds=settings.request_timeout_seconds,
        dry_run=dry_run,
        state_path=state_path,
    )

    pipeline = ImportPipeline(config=config, state=state)
    try:
        result = pipeline.run()
    except (FileNotFoundError, ValueError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    except (GitLabApiError, requests.RequestException) as exc:
        typer.secho(f"Connection failed: {describe_client_error(exc)}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Rows in CSV: {result.rows_total}")
    typer.echo(f"Rows after filters: {result.rows_filtered}")
    typer.echo(f"Valid rows: {result.rows_valid}")
    typer.echo(f"Markdown pages indexed: {result.documents_indexed}")
    if result.results_path:
        typer.echo(f"Results path: {result.results_path}")
    typer.echo(f"State path: {result.state_path}")

    if result.status == "failed":
        typer.secho(f"Import failed: {result.error}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if result.status == "completed" and result.failed == 0:
        typer.secho("Import complete", fg=typer.colors.GREEN)
    elif result.status == "completed":
        typer.secho(f"Import completed with errors ({result.failed} failed)", fg=typer.colors.YELLOW)


if __name__ == "__main__":  # pragma: no cover
    app()
