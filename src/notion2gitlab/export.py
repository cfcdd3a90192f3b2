"""Serialization of processing results to a downloadable CSV file."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable

from .models.wizard import ProcessingResult

RESULT_HEADERS = ("Notion ID", "Title", "Status", "Issue URL", "Error", "Timestamp")


def escape_csv_field(value: str) -> str:
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def format_timestamp(value: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision and a ``Z`` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def export_results_to_csv(results: Iterable[ProcessingResult]) -> str:
    lines = [",".join(escape_csv_field(header) for header in RESULT_HEADERS)]
    for result in results:
        fields = (
            result.notion_id,
            result.title,
            result.status,
            result.issue_url or "",
            result.error or "",
            format_timestamp(result.timestamp),
        )
        lines.append(",".join(escape_csv_field(field) for field in fields))
    return "\n".join(lines)


def results_filename(day: date | None = None) -> str:
    day = day or datetime.now(timezone.utc).date()
    return f"export-results-{day.isoformat()}.csv"


def write_results(results: Iterable[ProcessingResult], output_dir: Path, day: date | None = None) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / results_filename(day)
    path.write_text(export_results_to_csv(results), encoding="utf-8")
    return path
