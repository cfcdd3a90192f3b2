"""Discovery of the files inside a Notion export directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Literal

FileKind = Literal["csv", "markdown", "other"]

_MARKDOWN_SUFFIXES = {".md", ".markdown"}


def get_file_kind(name: str) -> FileKind:
    lower = name.lower()
    if lower.endswith(".csv"):
        return "csv"
    if any(lower.endswith(suffix) for suffix in _MARKDOWN_SUFFIXES):
        return "markdown"
    return "other"


@dataclass(slots=True)
class ExportFile:
    """A named file from the export; ``path`` is relative to the export root."""

    name: str
    path: str
    kind: FileKind
    source: Path

    def read_text(self) -> str:
        return self.source.read_text(encoding="utf-8")


def collect_files(root: Path) -> list[ExportFile]:
    """Recursively list files under ``root`` (or wrap ``root`` itself if it is a file)."""

    if root.is_file():
        return [ExportFile(name=root.name, path=root.name, kind=get_file_kind(root.name), source=root)]

    if not root.is_dir():
        raise FileNotFoundError(f"Export directory not found: {root}")

    files: list[ExportFile] = []
    for path in sorted(p for p in root.rglob("*") if p.is_file()):
        files.append(
            ExportFile(
                name=path.name,
                path=path.relative_to(root).as_posix(),
                kind=get_file_kind(path.name),
                source=path,
            )
        )
    return files


def categorize_files(
    files: Iterable[ExportFile],
) -> tuple[list[ExportFile], list[ExportFile], list[ExportFile]]:
    """Split files into CSV, Markdown and everything else, preserving order."""

    csv_files: list[ExportFile] = []
    markdown_files: list[ExportFile] = []
    other_files: list[ExportFile] = []

    for file in files:
        if file.kind == "csv":
            csv_files.append(file)
        elif file.kind == "markdown":
            markdown_files.append(file)
        else:
            other_files.append(file)

    return csv_files, markdown_files, other_files
