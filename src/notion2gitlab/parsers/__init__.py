"""Parsing modules."""

from .csv_parser import parse_csv, read_csv_file
from .identifiers import detect_id_column, looks_like_notion_id
from .markdown_sections import extract_body, extract_named_section, extract_section

__all__ = [
    "detect_id_column",
    "extract_body",
    "extract_named_section",
    "extract_section",
    "looks_like_notion_id",
    "parse_csv",
    "read_csv_file",
]
