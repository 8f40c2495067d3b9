"""Markdown rendering and file output."""

from .markdown import (
    NO_DATA,
    csv_to_markdown_table,
    normalize_rows,
    parse_csv,
    rows_to_markdown_table,
    sanitize_cell,
)
from .writer import MARKDOWN_PREAMBLE, kebab_case, plan_output_paths, write_markdown

__all__ = [
    "NO_DATA",
    "csv_to_markdown_table",
    "normalize_rows",
    "parse_csv",
    "rows_to_markdown_table",
    "sanitize_cell",
    "MARKDOWN_PREAMBLE",
    "kebab_case",
    "plan_output_paths",
    "write_markdown",
]
