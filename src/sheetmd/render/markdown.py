"""CSV to GitHub-flavoured Markdown table conversion."""

import csv
import io
import re
from typing import Optional

NO_DATA = "(No data)\n"
LINE_BREAK = "<br>"

# A pipe that is not already escaped
_UNESCAPED_PIPE_RE = re.compile(r"(?<!\\)\|")


def parse_csv(csv_text: str) -> list[list[str]]:
    """Split CSV text into rows; quoted fields may hold commas and newlines."""
    return [row for row in csv.reader(io.StringIO(csv_text))]


def normalize_rows(rows: list[list[str]]) -> list[list[str]]:
    """Pad rows on the right so every row has the maximum column count."""
    if not rows:
        return []
    cols = max(len(r) for r in rows)
    return [list(r) + [""] * (cols - len(r)) for r in rows]


def sanitize_cell(val: Optional[str]) -> str:
    """Prepare a single cell for Markdown table output.

    - Replace CRLF/CR/LF with <br>
    - Escape vertical bars with a backslash
    - Strip leading/trailing whitespace

    Applying it twice gives the same result as applying it once.
    """
    if val is None:
        return ""
    s = str(val)
    s = s.replace("\r\n", "\n").replace("\r", "\n").replace("\n", LINE_BREAK)
    s = _UNESCAPED_PIPE_RE.sub(r"\\|", s)
    return s.strip()


def header_for(rows: list[list[str]]) -> list[str]:
    """Use the first row as header unless it is blank; then Column 1..N."""
    first = rows[0]
    if any((c or "").strip() for c in first):
        return first
    return [f"Column {i + 1}" for i in range(len(first))]


def _table_line(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def rows_to_markdown_table(rows: list[list[str]]) -> str:
    """Render an already parsed grid; the first row becomes the header."""
    grid = normalize_rows(rows)
    if not grid or not grid[0]:
        return NO_DATA

    header = [sanitize_cell(h) for h in header_for(grid)]
    lines = [
        _table_line(header),
        "|" + "|".join(" --- " for _ in header) + "|",
    ]
    for row in grid[1:]:
        lines.append(_table_line([sanitize_cell(c) for c in row]))
    return "\n".join(lines) + "\n"


def csv_to_markdown_table(csv_text: str) -> str:
    """Convert CSV text to a Markdown table; empty input gives NO_DATA."""
    return rows_to_markdown_table(parse_csv(csv_text))
