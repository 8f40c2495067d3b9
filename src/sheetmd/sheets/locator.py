"""Spreadsheet URL parsing."""

from urllib.parse import urlparse

from .models import MalformedLocatorError


def sheet_id_from_url(url: str) -> str:
    """Extract the document id from a Sheets URL.

    Expects https://docs.google.com/spreadsheets/d/<ID>/... and returns <ID>.
    Raises MalformedLocatorError when there is no ``d`` segment or nothing
    follows it.
    """
    path_parts = urlparse(url).path.split("/")
    try:
        idx = path_parts.index("d")
        sheet_id = path_parts[idx + 1]
    except (ValueError, IndexError):
        raise MalformedLocatorError(url)

    if not sheet_id:
        raise MalformedLocatorError(url)
    return sheet_id
