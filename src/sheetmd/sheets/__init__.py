"""Public Google Sheets access: URL parsing, gid resolution and CSV export."""

from .client import PublicSheetsClient
from .fetcher import TabFetcher
from .locator import sheet_id_from_url
from .models import (
    AmbiguousOverrideError,
    ExportCancelledError,
    HandleResolutionError,
    MalformedLocatorError,
    OverrideTable,
    SheetExportError,
    TabResult,
    UnexpectedResponseFormatError,
)
from .resolver import EditPageStrategy, GidResolver, GidStrategy, GvizMetadataStrategy

__all__ = [
    "PublicSheetsClient",
    "TabFetcher",
    "sheet_id_from_url",
    "AmbiguousOverrideError",
    "ExportCancelledError",
    "HandleResolutionError",
    "MalformedLocatorError",
    "OverrideTable",
    "SheetExportError",
    "TabResult",
    "UnexpectedResponseFormatError",
    "EditPageStrategy",
    "GidResolver",
    "GidStrategy",
    "GvizMetadataStrategy",
]
