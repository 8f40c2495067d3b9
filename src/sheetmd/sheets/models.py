"""Data models and errors for sheet export operations."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class SheetExportError(Exception):
    """Base class for export failures."""

    pass


class MalformedLocatorError(SheetExportError, ValueError):
    """Raised when a spreadsheet id cannot be parsed from a URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Could not parse sheet ID from URL: {url}")


class HandleResolutionError(SheetExportError):
    """Raised when no tab name -> gid mapping could be derived."""

    def __init__(self, sheet_id: str, available: Optional[list[str]] = None):
        self.sheet_id = sheet_id
        self.available = available or []
        super().__init__(
            f"Unable to map tab names to gids from GViz/edit metadata for sheet {sheet_id}"
        )


class UnexpectedResponseFormatError(SheetExportError):
    """Raised when the export endpoint returns HTML instead of CSV."""

    def __init__(self, tab_name: str, url: str, available: Optional[list[str]] = None):
        self.tab_name = tab_name
        self.url = url
        self.available = available or []
        message = (
            f"Received HTML instead of CSV for tab '{tab_name}' - "
            "check sharing permissions or tab name."
        )
        if self.available:
            message += f" Available tabs: {self.available}"
        super().__init__(message)


class AmbiguousOverrideError(SheetExportError):
    """Raised when a tab name matches several override keys case-insensitively."""

    def __init__(self, tab_name: str, candidates: list[str]):
        self.tab_name = tab_name
        self.candidates = candidates
        super().__init__(
            f"Tab '{tab_name}' matches several gid overrides with different gids: {candidates}"
        )


class ExportCancelledError(SheetExportError):
    """Raised for tabs that were not started because the export was cancelled."""

    def __init__(self, tab_name: str):
        self.tab_name = tab_name
        super().__init__(f"Export cancelled before tab '{tab_name}'")


class OverrideTable(BaseModel):
    """Tab name -> gid overrides consulted before any network lookup."""

    gids: dict[str, str] = Field(default_factory=dict)

    def names(self) -> list[str]:
        return list(self.gids)

    def layered(self, pairs: dict[str, str]) -> "OverrideTable":
        """Return a new table where ``pairs`` take precedence.

        A higher layer key replaces lower layer keys that differ only in case,
        so "metagenomics=1" from the environment shadows a built-in
        "Metagenomics".
        """
        merged = dict(self.gids)
        for name, gid in pairs.items():
            for existing in [k for k in merged if k.lower() == name.lower()]:
                del merged[existing]
        merged.update(pairs)
        return OverrideTable(gids=merged)

    def lookup(self, tab_name: str) -> Optional[str]:
        """Find the override gid for a tab: exact match, then case-insensitive."""
        if tab_name in self.gids:
            return self.gids[tab_name]

        candidates = [k for k in self.gids if k.lower() == tab_name.lower()]
        if not candidates:
            return None
        gids = {self.gids[k] for k in candidates}
        if len(gids) > 1:
            raise AmbiguousOverrideError(tab_name, candidates)
        return self.gids[candidates[0]]


class TabResult(BaseModel):
    """Outcome of exporting a single tab."""

    tab_name: str
    path: Optional[Path] = None
    gid: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.path is not None
