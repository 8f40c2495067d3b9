"""Tab name -> gid resolution.

Export by gid is stable across tab renames, so names are mapped to gids
before fetching. The mapping comes from, in order:

1. the override table (defaults, environment, CLI),
2. the gviz metadata endpoint,
3. the bootstrap JSON embedded in the edit page.

Network strategies run in order and the first non-empty mapping wins. Nothing
is cached across calls.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from .client import PublicSheetsClient
from .models import HandleResolutionError, OverrideTable

logger = logging.getLogger(__name__)

# Anti-JSON-hijacking prefix Google sometimes puts before JSON payloads
XSSI_PREFIX = ")]}'"

_SHEETS_KEY_RE = re.compile(r'"sheets"\s*:\s*\[')
_SHEET_PAIR_RE = re.compile(
    r'\{[^{}]*?"sheetId"\s*:\s*(\d+)[^{}]*?"title"\s*:\s*"([^"]+)"[^{}]*\}'
)


def unwrap_gviz_payload(text: str) -> Optional[dict]:
    """Strip the JSONP/XSSI wrapping from a gviz response and parse it.

    Tries the outermost ``{...}`` first, then removes a leading ``)]}'``
    marker and a ``callback(...)`` wrapper. Returns None if nothing parses.
    """
    json_start = text.find("{")
    json_end = text.rfind("}")
    if json_start != -1 and json_end >= json_start:
        try:
            data = json.loads(text[json_start:json_end + 1])
            if isinstance(data, dict):
                return data
        except (ValueError, RecursionError):
            pass

    stripped = text.lstrip()
    if stripped.startswith(XSSI_PREFIX):
        stripped = stripped[len(XSSI_PREFIX):].lstrip()
    cb_open = stripped.find("(")
    cb_close = stripped.rfind(")")
    candidate = stripped
    if cb_open != -1 and cb_close > cb_open:
        candidate = stripped[cb_open + 1:cb_close]
    try:
        data = json.loads(candidate)
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def gids_from_sheets_list(data: Any) -> dict[str, str]:
    """Collect ``sheets[].properties.{title, sheetId}`` pairs."""
    name_gid = {}
    sheets = data.get("sheets") if isinstance(data, dict) else None
    if not isinstance(sheets, list):
        return name_gid
    for sheet in sheets:
        props = sheet.get("properties", {}) if isinstance(sheet, dict) else {}
        if not isinstance(props, dict):
            continue
        title = props.get("title")
        gid = props.get("sheetId")
        if isinstance(title, str) and gid is not None:
            name_gid[title] = str(gid)
    return name_gid


def gids_from_table_rows(data: Any) -> dict[str, str]:
    """Collect (gid, title) pairs from the legacy ``table.rows[].c`` shape."""
    name_gid = {}
    table = data.get("table") if isinstance(data, dict) else None
    rows = table.get("rows", []) if isinstance(table, dict) else []
    if not isinstance(rows, list):
        return name_gid
    for row in rows:
        cells = row.get("c", []) if isinstance(row, dict) else []
        if not isinstance(cells, list) or len(cells) < 2:
            continue
        if not (isinstance(cells[0], dict) and isinstance(cells[1], dict)):
            continue
        gid = cells[0].get("v")
        name = cells[1].get("v")
        if isinstance(gid, float) and gid.is_integer():
            gid = int(gid)
        if isinstance(gid, (int, str)) and not isinstance(gid, bool) and isinstance(name, str):
            name_gid[name] = str(gid)
    return name_gid


def gids_from_edit_html(html: str) -> dict[str, str]:
    """Extract title -> gid pairs from the edit page HTML.

    Looks for an embedded ``"sheets": [...]`` list first, decoding the list
    in place from its opening bracket, then falls back to scanning for
    objects that carry both ``sheetId`` and ``title``.
    """
    name_gid = {}
    decoder = json.JSONDecoder()
    for match in _SHEETS_KEY_RE.finditer(html):
        try:
            sheets, _ = decoder.raw_decode(html, match.end() - 1)
        except (ValueError, RecursionError):
            logger.debug("Embedded sheets list at offset %d is not valid JSON", match.start())
            continue
        name_gid = gids_from_sheets_list({"sheets": sheets})
        if name_gid:
            break

    if not name_gid:
        for pair in _SHEET_PAIR_RE.finditer(html):
            gid, title = pair.group(1), pair.group(2)
            name_gid[title] = gid
    return name_gid


class GidStrategy(ABC):
    """One way of discovering tab name -> gid pairs for a document."""

    name = "strategy"

    def __init__(self, client: PublicSheetsClient):
        self.client = client

    @abstractmethod
    def fetch_mapping(self, sheet_id: str) -> dict[str, str]:
        """Fetch and parse the mapping; may raise."""
        pass

    def resolve(self, sheet_id: str) -> dict[str, str]:
        """Return the mapping, or an empty dict if this strategy failed."""
        try:
            mapping = self.fetch_mapping(sheet_id)
        except (httpx.HTTPError, RecursionError) as e:
            logger.warning("%s lookup failed for sheet %s: %s", self.name, sheet_id, e)
            return {}
        logger.debug("%s found %d tabs", self.name, len(mapping))
        return mapping


class GvizMetadataStrategy(GidStrategy):
    """Read tab metadata from the gviz query endpoint."""

    name = "gviz"

    def fetch_mapping(self, sheet_id: str) -> dict[str, str]:
        url = self.client.gviz_url(sheet_id)
        logger.debug("Fetching GViz metadata from: %s", url)
        data = unwrap_gviz_payload(self.client.fetch_text(url))
        if data is None:
            return {}
        name_gid = gids_from_sheets_list(data)
        name_gid.update(gids_from_table_rows(data))
        return name_gid


class EditPageStrategy(GidStrategy):
    """Scrape the bootstrap data embedded in the edit page."""

    name = "edit page"

    def fetch_mapping(self, sheet_id: str) -> dict[str, str]:
        url = self.client.edit_url(sheet_id)
        logger.debug("Fetching edit page bootstrap from: %s", url)
        return gids_from_edit_html(self.client.fetch_text(url))


class GidResolver:
    """Resolves tab names to gids using overrides and network strategies."""

    def __init__(
        self,
        client: PublicSheetsClient,
        overrides: Optional[OverrideTable] = None,
        strategies: Optional[list[GidStrategy]] = None,
    ):
        self.client = client
        self.overrides = overrides or OverrideTable()
        if strategies is None:
            strategies = [GvizMetadataStrategy(client), EditPageStrategy(client)]
        self.strategies = strategies

    def lookup_override(self, tab_name: str) -> Optional[str]:
        return self.overrides.lookup(tab_name)

    def name_to_gid_map(self, sheet_id: str) -> dict[str, str]:
        """Build the tab title -> gid mapping from the first strategy that yields one.

        Raises:
            HandleResolutionError: every strategy came back empty.
        """
        for strategy in self.strategies:
            mapping = strategy.resolve(sheet_id)
            if mapping:
                logger.debug("Resolved tab name->gid map via %s: %s", strategy.name, list(mapping))
                return mapping
        raise HandleResolutionError(sheet_id)

    def resolve(self, sheet_id: str, tab_name: str) -> Optional[str]:
        """Return the gid for a tab, or None if only name-based export is left."""
        gid = self.lookup_override(tab_name)
        if gid:
            logger.info("Using override gid %s for tab '%s'", gid, tab_name)
            return gid

        try:
            mapping = self.name_to_gid_map(sheet_id)
        except HandleResolutionError as e:
            logger.warning("Failed to resolve gid for tab '%s': %s. Will try name parameter.", tab_name, e)
            return None

        gid = mapping.get(tab_name)
        if not gid:
            lowered = {k.lower(): v for k, v in mapping.items()}
            gid = lowered.get(tab_name.lower())
        if not gid:
            logger.warning(
                "Tab '%s' not found in sheet metadata. Available tabs detected: %s",
                tab_name,
                list(mapping),
            )
            return None
        return gid

    def available_tabs(self, sheet_id: str) -> list[str]:
        """List tab titles for diagnostics; any failure gives an empty list."""
        try:
            return list(self.name_to_gid_map(sheet_id))
        except Exception as e:
            logger.debug("Could not list tabs for sheet %s: %s", sheet_id, e)
            return []
