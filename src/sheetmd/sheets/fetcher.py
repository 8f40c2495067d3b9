"""CSV export for a single tab."""

import logging
from typing import Optional

from .client import PublicSheetsClient
from .models import UnexpectedResponseFormatError
from .resolver import GidResolver

logger = logging.getLogger(__name__)


def looks_like_html(body: str) -> bool:
    """The export endpoint answers 200 with an HTML page on permission or name errors."""
    return body.lstrip().startswith("<")


class TabFetcher:
    """Fetches CSV text for a tab, preferring gid-addressed export."""

    def __init__(self, client: PublicSheetsClient, resolver: GidResolver):
        self.client = client
        self.resolver = resolver

    def export_url_for(self, sheet_id: str, tab_name: str, gid: Optional[str] = None) -> str:
        if gid:
            url = self.client.export_url(sheet_id, gid=gid)
            logger.debug("Fetching CSV for '%s' via gid from: %s", tab_name, url)
        else:
            url = self.client.export_url(sheet_id, sheet=tab_name)
            logger.debug("Fetching CSV for '%s' via sheet name from: %s", tab_name, url)
        return url

    def fetch_csv(self, sheet_id: str, tab_name: str, gid: Optional[str] = None) -> str:
        """Return the CSV body for ``tab_name``.

        Exports by ``gid`` when one is given (override or resolved), otherwise
        by tab name, which is less reliable.

        Raises:
            UnexpectedResponseFormatError: the body is HTML, not CSV. The
                error lists the tabs that could be discovered, if any.
        """
        url = self.export_url_for(sheet_id, tab_name, gid)
        body = self.client.fetch_text(url)
        if looks_like_html(body):
            logger.warning("Got HTML instead of CSV for tab '%s' from %s", tab_name, url)
            available = self.resolver.available_tabs(sheet_id)
            raise UnexpectedResponseFormatError(tab_name, url, available)
        return body
