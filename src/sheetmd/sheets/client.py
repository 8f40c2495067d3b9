"""HTTP client for publicly readable Google Sheets."""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://docs.google.com/spreadsheets"

# Status codes worth another attempt; everything else is permanent
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_transient_error(exc: BaseException) -> bool:
    """Return True for network failures that may succeed on retry."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


class PublicSheetsClient:
    """Unauthenticated client for the gviz, edit and export endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self._http = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.BaseTransport] = None) -> "PublicSheetsClient":
        """Build a client from a Settings instance."""
        return cls(
            base_url=settings.base_url,
            timeout=settings.http_timeout,
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.backoff_seconds,
            transport=transport,
        )

    def gviz_url(self, sheet_id: str) -> str:
        return f"{self.base_url}/d/{sheet_id}/gviz/tq?tqx=out:json"

    def edit_url(self, sheet_id: str) -> str:
        return f"{self.base_url}/d/{sheet_id}/edit"

    def export_url(self, sheet_id: str, gid: Optional[str] = None, sheet: Optional[str] = None) -> str:
        """Build a CSV export URL addressed by gid or, failing that, by tab name."""
        params = {"format": "csv"}
        if gid:
            params["gid"] = str(gid)
        elif sheet is not None:
            params["sheet"] = sheet
        else:
            raise ValueError("export_url needs a gid or a sheet name")
        return f"{self.base_url}/d/{sheet_id}/export?" + urlencode(params)

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=30),
            retry=retry_if_exception(is_transient_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def fetch_text(self, url: str) -> str:
        """GET a URL and return the decoded body.

        Transient failures are retried with exponential backoff; the last
        exception is re-raised once attempts run out.
        """
        for attempt in self._retrying():
            with attempt:
                logger.debug("GET %s (attempt %d)", url, attempt.retry_state.attempt_number)
                response = self._http.get(url)
                response.raise_for_status()
                # charset from the headers, utf-8 otherwise; undecodable bytes replaced
                return response.text

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
