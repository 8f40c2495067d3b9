"""Pytest configuration and shared fixtures."""

from pathlib import Path

import httpx
import pytest

from sheetmd.config import Settings
from sheetmd.sheets import PublicSheetsClient

BASE_URL = "https://sheets.test/spreadsheets"
SHEET_ID = "abc123"
SHEET_URL = f"{BASE_URL}/d/{SHEET_ID}/edit?usp=sharing"


class FakeGoogleSheets:
    """In-process stand-in for the gviz, edit and export endpoints.

    Each endpoint is configured with a body string, an ``httpx.Response``, an
    exception to raise, a callable taking the request, or a list of those
    consumed one per request.
    """

    def __init__(self):
        self.gviz = None
        self.edit = None
        self.exports = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/gviz/tq"):
            return self._reply(request, "gviz")
        if path.endswith("/edit"):
            return self._reply(request, "edit")
        if path.endswith("/export"):
            params = request.url.params
            if "gid" in params:
                key = ("gid", params["gid"])
            else:
                key = ("sheet", params.get("sheet"))
            return self._reply_spec(request, self.exports.get(key))
        return httpx.Response(404, text="not found")

    def _reply(self, request, attr):
        spec = getattr(self, attr)
        if isinstance(spec, list):
            spec = spec.pop(0) if spec else None
        return self._reply_spec(request, spec)

    def _reply_spec(self, request, spec):
        if isinstance(spec, list):
            spec = spec.pop(0) if spec else None
        if spec is None:
            return httpx.Response(404, text="<html>not found</html>")
        if isinstance(spec, Exception):
            raise spec
        if isinstance(spec, httpx.Response):
            return spec
        if callable(spec):
            return spec(request)
        return httpx.Response(200, text=spec)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def fake_sheets() -> FakeGoogleSheets:
    """Fake Sheets endpoints with nothing configured."""
    return FakeGoogleSheets()


@pytest.fixture
def sheets_client(fake_sheets: FakeGoogleSheets):
    """Client wired to the fake endpoints, with retries but no backoff delay."""
    client = PublicSheetsClient(
        base_url=BASE_URL,
        timeout=5.0,
        max_attempts=3,
        backoff_seconds=0,
        transport=httpx.MockTransport(fake_sheets.handler),
    )
    yield client
    client.close()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at the fake endpoints and a temporary output dir."""
    return Settings(
        sheet_url=SHEET_URL,
        default_tabs=["Targeted Sequencing", "Metagenomics"],
        gids_env=None,
        debug=False,
        base_url=BASE_URL,
        http_timeout=5.0,
        max_attempts=2,
        backoff_seconds=0,
        outdir=tmp_path / "out",
    )
