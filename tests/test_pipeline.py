"""Tests for the export pipeline."""

import threading

import httpx
import pytest

from sheetmd.pipeline import SheetExporter
from sheetmd.sheets import (
    ExportCancelledError,
    MalformedLocatorError,
    OverrideTable,
    UnexpectedResponseFormatError,
)

from conftest import SHEET_URL

OVERRIDES = OverrideTable(gids={"Targeted Sequencing": "1", "Metagenomics": "2"})


@pytest.fixture
def exporter(test_settings, sheets_client):
    return SheetExporter(test_settings, client=sheets_client)


class TestSheetExporter:
    """Test SheetExporter.export."""

    def test_exports_tabs_in_order(self, fake_sheets, exporter, test_settings):
        """Test each tab is written and results follow request order."""
        fake_sheets.exports[("gid", "1")] = "Field,Type\nmarker,string\n"
        fake_sheets.exports[("gid", "2")] = "Field\nhost\n"

        results = exporter.export(overrides=OVERRIDES)

        assert [r.tab_name for r in results] == ["Targeted Sequencing", "Metagenomics"]
        assert all(r.ok for r in results)
        assert [r.gid for r in results] == ["1", "2"]
        first = (test_settings.outdir / "targeted-sequencing.md").read_text(encoding="utf-8")
        assert "| marker | string |" in first
        assert (test_settings.outdir / "metagenomics.md").exists()

    def test_override_used_instead_of_network(self, fake_sheets, exporter):
        """Test an override gid is exported without fetching metadata."""
        fake_sheets.exports[("gid", "2")] = "a\n"
        exporter.export(tabs=["Metagenomics"], overrides=OVERRIDES)
        assert fake_sheets.paths() == ["/spreadsheets/d/abc123/export"]

    def test_cli_override_beats_default(self, fake_sheets, exporter):
        """Test the highest-precedence gid is the one exported."""
        overrides = OverrideTable(gids={"Metagenomics": "2"}).layered({"Metagenomics": "99"})
        fake_sheets.exports[("gid", "99")] = "a\n"
        results = exporter.export(tabs=["Metagenomics"], overrides=overrides)
        assert results[0].gid == "99"
        assert fake_sheets.requests[0].url.params["gid"] == "99"

    def test_resolves_gid_from_metadata(self, fake_sheets, exporter):
        """Test tabs without overrides are resolved through gviz."""
        fake_sheets.gviz = '{"sheets": [{"properties": {"sheetId": 7, "title": "Transcriptomics"}}]}'
        fake_sheets.exports[("gid", "7")] = "a\n"
        results = exporter.export(tabs=["Transcriptomics"], overrides=OverrideTable())
        assert results[0].gid == "7"

    def test_falls_back_to_name_export(self, fake_sheets, exporter):
        """Test name-addressed export when no gid can be found."""
        fake_sheets.gviz = httpx.Response(403)
        fake_sheets.edit = httpx.Response(403)
        fake_sheets.exports[("sheet", "Transcriptomics")] = "a\n"
        results = exporter.export(tabs=["Transcriptomics"], overrides=OverrideTable())
        assert results[0].ok
        assert results[0].gid is None

    def test_empty_tab_writes_sentinel(self, fake_sheets, exporter, test_settings):
        """Test an empty CSV still produces a file with the no-data marker."""
        fake_sheets.exports[("gid", "2")] = ""
        exporter.export(tabs=["Metagenomics"], overrides=OVERRIDES)
        assert (test_settings.outdir / "metagenomics.md").read_text(encoding="utf-8").endswith("(No data)\n")

    def test_malformed_url_aborts_before_any_tab(self, fake_sheets, exporter):
        """Test a bad sheet URL fails before any request is made."""
        with pytest.raises(MalformedLocatorError):
            exporter.export(sheet_url="https://docs.google.com/spreadsheets/", overrides=OVERRIDES)
        assert fake_sheets.requests == []

    def test_failure_aborts_batch_and_keeps_earlier_files(self, fake_sheets, exporter, test_settings):
        """Test the first failure is raised and earlier output remains."""
        fake_sheets.exports[("gid", "1")] = "a\n"
        fake_sheets.exports[("gid", "2")] = "<html>denied</html>"
        fake_sheets.exports[("gid", "3")] = "never fetched\n"
        overrides = OVERRIDES.layered({"Transcriptomics": "3"})

        with pytest.raises(UnexpectedResponseFormatError):
            exporter.export(
                tabs=["Targeted Sequencing", "Metagenomics", "Transcriptomics"],
                overrides=overrides,
            )

        assert (test_settings.outdir / "targeted-sequencing.md").exists()
        assert not (test_settings.outdir / "metagenomics.md").exists()
        assert not (test_settings.outdir / "transcriptomics.md").exists()

    def test_keep_going_records_failures(self, fake_sheets, exporter, test_settings):
        """Test keep_going isolates failures per tab."""
        fake_sheets.exports[("gid", "1")] = "<html>denied</html>"
        fake_sheets.exports[("gid", "2")] = "a\n"

        results = exporter.export(overrides=OVERRIDES, keep_going=True)

        assert not results[0].ok
        assert "HTML instead of CSV" in results[0].error
        assert results[1].ok
        assert (test_settings.outdir / "metagenomics.md").exists()

    def test_cancel_before_start(self, fake_sheets, exporter):
        """Test a set cancel event stops tabs from starting."""
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ExportCancelledError):
            exporter.export(overrides=OVERRIDES, cancel_event=cancel)
        assert fake_sheets.requests == []

    def test_cancel_between_tabs(self, fake_sheets, exporter):
        """Test cancellation is checked before each tab."""
        cancel = threading.Event()

        def first_tab(request):
            cancel.set()
            return httpx.Response(200, text="a\n")

        fake_sheets.exports[("gid", "1")] = first_tab
        fake_sheets.exports[("gid", "2")] = "never fetched\n"

        results = exporter.export(overrides=OVERRIDES, cancel_event=cancel, keep_going=True)

        assert results[0].ok
        assert not results[1].ok
        assert "cancelled" in results[1].error
        assert len(fake_sheets.requests) == 1

    def test_filename_collisions_deduplicated(self, fake_sheets, exporter, test_settings):
        """Test tabs that share a kebab name are written to distinct files."""
        fake_sheets.exports[("gid", "1")] = "first\n"
        fake_sheets.exports[("gid", "2")] = "second\n"
        overrides = OverrideTable(gids={"A/B": "1", "A B": "2"})

        results = exporter.export(tabs=["A/B", "A B"], overrides=overrides)

        assert [r.path.name for r in results] == ["a-b.md", "a-b-2.md"]
        assert "| first |" in results[0].path.read_text(encoding="utf-8")
        assert "| second |" in results[1].path.read_text(encoding="utf-8")

    def test_parallel_preserves_order(self, fake_sheets, exporter):
        """Test results follow request order when tabs run concurrently."""
        tabs = [f"Tab {i}" for i in range(6)]
        overrides = OverrideTable(gids={t: str(i) for i, t in enumerate(tabs)})
        for i in range(6):
            fake_sheets.exports[("gid", str(i))] = f"h\n{i}\n"

        results = exporter.export(tabs=tabs, overrides=overrides, jobs=3)

        assert [r.tab_name for r in results] == tabs
        assert [r.path.name for r in results] == [f"tab-{i}.md" for i in range(6)]

    def test_parallel_failure_raises(self, fake_sheets, exporter):
        """Test a failing tab is raised from a concurrent run."""
        fake_sheets.exports[("gid", "1")] = "a\n"
        fake_sheets.exports[("gid", "2")] = "<html></html>"
        with pytest.raises(UnexpectedResponseFormatError):
            exporter.export(overrides=OVERRIDES, jobs=2)

    def test_default_overrides_from_settings(self, fake_sheets, test_settings, sheets_client):
        """Test environment overrides in settings are applied when none are passed."""
        test_settings.gids_env = "Metagenomics=42"
        fake_sheets.exports[("gid", "42")] = "a\n"
        results = SheetExporter(test_settings, client=sheets_client).export(tabs=["Metagenomics"])
        assert results[0].gid == "42"

    def test_explicit_sheet_url(self, fake_sheets, exporter):
        """Test the sheet URL argument replaces the configured one."""
        fake_sheets.exports[("gid", "2")] = "a\n"
        exporter.export(
            tabs=["Metagenomics"],
            sheet_url=SHEET_URL.replace("abc123", "other"),
            overrides=OVERRIDES,
        )
        assert fake_sheets.paths() == ["/spreadsheets/d/other/export"]
