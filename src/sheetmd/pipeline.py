"""Tab export orchestration: resolve, fetch, render and write each tab."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional

from .config import Settings, build_override_table
from .render import csv_to_markdown_table, plan_output_paths, write_markdown
from .sheets import (
    ExportCancelledError,
    GidResolver,
    OverrideTable,
    PublicSheetsClient,
    TabFetcher,
    TabResult,
    sheet_id_from_url,
)

logger = logging.getLogger(__name__)


class SheetExporter:
    """
    Exports spreadsheet tabs to Markdown files.

    Tabs are independent: each one is resolved, fetched, rendered and written
    on its own. By default the first failure aborts the batch; with
    ``keep_going`` failures are recorded per tab and the batch continues.
    Files written before a failure are left in place.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[PublicSheetsClient] = None,
    ):
        self.settings = settings or Settings()
        self.client = client or PublicSheetsClient.from_settings(self.settings)

    def export(
        self,
        tabs: Optional[Iterable[str]] = None,
        sheet_url: Optional[str] = None,
        overrides: Optional[OverrideTable] = None,
        outdir: Optional[Path] = None,
        keep_going: bool = False,
        jobs: int = 1,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[TabResult]:
        """
        Export tabs and return one result per tab, in request order.

        Args:
            tabs: Tab names (default: settings.default_tabs)
            sheet_url: Spreadsheet URL (default: settings.sheet_url)
            overrides: Tab name -> gid overrides (default: built-ins merged with env)
            outdir: Output directory (default: settings.outdir)
            keep_going: Record failures instead of raising
            jobs: Number of tabs processed concurrently
            cancel_event: When set, tabs not yet started are cancelled

        Raises:
            MalformedLocatorError: The sheet URL has no document id
        """
        sheet_id = sheet_id_from_url(sheet_url or self.settings.sheet_url)
        logger.info("Using sheet id: %s", sheet_id)

        tabs = list(tabs or self.settings.default_tabs)
        logger.info("Using tabs: %s", tabs)

        if overrides is None:
            overrides = build_override_table(env_value=self.settings.gids_env)
        if overrides.gids:
            logger.info("Using tab gid mapping for: %s", overrides.names())

        outdir = Path(outdir or self.settings.outdir)
        outdir.mkdir(parents=True, exist_ok=True)

        resolver = GidResolver(self.client, overrides)
        fetcher = TabFetcher(self.client, resolver)
        cancel_event = cancel_event or threading.Event()
        work = list(zip(tabs, plan_output_paths(outdir, tabs)))

        def run(tab_name: str, path: Path) -> TabResult:
            return self._export_tab(resolver, fetcher, sheet_id, tab_name, path, cancel_event, keep_going)

        if jobs <= 1:
            return [run(tab_name, path) for tab_name, path in work]

        with ThreadPoolExecutor(max_workers=jobs) as pool:
            futures = [pool.submit(run, tab_name, path) for tab_name, path in work]
            results = []
            try:
                for future in futures:
                    results.append(future.result())
            except BaseException:
                cancel_event.set()
                for future in futures:
                    future.cancel()
                raise
            return results

    def _export_tab(
        self,
        resolver: GidResolver,
        fetcher: TabFetcher,
        sheet_id: str,
        tab_name: str,
        path: Path,
        cancel_event: threading.Event,
        keep_going: bool,
    ) -> TabResult:
        gid = None
        try:
            if cancel_event.is_set():
                raise ExportCancelledError(tab_name)
            logger.info("Processing tab: %s", tab_name)
            gid = resolver.resolve(sheet_id, tab_name)
            csv_text = fetcher.fetch_csv(sheet_id, tab_name, gid=gid)
            md_table = csv_to_markdown_table(csv_text)
            write_markdown(path, tab_name, md_table)
            logger.info("Wrote %s", path)
            return TabResult(tab_name=tab_name, path=path, gid=gid)
        except Exception as e:
            logger.error("Failed to process tab '%s': %s", tab_name, e)
            if not keep_going:
                raise
            return TabResult(tab_name=tab_name, gid=gid, error=str(e))

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
