"""Command-line interface for sheetmd."""

import argparse
import logging
import signal
import sys
import threading

from .config import Settings, build_override_table
from .pipeline import SheetExporter
from .sheets import ExportCancelledError

logger = logging.getLogger("sheetmd")

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sheetmd",
        description="Extract Google Sheets tabs to Markdown tables",
    )
    parser.add_argument(
        "--sheet-url", help="Google Sheet URL (view link); defaults to the checklist sheet"
    )
    parser.add_argument(
        "--tabs",
        nargs="+",
        help="Tab (sheet) names to export. Provide exact tab names as they appear in Google Sheets.",
    )
    parser.add_argument(
        "--tab-gids",
        nargs="+",
        help="Optional overrides mapping tab names to gids, e.g.: "
        "--tab-gids 'Targeted Sequencing=2041814223' 'Chromatin-Related=1371550803'",
    )
    parser.add_argument(
        "--outdir",
        default=str(settings.outdir),
        help=f"Output directory (default: {settings.outdir})",
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Continue with the remaining tabs when one fails",
    )
    parser.add_argument(
        "--jobs", "-j", type=int, default=1, help="Number of tabs to fetch concurrently (default: 1)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(debug: bool):
    """Set up console logging once for the process."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.NOTSET if debug else logging.WARNING)


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    try:
        settings = Settings()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_FAILURE
    args = build_parser(settings).parse_args(argv)
    configure_logging(args.verbose or settings.debug)

    overrides = build_override_table(cli_pairs=args.tab_gids, env_value=settings.gids_env)
    cancel_event = threading.Event()

    def handle_interrupt(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupted; stopping after the current tab (Ctrl-C again to abort)")
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        with SheetExporter(settings) as exporter:
            results = exporter.export(
                tabs=args.tabs,
                sheet_url=args.sheet_url,
                overrides=overrides,
                outdir=args.outdir,
                keep_going=args.keep_going,
                jobs=args.jobs,
                cancel_event=cancel_event,
            )
    except (ExportCancelledError, KeyboardInterrupt):
        logger.error("Export cancelled")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.error("Export failed: %s", e)
        return EXIT_FAILURE
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    written = [str(r.path) for r in results if r.ok]
    if written:
        print("\n".join(written))

    failed = [r for r in results if not r.ok]
    for result in failed:
        logger.error("Tab '%s' failed: %s", result.tab_name, result.error)
    if failed:
        return EXIT_INTERRUPTED if cancel_event.is_set() else EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
