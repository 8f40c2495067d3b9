"""Configuration management for sheetmd."""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .sheets.models import OverrideTable

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_SHEET_URL = (
    "https://docs.google.com/spreadsheets/d/"
    "1Hx0HNsCKG1aR8htJTIpYsOcLiOSVUyo_n85mV6d_TSU/edit?usp=sharing"
)

# Built-in tab title -> gid pairs for the checklist sheet
DEFAULT_TAB_GIDS: dict[str, str] = {
    "Targeted Sequencing": "2041814223",
    "Chromatin-Related": "1371550803",
    "Chromosome Conformation": "1612247613",
    "Metagenomics": "862306389",
    "Transcriptomics": "1495274914",
}


def _env_flag(name: str) -> bool:
    """Treat any non-empty value other than 0/false/no as enabled."""
    value = os.getenv(name, "").strip().lower()
    return value not in ("", "0", "false", "no")


class Settings(BaseModel):
    """Application settings."""

    # Source document
    sheet_url: str = Field(default_factory=lambda: os.getenv("EXTRACT_SHEETS_URL", DEFAULT_SHEET_URL))
    default_tabs: list[str] = Field(default_factory=lambda: list(DEFAULT_TAB_GIDS))

    # Raw EXTRACT_SHEETS_GIDS value, parsed by parse_env_overrides
    gids_env: Optional[str] = Field(default_factory=lambda: os.getenv("EXTRACT_SHEETS_GIDS"))

    # Verbose logging
    debug: bool = Field(default_factory=lambda: _env_flag("EXTRACT_SHEETS_DEBUG"))

    # HTTP settings
    base_url: str = Field(
        default_factory=lambda: os.getenv("EXTRACT_SHEETS_BASE_URL", "https://docs.google.com/spreadsheets")
    )
    http_timeout: float = Field(default_factory=lambda: float(os.getenv("EXTRACT_SHEETS_TIMEOUT", "30")))
    max_attempts: int = Field(default_factory=lambda: int(os.getenv("EXTRACT_SHEETS_MAX_ATTEMPTS", "3")))
    backoff_seconds: float = Field(default_factory=lambda: float(os.getenv("EXTRACT_SHEETS_BACKOFF", "1.0")))

    # Output directory for the generated Markdown files
    outdir: Path = Field(default_factory=lambda: Path(os.getenv("EXTRACT_SHEETS_OUTDIR", ".")))


def parse_env_overrides(raw: Optional[str]) -> dict[str, str]:
    """Parse EXTRACT_SHEETS_GIDS.

    Accepts either a JSON object (``{"Name": 123}``) or semicolon separated
    ``Name=gid`` pairs. Chunks without ``=`` are skipped.
    """
    if not raw or not raw.strip():
        return {}

    try:
        obj = json.loads(raw)
    except ValueError:
        obj = None

    if isinstance(obj, dict):
        return {str(k).strip(): str(v).strip() for k, v in obj.items()}

    pairs = {}
    for chunk in raw.split(";"):
        if not chunk.strip():
            continue
        if "=" not in chunk:
            logger.warning("Ignoring EXTRACT_SHEETS_GIDS entry without '=': %s", chunk)
            continue
        name, gid = chunk.split("=", 1)
        pairs[name.strip()] = gid.strip()
    return pairs


def parse_cli_overrides(pairs: Optional[Iterable[str]]) -> dict[str, str]:
    """Parse ``--tab-gids`` entries of the form ``Name=gid``."""
    result = {}
    for pair in pairs or []:
        if "=" not in pair:
            logger.warning("Ignoring --tab-gids entry without '=': %s", pair)
            continue
        name, gid = pair.split("=", 1)
        result[name.strip()] = gid.strip()
    return result


def build_override_table(
    cli_pairs: Optional[Iterable[str]] = None,
    env_value: Optional[str] = None,
    defaults: Optional[dict[str, str]] = None,
) -> OverrideTable:
    """Merge overrides with precedence CLI > environment > built-in defaults."""
    table = OverrideTable(gids=dict(DEFAULT_TAB_GIDS if defaults is None else defaults))
    table = table.layered(parse_env_overrides(env_value))
    return table.layered(parse_cli_overrides(cli_pairs))
