"""Markdown file output."""

import logging
import re
from pathlib import Path
from typing import Iterable, Union

logger = logging.getLogger(__name__)

MARKDOWN_PREAMBLE = (
    "## {tab_name}\n\n"
    "These are properties for {tab_name} that are non-core, and thus not found "
    "in all sequencing experiments. \n\n"
    "Some will be unique to this type of experiment and some common to several types.\n\n"
    "Table of {tab_name} properties\n\n"
)


def kebab_case(name: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', fall back to 'sheet'."""
    s = name.strip().lower()
    s = re.sub(r"[^a-z0-9]+", "-", s).strip("-")
    return s or "sheet"


def plan_output_paths(outdir: Union[str, Path], tab_names: Iterable[str]) -> list[Path]:
    """Allocate one output path per tab, in order.

    Tabs whose kebab-cased names collide get -2, -3, ... suffixes so one tab
    never overwrites another within the same run.
    """
    outdir = Path(outdir)
    taken: set[str] = set()
    paths = []
    for tab_name in tab_names:
        stem = kebab_case(tab_name)
        candidate = stem
        n = 2
        while candidate in taken:
            candidate = f"{stem}-{n}"
            n += 1
        if candidate != stem:
            logger.warning("Tab '%s' collides with another tab on %s.md; writing %s.md", tab_name, stem, candidate)
        taken.add(candidate)
        paths.append(outdir / f"{candidate}.md")
    return paths


def write_markdown(path: Union[str, Path], tab_name: str, md_content: str) -> Path:
    """Write the preamble and table to ``path``, replacing any existing file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(MARKDOWN_PREAMBLE.format(tab_name=tab_name))
        fh.write(md_content)
    return path
