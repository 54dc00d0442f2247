"""Export the generated page as a standalone HTML file."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def export_filename(name: str) -> str:
    """Derive a file name from a business name.

    ``"Joe's Café & Bar"`` becomes ``"joe's-café-&-bar.html"``. Characters
    are kept as-is except whitespace runs and path separators, which become
    ``-``.
    """
    slug = _WHITESPACE_RE.sub("-", name.strip()).lower()
    slug = slug.replace("/", "-").replace("\\", "-")
    if not slug:
        return "website.html"
    return f"{slug}.html"


def export_site(html: str, name: str, directory: str | Path) -> Path:
    """Write ``html`` to ``directory`` and return the written path."""
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / export_filename(name)
    path.write_text(html, encoding="utf-8")
    logger.info("Exported site to %s", path)
    return path
