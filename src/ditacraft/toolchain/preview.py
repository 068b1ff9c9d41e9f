"""Locate the HTML page to open after an HTML5 publish."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


def find_preview_page(
    output_dir: Union[str, Path], stem: str
) -> Optional[Path]:
    """Return ``<stem>.html``, else ``index.html``, else any HTML page.

    Maps publish to ``index.html``; topics publish to a page named after the
    topic file. ``None`` means the output directory holds no HTML at all.
    """

    root = Path(output_dir)
    if not root.is_dir():
        return None
    for name in (f"{stem}.html", "index.html"):
        candidate = root / name
        if candidate.is_file():
            return candidate
    pages = sorted(path for path in root.rglob("*.html") if path.is_file())
    return pages[0] if pages else None
