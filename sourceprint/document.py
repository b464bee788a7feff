"""Assemble rendered fragments into one standalone, print-friendly HTML page."""

from __future__ import annotations

import html
from typing import Iterable, Sequence

from .highlight import Fragment

PRINT_STYLE = """
body {
    font: 10pt Georgia, "Times New Roman", Times, serif;
    line-height: 1.3;
    margin: .5cm .5cm .5cm 1.5cm;
}
h2 {
    page-break-after: avoid;
}
pre {
    white-space: pre-wrap;
    word-wrap: break-word;
}
.pagebreak {
    margin-top: 50px;
}
"""


def build_stylesheet(theme_css: str = "") -> str:
    return PRINT_STYLE + theme_css


def render_index(paths: Sequence[str]) -> str:
    items = "\n".join(f"<p>{html.escape(p)}</p>" for p in paths)
    return f"<details><summary>All Files</summary>{items}</details>"


def assemble(fragments: Iterable[Fragment], stylesheet: str = PRINT_STYLE, index: Sequence[str] | None = None) -> str:
    """Wrap fragments, in the order given, in a single <html> document."""
    parts = [
        '<html><head><meta charset="utf-8">',
        f"<style>{stylesheet}</style>",
        "</head><body>",
    ]
    if index is not None:
        parts.append(render_index(index))
    parts.extend(f.html for f in fragments)
    parts.append("</body></html>")
    return "".join(parts)
