"""Per-file syntax highlighting via Pygments."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import FrozenSet

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_all_lexers, get_lexer_for_filename
from pygments.util import ClassNotFound

from .errors import RenderError

logger = logging.getLogger(__name__)

THEME = "default"
CSS_SCOPE = ".highlight"


@dataclass(frozen=True)
class Fragment:
    rel: str
    extension: str
    html: str


def known_extensions() -> FrozenSet[str]:
    """Every plain `*.ext` filename pattern some Pygments lexer claims."""
    exts = set()
    for _name, _aliases, filenames, _mimetypes in get_all_lexers():
        for pattern in filenames:
            if not pattern.startswith("*."):
                continue
            ext = pattern[2:]
            # Skip compound patterns like "*.[ch]" or "*.py*".
            if ext and not any(ch in ext for ch in "*?[]"):
                exts.add(ext.lower())
    return frozenset(exts)


class GrammarRegistry:
    """
    Read-only map from file extension to a Pygments lexer.

    Built once per process and shared by every render call. Extensions no lexer
    claims resolve to None, which callers treat as plain text.
    """

    def __init__(self, extensions: FrozenSet[str] | None = None):
        self._extensions = known_extensions() if extensions is None else frozenset(extensions)

    def __contains__(self, extension: str) -> bool:
        return extension.lower() in self._extensions

    def lexer_for(self, extension: str) -> Lexer | None:
        if extension not in self:
            return None
        ext = extension.lower()
        try:
            # Pygments breaks ties between lexers claiming the same extension.
            return get_lexer_for_filename(f"source.{ext}", stripnl=False, ensurenl=False)
        except ClassNotFound:
            return None


_default_registry: GrammarRegistry | None = None


def default_registry() -> GrammarRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = GrammarRegistry()
    return _default_registry


class Highlighter:
    def __init__(self, registry: GrammarRegistry | None = None, style: str = THEME):
        self.registry = registry if registry is not None else default_registry()
        # nowrap: we emit our own <pre><code> so the language class sits on <code>.
        self.formatter = HtmlFormatter(style=style, nowrap=True)

    def stylesheet(self) -> str:
        return self.formatter.get_style_defs(CSS_SCOPE)

    def highlight_body(self, rel: str, content: str, extension: str) -> str:
        lexer = self.registry.lexer_for(extension)
        if lexer is None:
            return html.escape(content)
        try:
            return highlight(content, lexer, self.formatter)
        except Exception as e:
            raise RenderError(rel, e) from e

    def render(self, rel: str, content: str, extension: str) -> Fragment:
        body = self.highlight_body(rel, content, extension)
        ext = html.escape(extension, quote=True)
        markup = (
            f"<h2>{html.escape(rel)}</h2>"
            f'<pre class="highlight"><code class="language-{ext}">{body}</code></pre>'
        )
        return Fragment(rel=rel, extension=extension, html=markup)
