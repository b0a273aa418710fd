"""
Markdown to self-contained HTML.

Markdown is parsed with markdown-it-py (CommonMark plus the GitHub extensions:
tables, strikethrough, autolinks and task lists), fenced code is highlighted
with Pygments using inline styles, and the body is wrapped in an HTML5 shell
carrying the title and the composed stylesheet. The result is written to a
temporary file so the browser can open it through a ``file://`` URL.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import html
import os
import tempfile
from pathlib import Path
from typing import Optional

from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .config import DEFAULT_TITLE
from .errors import Mk2PdfError, TransformationError
from .log import ConsoleLogger
from .models import RenderableDocument, SourceDocument

# Fence languages that explicitly ask for no highlighting
PLAIN_LANGUAGES = {"no-highlight", "nohighlight", "plain", "plaintext", "text", "txt"}


class DocumentTransformer:
    """Turns a Markdown source into a renderable HTML document."""

    def __init__(self, logger: Optional[ConsoleLogger] = None, highlight_code: bool = True,
                 keep_html: bool = False, pygments_style: str = "default"):
        self.logger = logger or ConsoleLogger()
        self.highlight_code = highlight_code
        self.keep_html = keep_html
        # Inline styles keep highlighted code free of an external stylesheet
        self._formatter = HtmlFormatter(nowrap=True, noclasses=True, style=pygments_style)
        self._md = self._build_parser()

    def _build_parser(self) -> MarkdownIt:
        md = MarkdownIt(
            "commonmark",
            {"html": False, "linkify": True, "highlight": self._highlight_fence},
        ).enable(["table", "strikethrough", "linkify"])
        md.use(tasklists_plugin)
        return md

    def _highlight_fence(self, code: str, lang: str, attrs: str) -> str:
        """Return highlighted markup, or an empty string to fall back to escaped plain text."""
        if not self.highlight_code or not lang or lang.lower() in PLAIN_LANGUAGES:
            return ""
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            self.logger.log_debug(f"No highlighter for language '{lang}', rendering as plain text")
            return ""
        return highlight(code, lexer, self._formatter)

    def render_body(self, markdown_text: str) -> str:
        return self._md.render(markdown_text)

    def create_html_document(self, body: str, title: str, css: Optional[str] = None) -> str:
        """Wrap the rendered body in a complete HTML5 document."""
        style_block = f"<style>\n{css}</style>\n" if css else ""
        return (
            "<!doctype html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '<meta charset="utf-8">\n'
            f"<title>{html.escape(title)}</title>\n"
            '<meta name="viewport" content="width=device-width, initial-scale=1">\n'
            f"{style_block}"
            "</head>\n"
            "<body>\n"
            f"{body}"
            "</body>\n"
            "</html>\n"
        )

    def transform(self, source: SourceDocument, title: str = DEFAULT_TITLE,
                  css: Optional[str] = None) -> RenderableDocument:
        """Render ``source`` to HTML and persist it to a temporary file."""
        try:
            body = self.render_body(source.text)
            document_html = self.create_html_document(body, title, css)
        except Mk2PdfError:
            raise
        except Exception as e:
            raise TransformationError(f"Failed to transform {source.path.name}: {e}") from e

        fd, tmp_name = tempfile.mkstemp(prefix="mk2pdf", suffix=".html")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document_html)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise TransformationError(f"Failed to write intermediate HTML {tmp_name}: {e}") from e

        self.logger.log_debug(f"Wrote intermediate HTML to {tmp_name}")
        return RenderableDocument(Path(tmp_name), document_html, keep=self.keep_html)
