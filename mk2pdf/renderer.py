"""
HTML to PDF rendering with a headless Chromium driven by Playwright.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from pathlib import Path
from typing import Any, Dict, Optional

from playwright.async_api import Browser, Error as PlaywrightError, Playwright, async_playwright

from .config import DEFAULT_NETWORK_IDLE_TIMEOUT_MS, DEFAULT_PAGE_FORMAT
from .errors import RenderingError
from .log import ConsoleLogger
from .models import OutputArtifact, RenderableDocument

BROWSER_ARGS = [
    '--disable-dev-shm-usage',  # Use /tmp instead of /dev/shm (prevents OOM crashes)
    '--disable-gpu',             # No GPU in headless mode
    '--no-sandbox',              # Required in some environments
]


class PdfRenderer:
    """Prints a renderable document to PDF.

    Every call to :meth:`render` launches its own browser and closes it
    before returning, whether the render succeeded or not.
    """

    def __init__(self, logger: Optional[ConsoleLogger] = None, page_format: str = DEFAULT_PAGE_FORMAT,
                 margins: Optional[Dict[str, str]] = None,
                 network_idle_timeout_ms: int = DEFAULT_NETWORK_IDLE_TIMEOUT_MS):
        self.logger = logger or ConsoleLogger()
        self.page_format = page_format
        self.margins = margins
        self.network_idle_timeout_ms = network_idle_timeout_ms

    async def _launch_browser(self, playwright: Playwright) -> Browser:
        """Launch a fresh Chromium browser instance."""
        self.logger.log_debug("Launching headless Chromium")
        return await playwright.chromium.launch(headless=True, args=BROWSER_ARGS)

    def _pdf_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            'format': self.page_format,
            'print_background': True,
            # An @page size in the composed stylesheet wins over the configured format
            'prefer_css_page_size': True,
        }
        if self.margins:
            options['margin'] = dict(self.margins)
        return options

    @staticmethod
    def _write_pdf(pdf_bytes: bytes, output_path: Path) -> None:
        """Write next to the target and swap it in, so the target is never a partial PDF."""
        partial_path = output_path.with_name(f".{output_path.name}.part")
        try:
            partial_path.write_bytes(pdf_bytes)
            partial_path.replace(output_path)
        except OSError:
            partial_path.unlink(missing_ok=True)
            raise

    async def render(self, document: RenderableDocument, output_path: Path) -> OutputArtifact:
        """Load ``document`` in the browser and write its PDF snapshot to ``output_path``."""
        output_path = Path(output_path)
        try:
            async with async_playwright() as playwright:
                browser = await self._launch_browser(playwright)
                try:
                    page = await browser.new_page()

                    # Wait until the network is idle so remote fonts and images have loaded
                    await page.goto(document.uri, wait_until='networkidle',
                                    timeout=self.network_idle_timeout_ms)

                    self.logger.log_debug(f"Printing PDF with options: {self._pdf_options()}")
                    pdf_bytes = await page.pdf(**self._pdf_options())
                    self._write_pdf(pdf_bytes, output_path)
                finally:
                    await browser.close()
                    self.logger.log_debug("Browser instance closed")
        except PlaywrightError as e:
            raise RenderingError(f"Failed to render {document.path.name} to PDF: {e}") from e
        except OSError as e:
            raise RenderingError(f"Failed to write PDF {output_path}: {e}") from e

        return OutputArtifact(output_path, len(pdf_bytes))
