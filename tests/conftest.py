"""Shared test fixtures for mk2pdf."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mk2pdf.config import Config
from mk2pdf.log import ConsoleLogger


@pytest.fixture
def logger():
    return ConsoleLogger(debug=True)


@pytest.fixture
def hello_md(tmp_path):
    """The smallest useful document: one heading and one paragraph."""
    md_file = tmp_path / "doc.md"
    md_file.write_text("# Hello\n\nWorld\n", encoding="utf-8")
    return md_file


@pytest.fixture
def make_config(tmp_path):
    """Build a PipelineConfig rooted at tmp_path with no environment leaking in."""

    def _make(**cli_config):
        return Config(cli_config, cwd=tmp_path, environ={}).build()

    return _make


@pytest.fixture
def fake_playwright():
    """Patch Playwright so renders run without a real browser."""
    page = MagicMock()
    page.goto = AsyncMock()
    page.pdf = AsyncMock(return_value=b"%PDF-1.7\n% fake pdf\n")

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)

    with patch("mk2pdf.renderer.async_playwright", return_value=manager) as factory:
        yield SimpleNamespace(factory=factory, playwright=playwright, browser=browser, page=page)
