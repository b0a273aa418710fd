"""
Startup check for what the converter needs before it can run: the Python
packages behind each stage and the Chromium build Playwright drives.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import importlib.util
from pathlib import Path
from typing import Dict, Optional

from .log import ConsoleLogger

# import name -> description shown to the user
REQUIRED_MODULES: Dict[str, str] = {
    "playwright": "Playwright",
    "markdown_it": "markdown-it-py",
    "mdit_py_plugins": "mdit-py-plugins",
    "linkify_it": "linkify-it-py",
    "pygments": "Pygments",
    "tinycss2": "tinycss2",
    "requests": "requests",
    "tqdm": "tqdm",
}


def check_module(module: str, description: str, logger: ConsoleLogger) -> bool:
    """Check if a module is importable."""
    if importlib.util.find_spec(module) is None:
        logger.log_error(f"{description} is not available")
        return False
    logger.log_debug(f"{description} is available")
    return True


def check_browser(logger: ConsoleLogger) -> bool:
    """Check that the Chromium build used by Playwright is installed."""
    from playwright.sync_api import Error, sync_playwright

    try:
        with sync_playwright() as playwright:
            executable = Path(playwright.chromium.executable_path)
    except Error as e:
        logger.log_error(f"Playwright could not start: {e}")
        return False

    if not executable.exists():
        logger.log_error("Chromium is not installed")
        logger.log_error("Run: python -m playwright install chromium")
        return False
    logger.log_debug(f"Chromium found at {executable}")
    return True


def check_dependencies(logger: Optional[ConsoleLogger] = None) -> bool:
    """Return True when every required package and the browser are installed."""
    logger = logger or ConsoleLogger()
    missing = [
        description
        for module, description in REQUIRED_MODULES.items()
        if not check_module(module, description, logger)
    ]
    if missing:
        logger.log_error(f"Missing dependencies: {', '.join(missing)}. Install them with: pip install mk2pdf")
        return False
    return check_browser(logger)
