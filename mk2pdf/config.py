"""
Run configuration for the Markdown to PDF pipeline.

Values are resolved once at startup, in order of precedence: explicit CLI
value, ``MK2PDF_*`` environment variable, built-in default. The result is
an immutable :class:`PipelineConfig` that every stage reads from.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError, StyleResolutionError

DEFAULT_TITLE = "My Doc"
DEFAULT_STYLES_PATH = Path("styles") / "index.css"
DEFAULT_PAGE_FORMAT = "Letter"
DEFAULT_NETWORK_IDLE_TIMEOUT_MS = 30000

PAGE_FORMATS = (
    "Letter", "Legal", "Tabloid", "Ledger",
    "A0", "A1", "A2", "A3", "A4", "A5", "A6",
)

ENV_STYLES = "MK2PDF_STYLES"
ENV_TITLE = "MK2PDF_TITLE"
ENV_MARGINS = "MK2PDF_MARGINS"
ENV_PAGE_FORMAT = "MK2PDF_PAGE_FORMAT"
ENV_KEEP_HTML = "MK2PDF_KEEP_HTML"

_MARGIN_RE = re.compile(r'^(-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)\s*(cm|in|mm|pt|px)?$')
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PipelineConfig:
    """Every recognized option of a single conversion run."""

    input_path: Path
    output_path: Path
    styles_path: Optional[Path] = None
    title: str = DEFAULT_TITLE
    highlight: bool = True
    margins: Optional[Dict[str, str]] = None
    page_format: str = DEFAULT_PAGE_FORMAT
    network_idle_timeout_ms: int = DEFAULT_NETWORK_IDLE_TIMEOUT_MS
    keep_html: bool = False
    debug: bool = False


def validate_margin(margin_str: str) -> str:
    """Validate and normalize a single margin value."""
    match = _MARGIN_RE.match(margin_str.strip())
    if not match:
        raise ConfigurationError(f"Invalid margin format: '{margin_str}'. Use format like '1in', '2.5cm', '10mm', etc.")

    value_str, unit = match.groups()
    value = float(value_str)

    # Set default unit to 'in' if not specified
    if not unit:
        unit = 'in'

    value_inches = convert_margin_to_cm(f"{value}{unit}") / 2.54

    # Validate range: minimum 0 inches, maximum 3 inches
    if value_inches < 0:
        raise ConfigurationError(f"Margin cannot be negative: '{margin_str}'. Minimum value is 0.")
    elif value_inches > 3:
        raise ConfigurationError(f"Margin too large: '{margin_str}'. Maximum value is 3 inches (7.62cm).")

    return f"{value}{unit}"


def convert_margin_to_cm(margin_str: str) -> float:
    """Convert margin string to centimeters for the browser's PDF printer."""
    match = _MARGIN_RE.match(margin_str.strip())
    if not match:
        return 2.54  # default 1 inch in cm

    value_str, unit = match.groups()
    value = float(value_str)

    if unit == 'cm':
        return value
    elif unit == 'mm':
        return value / 10
    elif unit == 'pt':
        return value * 0.0352778
    elif unit == 'px':
        return value * 0.0264583
    else:  # 'in' or no unit
        return value * 2.54


def parse_margins(page_margins: str) -> Dict[str, str]:
    """Parse a CSS margin shorthand into per-side values in centimeters."""
    margin_parts = page_margins.split()

    if len(margin_parts) == 1:
        # All margins same
        top = right = bottom = left = margin_parts[0]
    elif len(margin_parts) == 2:
        # Vertical and horizontal
        top = bottom = margin_parts[0]
        right = left = margin_parts[1]
    elif len(margin_parts) == 4:
        top, right, bottom, left = margin_parts
    else:
        raise ConfigurationError(f"Invalid margin format: '{page_margins}'. Use 1, 2, or 4 values.")

    sides = {'top': top, 'right': right, 'bottom': bottom, 'left': left}
    return {
        side: f"{round(convert_margin_to_cm(validate_margin(value)), 4)}cm"
        for side, value in sides.items()
    }


class Config:
    """Resolves CLI values, environment variables and defaults into a PipelineConfig."""

    def __init__(self, cli_config: Optional[Dict[str, Any]] = None,
                 cwd: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        self.cli_config = dict(cli_config or {})
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.environ = environ if environ is not None else os.environ

    def _get(self, key: str, env_var: Optional[str] = None, default: Any = None) -> Any:
        value = self.cli_config.get(key)
        if value is not None:
            return value
        if env_var and self.environ.get(env_var):
            return self.environ[env_var]
        return default

    def _resolve(self, path: Any) -> Path:
        path = Path(path).expanduser()
        if not path.is_absolute():
            path = self.cwd / path
        return path.resolve()

    def get_input_path(self) -> Path:
        raw = self.cli_config.get("input_path")
        if not raw:
            raise ConfigurationError("Please specify an <IN_FILE>.")
        input_path = self._resolve(raw)
        if not input_path.is_file():
            raise ConfigurationError(f"Input file not found: {input_path}")
        return input_path

    def get_output_path(self, input_path: Path) -> Path:
        """Explicit output path, or the input's base name with a .pdf extension in the working directory."""
        raw = self.cli_config.get("output_path")
        if raw:
            return self._resolve(raw)
        return (self.cwd / f"{input_path.stem}.pdf").resolve()

    def get_styles_path(self) -> Optional[Path]:
        raw = self._get("styles_path", ENV_STYLES)
        if raw:
            styles_path = self._resolve(raw)
            if not styles_path.is_file():
                raise StyleResolutionError(f"Stylesheet not found: {styles_path}")
            return styles_path

        # Fall back to the conventional location, otherwise run unstyled
        default_path = self.cwd / DEFAULT_STYLES_PATH
        if default_path.is_file():
            return default_path.resolve()
        return None

    def get_title(self) -> str:
        return str(self._get("title", ENV_TITLE, DEFAULT_TITLE))

    def get_margins(self) -> Optional[Dict[str, str]]:
        raw = self._get("margins", ENV_MARGINS)
        if not raw:
            return None
        return parse_margins(str(raw))

    def get_page_format(self) -> str:
        raw = str(self._get("page_format", ENV_PAGE_FORMAT, DEFAULT_PAGE_FORMAT))
        for page_format in PAGE_FORMATS:
            if page_format.lower() == raw.lower():
                return page_format
        available = ", ".join(PAGE_FORMATS)
        raise ConfigurationError(f"Invalid page format '{raw}'. Available formats: {available}")

    def get_keep_html(self) -> bool:
        value = self._get("keep_html", ENV_KEEP_HTML, False)
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)

    def build(self) -> PipelineConfig:
        """Resolve and validate every option once."""
        input_path = self.get_input_path()
        return PipelineConfig(
            input_path=input_path,
            output_path=self.get_output_path(input_path),
            styles_path=self.get_styles_path(),
            title=self.get_title(),
            highlight=bool(self.cli_config.get("highlight", True)),
            margins=self.get_margins(),
            page_format=self.get_page_format(),
            network_idle_timeout_ms=int(self.cli_config.get("network_idle_timeout_ms") or DEFAULT_NETWORK_IDLE_TIMEOUT_MS),
            keep_html=self.get_keep_html(),
            debug=bool(self.cli_config.get("debug", False)),
        )
