"""
Markdown to PDF conversion through a headless browser.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from .config import Config, PipelineConfig
from .errors import (
    ConfigurationError,
    Mk2PdfError,
    RenderingError,
    StyleResolutionError,
    TransformationError,
)

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigurationError",
    "Mk2PdfError",
    "PipelineConfig",
    "RenderingError",
    "StyleResolutionError",
    "TransformationError",
]
