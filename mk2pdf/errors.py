"""
Error types raised by the conversion pipeline.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""


class Mk2PdfError(Exception):
    """Base class for every fatal conversion error."""


class ConfigurationError(Mk2PdfError):
    """Missing input, invalid option value, or uncreatable output directory."""


class StyleResolutionError(Mk2PdfError):
    """Unreadable stylesheet, broken import chain, or malformed CSS."""


class TransformationError(Mk2PdfError):
    """Unexpected failure while turning Markdown into HTML."""


class RenderingError(Mk2PdfError):
    """The browser failed to launch, navigate, or print the page."""
