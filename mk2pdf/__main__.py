"""
Allows running the converter as ``python -m mk2pdf``.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from .cli import main

main()
