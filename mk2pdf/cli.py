"""
Command line entry point: ``mk2pdf [OPTIONS] <IN_FILE> [<OUT_FILE>]``.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import argparse
import sys
from typing import List, Optional

from .config import Config, DEFAULT_STYLES_PATH, DEFAULT_TITLE, PAGE_FORMATS
from .dependencies import check_dependencies
from .errors import ConfigurationError, Mk2PdfError
from .log import ConsoleLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mk2pdf",
        usage="mk2pdf [OPTIONS] <IN_FILE> [<OUT_FILE>]",
        description="Turn a markdown file into a pdf.",
    )
    parser.add_argument("in_file", nargs="?", metavar="IN_FILE", help="Input file to create a PDF from.")
    parser.add_argument("out_file", nargs="?", metavar="OUT_FILE", help="Output file of the PDF. Default: <IN_FILE> with pdf extension.")
    parser.add_argument("-s", "--styles", default=None, help=f"Location of your root CSS file (default: ./{DEFAULT_STYLES_PATH.as_posix()} if present)")
    parser.add_argument("-t", "--title", default=None, help=f"Document title (default: '{DEFAULT_TITLE}')")
    parser.add_argument("--margins", default=None, help="Page margins in CSS format, e.g. '1in 0.75in'. Range: 0-3 inches. Use 1, 2, or 4 values. Units: in, cm, mm, pt, px")
    parser.add_argument("--format", dest="page_format", default=None, help=f"Paper format (default: Letter). Available: {', '.join(PAGE_FORMATS)}")
    parser.add_argument("--no-highlight", action="store_true", help="Disable syntax highlighting of fenced code blocks")
    parser.add_argument("--keep-html", action="store_true", help="Keep the intermediate HTML file instead of deleting it after rendering")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging for detailed output")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = ConsoleLogger(debug=args.debug)

    # Build config from CLI args
    cli_config = {
        "input_path": args.in_file,
        "output_path": args.out_file,
        "styles_path": args.styles,
        "title": args.title,
        "margins": args.margins,
        "page_format": args.page_format,
        "highlight": not args.no_highlight,
        "keep_html": args.keep_html or None,
        "debug": args.debug,
    }

    try:
        config = Config(cli_config).build()
    except ConfigurationError as e:
        logger.log_error(str(e))
        parser.print_help()
        sys.exit(1)
    except Mk2PdfError as e:
        logger.log_error(str(e))
        sys.exit(1)

    # Check dependencies
    if not check_dependencies(logger):
        sys.exit(1)

    # Deferred until the check passes
    from .pipeline import Pipeline

    try:
        Pipeline(config, logger).run()
    except Mk2PdfError as e:
        logger.log_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
