"""
Pipeline driver: stylesheet composition, Markdown transformation and PDF
rendering, run strictly in sequence as a small state machine.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import asyncio
from enum import Enum
from typing import Optional

from tqdm import tqdm

from .config import PipelineConfig
from .errors import ConfigurationError
from .log import ConsoleLogger
from .models import OutputArtifact, SourceDocument
from .renderer import PdfRenderer
from .styles import StyleComposer
from .transformer import DocumentTransformer


class PipelineState(Enum):
    START = "start"
    STYLES_COMPOSED = "styles_composed"
    DOCUMENT_TRANSFORMED = "document_transformed"
    RENDERED = "rendered"
    DONE = "done"
    FAILED = "failed"


# Each state has exactly one successor; FAILED is reachable from any non-terminal state
TRANSITIONS = {
    PipelineState.START: PipelineState.STYLES_COMPOSED,
    PipelineState.STYLES_COMPOSED: PipelineState.DOCUMENT_TRANSFORMED,
    PipelineState.DOCUMENT_TRANSFORMED: PipelineState.RENDERED,
    PipelineState.RENDERED: PipelineState.DONE,
}

TERMINAL_STATES = {PipelineState.DONE, PipelineState.FAILED}


class Pipeline:
    """Runs one Markdown to PDF conversion. A pipeline object runs at most once."""

    def __init__(self, config: PipelineConfig, logger: Optional[ConsoleLogger] = None,
                 composer: Optional[StyleComposer] = None,
                 transformer: Optional[DocumentTransformer] = None,
                 renderer: Optional[PdfRenderer] = None):
        self.config = config
        self.logger = logger or ConsoleLogger(debug=config.debug)
        self.composer = composer or StyleComposer(self.logger)
        self.transformer = transformer or DocumentTransformer(
            self.logger, highlight_code=config.highlight, keep_html=config.keep_html)
        self.renderer = renderer or PdfRenderer(
            self.logger,
            page_format=config.page_format,
            margins=config.margins,
            network_idle_timeout_ms=config.network_idle_timeout_ms,
        )
        self.state = PipelineState.START

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def _advance(self, target: PipelineState) -> None:
        expected = TRANSITIONS.get(self.state)
        if expected is not target:
            raise RuntimeError(f"Invalid pipeline transition {self.state.value} -> {target.value}")
        self.logger.log_debug(f"Pipeline state: {self.state.value} -> {target.value}")
        self.state = target

    def _prepare_output_dir(self) -> None:
        output_dir = self.config.output_path.parent
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Cannot create output directory {output_dir}: {e}") from e

    async def run_async(self) -> OutputArtifact:
        if self.state is not PipelineState.START:
            raise RuntimeError(f"Pipeline already ran (state: {self.state.value})")

        config = self.config
        try:
            self._prepare_output_dir()
            source = SourceDocument.read(config.input_path)
            filename = config.input_path.name
            self.logger.log_info(f"Converting {filename}")

            with tqdm(total=3, desc=f"  {filename}", unit="stage", leave=False) as pbar:
                pbar.set_description(f"  {filename} - Styles")
                css = self.composer.compose(config.styles_path)
                self._advance(PipelineState.STYLES_COMPOSED)
                pbar.update(1)

                pbar.set_description(f"  {filename} - HTML")
                document = self.transformer.transform(source, title=config.title, css=css)
                self._advance(PipelineState.DOCUMENT_TRANSFORMED)
                pbar.update(1)

                pbar.set_description(f"  {filename} - PDF")
                with document:
                    artifact = await self.renderer.render(document, config.output_path)
                self._advance(PipelineState.RENDERED)
                pbar.update(1)

            if document.keep:
                self.logger.log_info(f"Kept intermediate HTML at {document.path}")
            self._advance(PipelineState.DONE)
        except BaseException:
            self.state = PipelineState.FAILED
            raise

        self.logger.log_success(f"Converted {filename} to {artifact.path}")
        return artifact

    def run(self) -> OutputArtifact:
        """Run the pipeline to completion on a private event loop."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(self.run_async())
        finally:
            loop.close()
