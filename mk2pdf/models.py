"""
Artifacts handed from one pipeline stage to the next.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError


@dataclass(frozen=True)
class SourceDocument:
    """The Markdown input, read once at pipeline start."""

    path: Path
    data: bytes

    @classmethod
    def read(cls, path: Path) -> "SourceDocument":
        try:
            return cls(Path(path), Path(path).read_bytes())
        except OSError as e:
            raise ConfigurationError(f"Cannot read input file {path}: {e}") from e

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def text(self) -> str:
        # Markdown parsing is permissive, so undecodable bytes are replaced rather than rejected
        return self.data.decode("utf-8", errors="replace")


@dataclass
class RenderableDocument:
    """Self-contained HTML written to a temporary file for the browser to load.

    Used as a context manager: the file is deleted on exit unless ``keep`` is set.
    """

    path: Path
    html: str
    keep: bool = False
    released: bool = field(default=False, init=False)

    @property
    def uri(self) -> str:
        return self.path.absolute().as_uri()

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        if not self.keep:
            self.path.unlink(missing_ok=True)

    def __enter__(self) -> "RenderableDocument":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


@dataclass(frozen=True)
class OutputArtifact:
    """The PDF produced by a render."""

    path: Path
    size: int
