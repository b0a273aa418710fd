"""Tests for the command line surface."""

import importlib
import runpy
import sys
from unittest.mock import MagicMock, patch

import pytest

from mk2pdf import cli
from mk2pdf.errors import RenderingError


@pytest.fixture
def in_tmp(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for var in ("MK2PDF_STYLES", "MK2PDF_TITLE", "MK2PDF_MARGINS", "MK2PDF_PAGE_FORMAT", "MK2PDF_KEEP_HTML"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


class TestMain:
    def test_help_exits_zero_without_running(self, capsys):
        with patch("mk2pdf.pipeline.Pipeline") as pipeline:
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["--help"])

        assert exc_info.value.code == 0
        assert "mk2pdf [OPTIONS] <IN_FILE> [<OUT_FILE>]" in capsys.readouterr().out
        pipeline.assert_not_called()

    def test_missing_input_prints_error_and_usage(self, in_tmp, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Please specify an <IN_FILE>." in out
        assert "usage: mk2pdf" in out

    def test_missing_stylesheet_exits_non_zero(self, in_tmp, hello_md, capsys):
        with patch("mk2pdf.pipeline.Pipeline") as pipeline:
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["doc.md", "--styles", "nope.css"])

        assert exc_info.value.code == 1
        assert "Stylesheet not found" in capsys.readouterr().out
        pipeline.assert_not_called()
        assert not (in_tmp / "doc.pdf").exists()

    def test_runs_pipeline_with_resolved_config(self, in_tmp, hello_md):
        with patch("mk2pdf.cli.check_dependencies", return_value=True), \
                patch("mk2pdf.pipeline.Pipeline") as pipeline:
            cli.main(["doc.md", "out/doc.pdf", "--title", "Weekly", "--format", "A4", "--no-highlight", "--keep-html"])

        config = pipeline.call_args.args[0]
        assert config.input_path == (in_tmp / "doc.md").resolve()
        assert config.output_path == (in_tmp / "out" / "doc.pdf").resolve()
        assert config.title == "Weekly"
        assert config.page_format == "A4"
        assert config.highlight is False
        assert config.keep_html is True
        pipeline.return_value.run.assert_called_once_with()

    def test_pipeline_error_exits_non_zero(self, in_tmp, hello_md, capsys):
        failing = MagicMock()
        failing.return_value.run.side_effect = RenderingError("browser crashed")
        with patch("mk2pdf.cli.check_dependencies", return_value=True), \
                patch("mk2pdf.pipeline.Pipeline", failing):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["doc.md"])

        assert exc_info.value.code == 1
        assert "browser crashed" in capsys.readouterr().out

    def test_missing_dependencies_exit_non_zero(self, in_tmp, hello_md):
        with patch("mk2pdf.cli.check_dependencies", return_value=False), \
                patch("mk2pdf.pipeline.Pipeline") as pipeline:
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["doc.md"])

        assert exc_info.value.code == 1
        pipeline.assert_not_called()

    def test_missing_package_is_reported_instead_of_raised(self, in_tmp, hello_md, capsys, monkeypatch):
        # Re-importing rebinds the package attribute; put the original back afterwards
        monkeypatch.setattr(sys.modules["mk2pdf"], "cli", cli)
        with patch.dict(sys.modules, {"tinycss2": None}):
            for name in ("mk2pdf.cli", "mk2pdf.pipeline", "mk2pdf.styles"):
                sys.modules.pop(name, None)
            fresh_cli = importlib.import_module("mk2pdf.cli")

            with pytest.raises(SystemExit) as exc_info:
                fresh_cli.main(["doc.md"])

        assert exc_info.value.code == 1
        assert "Missing dependencies: tinycss2" in capsys.readouterr().out

    def test_runs_as_module(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["mk2pdf", "--help"])
        with pytest.raises(SystemExit) as exc_info:
            runpy.run_module("mk2pdf", run_name="__main__")

        assert exc_info.value.code == 0
        assert "usage: mk2pdf" in capsys.readouterr().out
