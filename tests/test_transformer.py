"""Tests for Markdown to HTML transformation."""

import pytest

from mk2pdf.models import SourceDocument
from mk2pdf.transformer import DocumentTransformer


@pytest.fixture
def transformer(logger):
    return DocumentTransformer(logger)


def source(tmp_path, text, name="doc.md"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return SourceDocument.read(path)


class TestRenderBody:
    def test_heading_and_paragraph(self, transformer):
        body = transformer.render_body("# Hello\n\nWorld")
        assert "<h1>Hello</h1>" in body
        assert "<p>World</p>" in body

    def test_table(self, transformer):
        body = transformer.render_body("| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in body
        assert "<th>a</th>" in body
        assert "<td>2</td>" in body

    def test_strikethrough(self, transformer):
        assert "<s>gone</s>" in transformer.render_body("~~gone~~")

    def test_autolink(self, transformer):
        body = transformer.render_body("Visit https://example.com today")
        assert 'href="https://example.com"' in body

    def test_task_list(self, transformer):
        body = transformer.render_body("- [x] done\n- [ ] todo\n")
        assert body.count('type="checkbox"') == 2
        assert 'checked="checked"' in body

    def test_raw_html_is_escaped(self, transformer):
        body = transformer.render_body('<script src="x.js"></script>')
        assert "<script" not in body
        assert "&lt;script" in body

    def test_raw_stylesheet_link_is_not_passed_through(self, transformer):
        body = transformer.render_body('Intro\n\n<link rel="stylesheet" href="http://example.com/a.css">\n')
        assert "<link" not in body

    def test_known_language_is_highlighted_inline(self, transformer):
        body = transformer.render_body("```python\ndef f():\n    return 1\n```\n")
        assert '<code class="language-python">' in body
        assert '<span style="' in body
        assert 'class="k"' not in body

    def test_unknown_language_renders_as_plain_text(self, transformer):
        body = transformer.render_body("```nosuchlang\nx < y\n```\n")
        assert '<code class="language-nosuchlang">x &lt; y\n</code>' in body
        assert "<span" not in body

    def test_no_highlight_tag_renders_as_plain_text(self, transformer):
        body = transformer.render_body("```no-highlight\nprint(1)\n```\n")
        assert "<span" not in body
        assert "print(1)" in body

    def test_highlighting_can_be_disabled(self, logger):
        transformer = DocumentTransformer(logger, highlight_code=False)
        body = transformer.render_body("```python\nimport os\n```\n")
        assert "<span" not in body
        assert "import os" in body


class TestHtmlDocument:
    def test_shell_contains_title_and_body(self, transformer):
        document = transformer.create_html_document("<p>x</p>\n", "Report")
        assert document.startswith("<!doctype html>")
        assert '<meta charset="utf-8">' in document
        assert "<title>Report</title>" in document
        assert "<body>\n<p>x</p>\n</body>" in document

    def test_no_css_means_no_style_block(self, transformer):
        document = transformer.create_html_document("<p>x</p>\n", "Report")
        assert "<style" not in document

    def test_css_is_inlined_in_head(self, transformer):
        document = transformer.create_html_document("<p>x</p>\n", "Report", "p {\n  color: red;\n}\n")
        head = document.split("</head>")[0]
        assert "<style>\np {\n  color: red;\n}\n</style>" in head

    def test_title_is_escaped(self, transformer):
        document = transformer.create_html_document("", "A & <B>")
        assert "<title>A &amp; &lt;B&gt;</title>" in document


class TestTransform:
    def test_writes_self_contained_temp_file(self, transformer, tmp_path):
        document = transformer.transform(source(tmp_path, "# Hello\n\nWorld\n"))
        try:
            assert document.path.exists()
            assert document.path.name.startswith("mk2pdf")
            assert document.path.suffix == ".html"
            html = document.path.read_text(encoding="utf-8")
            assert html == document.html
            assert "<title>My Doc</title>" in html
            assert "<style" not in html
            assert "<link" not in html
            assert "<script" not in html
            assert document.uri.startswith("file://")
        finally:
            document.release()

    def test_release_deletes_temp_file(self, transformer, tmp_path):
        with transformer.transform(source(tmp_path, "text")) as document:
            path = document.path
            assert path.exists()
        assert not path.exists()

    def test_keep_html_preserves_temp_file(self, logger, tmp_path):
        transformer = DocumentTransformer(logger, keep_html=True)
        with transformer.transform(source(tmp_path, "text")) as document:
            path = document.path
        try:
            assert path.exists()
        finally:
            path.unlink()

    def test_css_and_title_flow_into_document(self, transformer, tmp_path):
        with transformer.transform(source(tmp_path, "body"), title="Notes", css="h1 {\n  color: red;\n}\n") as document:
            assert "<title>Notes</title>" in document.html
            assert "color: red;" in document.html

    def test_undecodable_bytes_are_tolerated(self, transformer, tmp_path):
        path = tmp_path / "latin1.md"
        path.write_bytes(b"caf\xe9\n")
        with transformer.transform(SourceDocument.read(path)) as document:
            assert "caf" in document.html
