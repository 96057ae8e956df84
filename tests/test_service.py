"""
Test Suite for the Conversion Service
=====================================
Tests for PDF text extraction, DOCX assembly, image resizing, the Flask
endpoints and the command-line interface.
"""

from __future__ import annotations

import io
import json

import fitz
import pytest
from click.testing import CliRunner
from docx import Document
from PIL import Image

from docconv.cli import cli
from docconv.docx_writer import DOCX_MIME_TYPE, DocxWriter
from docconv.errors import (
    ConversionError,
    ExtractionError,
    ImageProcessingError,
    UnsupportedFormatError,
)
from docconv.extractor import TextExtractor, extract_text
from docconv.imaging import resize_image, target_size
from docconv.markup import html_to_blocks, markdown_to_html
from docconv.models import HeadingBlock, ListBlock, ParagraphBlock
from docconv.server import app, create_app

PAGE_ONE = [
    "CHAPTER OVERVIEW",
    "This chapter explains the layout.",
]
PAGE_TWO = [
    "1. Introduction",
    "plain words on the second page",
]


def _make_pdf(*pages: list[str], **save_options) -> bytes:
    """Build a small text PDF in memory, one list of lines per page."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        for i, line in enumerate(lines):
            page.insert_text((72, 72 + i * 24), line, fontsize=11)
    data = doc.tobytes(**save_options)
    doc.close()
    return data


def _make_png(size=(200, 100), mode="RGBA") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color=(200, 30, 30, 255) if mode == "RGBA" else 128).save(
        buffer, format="PNG"
    )
    return buffer.getvalue()


@pytest.fixture
def pdf_bytes() -> bytes:
    return _make_pdf(PAGE_ONE, PAGE_TWO)


@pytest.fixture
def client():
    create_app({"TESTING": True})
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════════
# EXTRACTOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestTextExtractor:
    """Test PDF text extraction."""

    def test_extract_from_bytes(self, pdf_bytes):
        extracted = TextExtractor().extract(pdf_bytes, source_name="report.pdf")
        assert extracted.page_count == 2
        assert extracted.source_name == "report.pdf"
        assert extracted.text.split("\n\n") == [
            "\n".join(PAGE_ONE),
            "\n".join(PAGE_TWO),
        ]
        assert extracted.char_count == len(extracted.text)

    def test_extract_from_path(self, tmp_path, pdf_bytes):
        path = tmp_path / "report.pdf"
        path.write_bytes(pdf_bytes)
        extracted = extract_text(path)
        assert extracted.source_name == "report.pdf"
        assert extracted.text.startswith("CHAPTER OVERVIEW")

    def test_page_range(self, pdf_bytes):
        extracted = TextExtractor(page_range=(2, 5)).extract(pdf_bytes)
        assert extracted.text == "\n".join(PAGE_TWO)
        assert extracted.page_count == 2

    def test_page_without_text(self):
        extracted = TextExtractor().extract(_make_pdf([]))
        assert extracted.text == ""
        assert extracted.page_count == 1

    def test_get_page_count(self, pdf_bytes):
        assert TextExtractor().get_page_count(pdf_bytes) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError):
            TextExtractor().extract(tmp_path / "missing.pdf")

    def test_invalid_bytes(self):
        with pytest.raises(ExtractionError):
            TextExtractor().extract(b"this is not a pdf document")

    def test_password_protected(self):
        data = _make_pdf(
            PAGE_ONE,
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw="owner",
            user_pw="user",
        )
        with pytest.raises(ExtractionError, match="password"):
            TextExtractor().extract(data, source_name="locked.pdf")

    def test_extraction_error_is_conversion_error(self):
        assert issubclass(ExtractionError, ConversionError)


# ═══════════════════════════════════════════════════════════════════════════════
# DOCX WRITER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestDocxWriter:
    """Test Word document assembly."""

    def _open(self, data: bytes):
        return Document(io.BytesIO(data))

    def test_block_styles(self):
        data = DocxWriter().render([
            HeadingBlock(level=1, text="CHAPTER OVERVIEW"),
            ParagraphBlock(text="Body text."),
            ListBlock(items=["a", "b"]),
            HeadingBlock(level=2, text="1. Introduction"),
        ])
        paragraphs = self._open(data).paragraphs
        assert [(p.style.name, p.text) for p in paragraphs] == [
            ("Heading 1", "CHAPTER OVERVIEW"),
            ("Normal", "Body text."),
            ("List Bullet", "a"),
            ("List Bullet", "b"),
            ("Heading 2", "1. Introduction"),
        ]

    def test_title(self):
        data = DocxWriter().render([ParagraphBlock(text="x")], title="My Notes")
        first = self._open(data).paragraphs[0]
        assert first.style.name == "Title"
        assert first.text == "My Notes"

    def test_empty_blocks_get_fallback(self):
        paragraphs = self._open(DocxWriter().render([])).paragraphs
        assert [p.text for p in paragraphs] == ["No content could be extracted."]

    def test_page_setup(self):
        doc = self._open(DocxWriter(font_family="Arial", font_size=12).render([]))
        assert doc.styles["Normal"].font.name == "Arial"
        assert doc.styles["Normal"].font.size.pt == 12
        assert doc.sections[0].left_margin.inches == pytest.approx(1.0)


# ═══════════════════════════════════════════════════════════════════════════════
# IMAGE RESIZE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestImageResize:
    """Test fit-inside image resizing."""

    def test_target_size_width_only(self):
        assert target_size((200, 100), width=50) == (50, 25)

    def test_target_size_height_only(self):
        assert target_size((200, 100), height=20) == (40, 20)

    def test_target_size_fits_inside_box(self):
        assert target_size((200, 100), width=100, height=100) == (100, 50)

    def test_target_size_never_enlarges(self):
        assert target_size((200, 100), width=400, height=400) == (200, 100)

    def test_target_size_requires_dimension(self):
        with pytest.raises(UnsupportedFormatError):
            target_size((200, 100))

    def test_target_size_rejects_negative(self):
        with pytest.raises(UnsupportedFormatError):
            target_size((200, 100), width=-5)

    def test_resize_png(self):
        data, mime = resize_image(_make_png(), width=50, output_format="png")
        assert mime == "image/png"
        assert Image.open(io.BytesIO(data)).size == (50, 25)

    def test_resize_rgba_to_jpeg(self):
        data, mime = resize_image(_make_png(), width=100, quality=80)
        assert mime == "image/jpeg"
        img = Image.open(io.BytesIO(data))
        assert img.format == "JPEG"
        assert img.mode == "RGB"
        assert img.size == (100, 50)

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormatError):
            resize_image(_make_png(), width=50, output_format="gif")

    def test_quality_out_of_range(self):
        with pytest.raises(UnsupportedFormatError):
            resize_image(_make_png(), width=50, quality=0)

    def test_unreadable_image(self):
        with pytest.raises(ImageProcessingError):
            resize_image(b"not an image", width=50)


# ═══════════════════════════════════════════════════════════════════════════════
# MARKUP SOURCE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestHtmlToBlocks:
    """Test HTML → block mapping."""

    def test_block_elements_in_order(self):
        html = (
            "<html><head><title>T</title><style>p { color: red; }</style></head>"
            "<body><h1>Title</h1><p>Body <b>bold</b> text.</p>"
            "<ul><li>one</li><li>two</li></ul><h5>Deep</h5>"
            "<div>loose text</div><script>run()</script></body></html>"
        )
        assert html_to_blocks(html) == [
            HeadingBlock(level=1, text="Title"),
            ParagraphBlock(text="Body bold text."),
            ListBlock(items=["one", "two"]),
            HeadingBlock(level=3, text="Deep"),
            ParagraphBlock(text="loose text"),
        ]

    def test_nested_blocks_emitted_once(self):
        html = "<div><p>inside</p></div><ol><li><p>item</p></li></ol>"
        assert html_to_blocks(html) == [
            ParagraphBlock(text="inside"),
            ListBlock(items=["item"]),
        ]

    def test_plain_text_without_tags(self):
        assert html_to_blocks("first line\nsecond line") == [
            ParagraphBlock(text="first line"),
            ParagraphBlock(text="second line"),
        ]

    def test_empty_elements_dropped(self):
        assert html_to_blocks("<h2> </h2><ul><li></li></ul>") == []


class TestMarkdownToHtml:
    """Test Markdown rendering."""

    def test_basic_markdown(self):
        html = markdown_to_html("# Title\n\nSome *emphasis*.\n\n- a\n- b")
        assert "<h1>Title</h1>" in html
        assert "<em>emphasis</em>" in html
        assert "<li>a</li>" in html

    def test_tables(self):
        html = markdown_to_html("| a | b |\n|---|---|\n| 1 | 2 |")
        assert "<table>" in html
        assert "<td>1</td>" in html


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP SERVICE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestHealthEndpoints:
    """Test the health and info endpoints."""

    def test_liveness(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "OK", "message": "Server is running"}

    def test_health(self, client):
        data = client.get("/api/health").get_json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"

    def test_info(self, client):
        data = client.get("/api/info").get_json()
        assert data["tunables"] == {"density_factor": 2.0, "max_heading_length": 100}
        assert "pdf_to_html" in data["capabilities"]


class TestConvertTextEndpoint:
    """Test POST /convert-text."""

    TEXT = "CHAPTER OVERVIEW\nThis chapter explains the layout.\n\n• one\n• two"

    def test_html_fragment(self, client):
        resp = client.post("/convert-text", json={"text": self.TEXT})
        assert resp.status_code == 200
        assert resp.mimetype == "text/html"
        assert resp.get_data(as_text=True) == (
            "<h1>CHAPTER OVERVIEW</h1>\n"
            "<p>This chapter explains the layout.</p>\n"
            "<ul><li>one</li><li>two</li></ul>"
        )

    def test_json_output(self, client):
        resp = client.post("/convert-text", json={"text": self.TEXT, "output": "json"})
        data = resp.get_json()
        assert [b["type"] for b in data["blocks"]] == ["heading", "paragraph", "list"]
        assert data["report"]["heading_levels"] == {"1": 1}
        assert data["engine_version"] == "1.0.0"

    def test_document_output(self, client):
        resp = client.post(
            "/convert-text",
            json={"text": self.TEXT, "output": "document", "title": "Notes"},
        )
        body = resp.get_data(as_text=True)
        assert body.startswith("<!DOCTYPE html>")
        assert "<title>Notes</title>" in body
        assert "<h1>CHAPTER OVERVIEW</h1>" in body

    def test_escapes_text(self, client):
        resp = client.post("/convert-text", json={"text": "A & B < C"})
        assert resp.get_data(as_text=True) == "<p>A &amp; B &lt; C</p>"

    @pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": "   "}, {"text": 5}])
    def test_missing_text(self, client, payload):
        resp = client.post("/convert-text", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No text content provided"

    def test_invalid_output(self, client):
        resp = client.post("/convert-text", json={"text": "x", "output": "pdf"})
        assert resp.status_code == 400

    def test_non_string_title_rejected(self, client):
        resp = client.post(
            "/convert-text",
            json={"text": "x", "output": "document", "title": ["a"]},
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "title must be a string"


class TestMarkdownEndpoint:
    """Test POST /convert-md."""

    def test_markdown_to_html(self, client):
        resp = client.post(
            "/convert-md",
            json={"markdown": "# Title\n\n- a\n- b", "type": "html"},
        )
        assert resp.status_code == 200
        assert resp.mimetype == "text/html"
        assert 'filename="converted-markdown.html"' in resp.headers["Content-Disposition"]
        body = resp.get_data(as_text=True)
        assert body.startswith("<!DOCTYPE html>")
        assert "<title>Converted Markdown Document</title>" in body
        assert "<h1>Title</h1>" in body
        assert "<li>a</li>" in body

    @pytest.mark.parametrize("payload", [
        {},
        {"markdown": "# Title"},
        {"type": "html"},
        {"markdown": "   ", "type": "html"},
    ])
    def test_missing_fields(self, client, payload):
        resp = client.post("/convert-md", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Markdown content and type are required"

    def test_pdf_type_not_supported(self, client):
        resp = client.post("/convert-md", json={"markdown": "# Title", "type": "pdf"})
        assert resp.status_code == 400


class TestWordEndpoints:
    """Test the DOCX endpoints."""

    def test_text_to_word(self, client):
        resp = client.post(
            "/convert-to-word",
            json={"text": "CHAPTER OVERVIEW\nsome body text", "filename": "notes"},
        )
        assert resp.status_code == 200
        assert resp.mimetype == DOCX_MIME_TYPE
        assert 'filename="notes.docx"' in resp.headers["Content-Disposition"]
        doc = Document(io.BytesIO(resp.data))
        assert doc.paragraphs[0].style.name == "Heading 1"

    def test_text_to_word_requires_text(self, client):
        resp = client.post("/convert-to-word", json={})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No HTML or text content provided"

    def test_html_to_word(self, client):
        resp = client.post(
            "/convert-to-word",
            json={"html": "<h1>Report</h1><p>Body text.</p><ul><li>a</li></ul>"},
        )
        assert resp.status_code == 200
        assert 'filename="document.docx"' in resp.headers["Content-Disposition"]
        paragraphs = Document(io.BytesIO(resp.data)).paragraphs
        assert [(p.style.name, p.text) for p in paragraphs] == [
            ("Heading 1", "Report"),
            ("Normal", "Body text."),
            ("List Bullet", "a"),
        ]

    def test_filename_is_sanitized(self, client):
        resp = client.post(
            "/convert-to-word",
            json={"text": "some body text", "filename": '../../etc/pass"wd'},
        )
        assert resp.status_code == 200
        assert resp.headers["Content-Disposition"] == (
            'attachment; filename="etc_passwd.docx"'
        )

    @pytest.mark.parametrize("field", ["filename", "title"])
    def test_non_string_fields_rejected(self, client, field):
        resp = client.post("/convert-to-word", json={"text": "body", field: 42})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == f"{field} must be a string"

    def test_pdf_to_word(self, client, pdf_bytes):
        resp = client.post(
            "/convert-pdf-to-word",
            data={"pdf": (io.BytesIO(pdf_bytes), "report.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert 'filename="report.docx"' in resp.headers["Content-Disposition"]
        texts = [p.text for p in Document(io.BytesIO(resp.data)).paragraphs]
        assert "CHAPTER OVERVIEW" in texts


class TestPdfToHtmlEndpoint:
    """Test POST /convert-pdf-to-html."""

    def test_convert(self, client, pdf_bytes):
        resp = client.post(
            "/convert-pdf-to-html",
            data={"pdf": (io.BytesIO(pdf_bytes), "report.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.mimetype == "text/html"
        assert 'filename="report.html"' in resp.headers["Content-Disposition"]
        body = resp.get_data(as_text=True)
        assert "<h1>CHAPTER OVERVIEW</h1>" in body
        assert "<h2>1. Introduction</h2>" in body
        assert "<title>report - Converted from PDF</title>" in body

    def test_no_file(self, client):
        resp = client.post("/convert-pdf-to-html", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No PDF file uploaded"

    def test_invalid_pdf(self, client):
        resp = client.post(
            "/convert-pdf-to-html",
            data={"pdf": (io.BytesIO(b"not a pdf document"), "bad.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_unexpected_failure(self, client, monkeypatch, pdf_bytes):
        class BrokenExtractor:
            def extract(self, source, source_name=""):
                raise RuntimeError("boom")

        monkeypatch.setattr("docconv.server.TextExtractor", BrokenExtractor)
        resp = client.post(
            "/convert-pdf-to-html",
            data={"pdf": (io.BytesIO(pdf_bytes), "report.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 500
        assert "boom" in resp.get_json()["error"]

    def test_upload_too_large(self, client, monkeypatch, pdf_bytes):
        monkeypatch.setitem(app.config, "MAX_CONTENT_LENGTH", 10)
        resp = client.post(
            "/convert-pdf-to-html",
            data={"pdf": (io.BytesIO(pdf_bytes), "report.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 413


class TestResizeImageEndpoint:
    """Test POST /resize-image."""

    def _post(self, client, **fields):
        data = {"image": (io.BytesIO(_make_png()), "photo.png")}
        data.update(fields)
        return client.post("/resize-image", data=data, content_type="multipart/form-data")

    def test_resize(self, client):
        resp = self._post(client, width="50", format="png")
        assert resp.status_code == 200
        assert resp.mimetype == "image/png"
        assert 'filename="resized-image.png"' in resp.headers["Content-Disposition"]
        assert Image.open(io.BytesIO(resp.data)).size == (50, 25)

    def test_default_jpeg(self, client):
        resp = self._post(client, height="10")
        assert resp.mimetype == "image/jpeg"

    def test_missing_dimensions(self, client):
        assert self._post(client).status_code == 400

    def test_non_integer_width(self, client):
        resp = self._post(client, width="wide")
        assert resp.status_code == 400
        assert "integer" in resp.get_json()["error"]

    def test_bad_format(self, client):
        assert self._post(client, width="50", format="gif").status_code == 400

    def test_no_image(self, client):
        resp = client.post("/resize-image", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════════
# CLI TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestCli:
    """Test the click command-line interface."""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_structure_html(self, tmp_path):
        src = tmp_path / "notes.txt"
        src.write_text("CHAPTER OVERVIEW\nsome body text", encoding="utf-8")
        result = CliRunner().invoke(cli, ["structure", str(src)])
        assert result.exit_code == 0
        assert "<h1>CHAPTER OVERVIEW</h1>" in result.output
        assert "<p>some body text</p>" in result.output

    def test_structure_json_to_file(self, tmp_path):
        src = tmp_path / "notes.txt"
        src.write_text("• one\n• two", encoding="utf-8")
        out = tmp_path / "notes.json"
        result = CliRunner().invoke(
            cli, ["structure", str(src), "--format", "json", "-o", str(out)]
        )
        assert result.exit_code == 0
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["blocks"] == [{"type": "list", "items": ["one", "two"]}]

    def test_structure_from_stdin(self):
        result = CliRunner().invoke(
            cli, ["structure", "-", "--format", "text"], input="TITLE HERE\n"
        )
        assert result.exit_code == 0
        assert "TITLE HERE" in result.output

    def test_structure_tunables(self, tmp_path):
        src = tmp_path / "notes.txt"
        src.write_text("Related Work", encoding="utf-8")
        result = CliRunner().invoke(
            cli, ["structure", str(src), "--max-heading-length", "5"]
        )
        assert "<p>Related Work</p>" in result.output

    def test_pdf2html(self, tmp_path, pdf_bytes):
        pdf = tmp_path / "report.pdf"
        pdf.write_bytes(pdf_bytes)
        result = CliRunner().invoke(cli, ["pdf2html", str(pdf)])
        assert result.exit_code == 0
        html = (tmp_path / "report.html").read_text(encoding="utf-8")
        assert "<h1>CHAPTER OVERVIEW</h1>" in html

    def test_pdf2docx(self, tmp_path, pdf_bytes):
        pdf = tmp_path / "report.pdf"
        pdf.write_bytes(pdf_bytes)
        out = tmp_path / "out.docx"
        result = CliRunner().invoke(cli, ["pdf2docx", str(pdf), "-o", str(out)])
        assert result.exit_code == 0
        assert Document(str(out)).paragraphs[0].text == "CHAPTER OVERVIEW"

    def test_info(self, tmp_path, pdf_bytes):
        pdf = tmp_path / "report.pdf"
        pdf.write_bytes(pdf_bytes)
        result = CliRunner().invoke(cli, ["info", str(pdf)])
        assert result.exit_code == 0
        assert "PDF Information" in result.output
        assert "report.pdf" in result.output

    def test_pdf2html_invalid_pdf(self, tmp_path):
        pdf = tmp_path / "bad.pdf"
        pdf.write_bytes(b"not a pdf document")
        result = CliRunner().invoke(cli, ["pdf2html", str(pdf)])
        assert result.exit_code == 1
