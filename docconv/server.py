"""
HTTP Microservice
=================
Flask-based HTTP API for document conversion.

Endpoints:
    GET    /health                → Liveness probe
    GET    /api/health            → Health check with service info
    GET    /api/info              → Engine version, tunables, capabilities
    POST   /convert-text          → Plain text → HTML fragment / JSON / document
    POST   /convert-pdf-to-html   → PDF upload → HTML document
    POST   /convert-to-word       → Plain text or HTML → DOCX
    POST   /convert-md            → Markdown → HTML document
    POST   /convert-pdf-to-word   → PDF upload → DOCX
    POST   /resize-image          → Image upload → resized image
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from . import __version__
from .classifier import ClassifierConfig
from .docx_writer import DOCX_MIME_TYPE, DocxWriter
from .emitter import render_document
from .engine import EngineConfig, StructureEngine
from .errors import ConversionError, UnsupportedFormatError
from .extractor import TextExtractor
from .imaging import resize_image
from .markup import html_to_blocks, markdown_to_html

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

_ENGINE_KEY = "docconv.engine"


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    # Defaults, overridable through the environment.
    # Flask presets MAX_CONTENT_LENGTH to None.
    if app.config.get("MAX_CONTENT_LENGTH") is None:
        app.config["MAX_CONTENT_LENGTH"] = (
            int(os.environ.get("DOCCONV_MAX_UPLOAD_MB", "50")) * 1024 * 1024
        )
    app.config.setdefault(
        "DENSITY_FACTOR", float(os.environ.get("DOCCONV_DENSITY_FACTOR", "2.0"))
    )
    app.config.setdefault(
        "MAX_HEADING_LENGTH", int(os.environ.get("DOCCONV_MAX_HEADING_LENGTH", "100"))
    )
    app.config.setdefault("LOG_LEVEL", os.environ.get("DOCCONV_LOG_LEVEL", "INFO"))

    app.extensions[_ENGINE_KEY] = StructureEngine(_engine_config())
    logger.info(
        f"Engine ready (density_factor={app.config['DENSITY_FACTOR']}, "
        f"max_heading_length={app.config['MAX_HEADING_LENGTH']})"
    )
    return app


def _engine_config() -> EngineConfig:
    return EngineConfig(
        classifier=ClassifierConfig(
            density_factor=float(app.config.get("DENSITY_FACTOR", 2.0)),
            max_heading_length=int(app.config.get("MAX_HEADING_LENGTH", 100)),
        ),
        log_level=app.config.get("LOG_LEVEL", "INFO"),
    )


def get_engine() -> StructureEngine:
    """The app-wide engine; built lazily if create_app() was never called."""
    engine = app.extensions.get(_ENGINE_KEY)
    if engine is None:
        engine = StructureEngine(_engine_config())
        app.extensions[_ENGINE_KEY] = engine
    return engine


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _attachment(data, mimetype: str, filename: str) -> Response:
    response = Response(data, mimetype=mimetype)
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def _uploaded_pdf() -> tuple[Optional[bytes], str]:
    """Return (pdf bytes, original filename) from the `pdf` form field."""
    file = request.files.get("pdf")
    if file is None or not file.filename:
        return None, ""
    return file.read(), file.filename


def _download_stem(filename: str) -> str:
    return Path(secure_filename(filename)).stem or "document"


def _optional_str(data: dict, name: str) -> Optional[str]:
    """Optional string field of a JSON body; anything else is rejected."""
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise UnsupportedFormatError(f"{name} must be a string")
    return value


# ─── Error Handlers ───────────────────────────────────────────────────────────


@app.errorhandler(RequestEntityTooLarge)
def too_large(e):
    return _error("Uploaded file is too large", 413)


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/health", methods=["GET"])
def liveness():
    """Liveness probe."""
    return jsonify({"status": "OK", "message": "Server is running"})


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "docconv",
        "version": __version__,
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Engine version and capability info."""
    classifier_config = get_engine().config.classifier
    return jsonify({
        "version": __version__,
        "engine": "rule-based text-to-structure",
        "pdf_backend": "PyMuPDF",
        "tunables": {
            "density_factor": classifier_config.density_factor,
            "max_heading_length": classifier_config.max_heading_length,
        },
        "capabilities": [
            "text_to_html",
            "pdf_to_html",
            "text_to_docx",
            "html_to_docx",
            "markdown_to_html",
            "pdf_to_docx",
            "image_resize",
        ],
        "image_formats": ["jpeg", "png", "webp"],
    })


# ─── Text Conversion ──────────────────────────────────────────────────────────


@app.route("/convert-text", methods=["POST"])
def convert_text():
    """
    Reconstruct structure from plain text.

    JSON body:
        text:   the plain text (required)
        output: "html" (fragment, default), "json" or "document"
        title:  document title for output="document"
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return _error("No text content provided", 400)

    try:
        title = _optional_str(data, "title")
    except UnsupportedFormatError as e:
        return _error(str(e), 400)

    output = data.get("output", "html")
    engine = get_engine()

    if output == "json":
        return jsonify(engine.convert(text).model_dump(mode="json"))

    if output == "document":
        result = engine.convert(text)
        html = render_document(
            result.html,
            title=title or "Converted Document",
            char_count=len(text),
        )
        return Response(html, mimetype="text/html")

    if output == "html":
        return Response(engine.to_html(text), mimetype="text/html")

    return _error('Invalid output. Use "html", "json" or "document".', 400)


@app.route("/convert-to-word", methods=["POST"])
def convert_to_word():
    """
    Return a Word document.

    JSON body:
        html:     HTML to map onto Word styles, or
        text:     plain text to reconstruct first
        filename: download name (default document.docx)
        title:    optional title paragraph
    """
    data = request.get_json(silent=True) or {}
    html = data.get("html")
    text = data.get("text")
    has_html = isinstance(html, str) and bool(html.strip())
    has_text = isinstance(text, str) and bool(text.strip())
    if not has_html and not has_text:
        return _error("No HTML or text content provided", 400)

    try:
        title = _optional_str(data, "title")
        filename = _optional_str(data, "filename")
    except UnsupportedFormatError as e:
        return _error(str(e), 400)

    filename = secure_filename(filename or "") or "document.docx"
    if not filename.lower().endswith(".docx"):
        filename += ".docx"

    try:
        if has_html:
            blocks = html_to_blocks(html)
        else:
            blocks = get_engine().reconstruct(text)
        docx_bytes = DocxWriter().render(blocks, title=title)
    except Exception as e:
        logger.exception("Word conversion failed")
        return _error(f"Failed to convert to Word: {e}", 500)

    return _attachment(docx_bytes, DOCX_MIME_TYPE, filename)


@app.route("/convert-md", methods=["POST"])
def convert_markdown():
    """
    Render Markdown to a standalone HTML document.

    JSON body:
        markdown: the Markdown source (required)
        type:     "html" (required; PDF rendering is not offered)
        title:    document title
    """
    data = request.get_json(silent=True) or {}
    source = data.get("markdown")
    output_type = data.get("type")
    if not isinstance(source, str) or not source.strip() or not output_type:
        return _error("Markdown content and type are required", 400)
    if output_type != "html":
        return _error('Invalid type. Only "html" is supported.', 400)

    try:
        title = _optional_str(data, "title")
    except UnsupportedFormatError as e:
        return _error(str(e), 400)

    try:
        html = render_document(
            markdown_to_html(source),
            title=title or "Converted Markdown Document",
            char_count=len(source),
        )
    except Exception as e:
        logger.exception("Markdown conversion failed")
        return _error(f"Failed to convert Markdown: {e}", 500)

    return _attachment(html, "text/html", "converted-markdown.html")


# ─── PDF Conversion ───────────────────────────────────────────────────────────


@app.route("/convert-pdf-to-html", methods=["POST"])
def convert_pdf_to_html():
    """Extract text from an uploaded PDF and return a structured HTML document."""
    pdf_bytes, filename = _uploaded_pdf()
    if pdf_bytes is None:
        return _error("No PDF file uploaded", 400)

    stem = _download_stem(filename)
    logger.info(f"Converting PDF to HTML: {filename}")

    try:
        extracted = TextExtractor().extract(pdf_bytes, source_name=filename)
        result = get_engine().convert(extracted.text)
        html = render_document(
            result.html,
            title=f"{stem} - Converted from PDF",
            source_name=filename,
            page_count=extracted.page_count,
            char_count=extracted.char_count,
        )
    except ConversionError as e:
        logger.warning(f"PDF to HTML rejected: {e}")
        return _error(str(e), 400)
    except Exception as e:
        logger.exception("PDF to HTML conversion failed")
        return _error(f"Failed to convert PDF to HTML: {e}", 500)

    return _attachment(html, "text/html", f"{stem}.html")


@app.route("/convert-pdf-to-word", methods=["POST"])
def convert_pdf_to_word():
    """Extract text from an uploaded PDF and return a structured Word document."""
    pdf_bytes, filename = _uploaded_pdf()
    if pdf_bytes is None:
        return _error("No PDF file uploaded", 400)

    stem = _download_stem(filename)

    try:
        extracted = TextExtractor().extract(pdf_bytes, source_name=filename)
        blocks = get_engine().reconstruct(extracted.text)
        docx_bytes = DocxWriter().render(blocks)
    except ConversionError as e:
        logger.warning(f"PDF to Word rejected: {e}")
        return _error(str(e), 400)
    except Exception as e:
        logger.exception("PDF to Word conversion failed")
        return _error(f"Failed to convert PDF to Word: {e}", 500)

    return _attachment(docx_bytes, DOCX_MIME_TYPE, f"{stem}.docx")


# ─── Image Resize ─────────────────────────────────────────────────────────────


def _optional_int(name: str) -> Optional[int]:
    value = request.form.get(name, "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise UnsupportedFormatError(f"{name} must be an integer") from None


@app.route("/resize-image", methods=["POST"])
def resize_image_endpoint():
    """
    Resize an uploaded image.

    Form fields: image (file), width, height, quality (default 90),
    format (jpeg, png or webp; default jpeg).
    """
    file = request.files.get("image")
    if file is None or not file.filename:
        return _error("No image uploaded", 400)

    output_format = request.form.get("format", "jpeg").lower()

    try:
        width = _optional_int("width")
        height = _optional_int("height")
        quality = _optional_int("quality") or 90
        data, mime_type = resize_image(
            file.read(),
            width=width,
            height=height,
            quality=quality,
            output_format=output_format,
        )
    except (UnsupportedFormatError, ConversionError) as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.exception("Image resizing failed")
        return _error(f"Failed to resize image: {e}", 500)

    return _attachment(data, mime_type, f"resized-image.{output_format}")


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
):
    """Start the microservice server."""
    create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
