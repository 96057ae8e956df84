"""
CLI Interface
=============
Command-line interface for the document conversion engine.

Usage:
    python -m docconv structure <text_path> [options]
    python -m docconv pdf2html <pdf_path> [options]
    python -m docconv pdf2docx <pdf_path> [options]
    python -m docconv info <pdf_path>
    python -m docconv serve [options]
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .classifier import ClassifierConfig
from .docx_writer import DocxWriter
from .emitter import render_document, to_plain_text
from .engine import EngineConfig, StructureEngine
from .errors import ConversionError
from .extractor import TextExtractor

console = Console()
err_console = Console(stderr=True)


@click.group()
@click.version_option(version=__version__, prog_name="docconv")
def cli():
    """docconv: rebuild headings, lists and paragraphs from plain text."""
    pass


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, allow_dash=True))
@click.option(
    "--output", "-o",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the result to this file instead of stdout",
)
@click.option(
    "--format", "output_format",
    default="html",
    type=click.Choice(["html", "json", "text", "document"]),
    help="Output format",
)
@click.option(
    "--density-factor",
    default=2.0,
    type=float,
    help="Next-line length multiple that marks a short line as a heading",
)
@click.option(
    "--max-heading-length",
    default=100,
    type=int,
    help="Lines longer than this are never headings",
)
@click.option(
    "--title",
    default=None,
    help="Document title (for --format document)",
)
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--stats",
    is_flag=True,
    default=False,
    help="Print a structure summary table to stderr",
)
def structure(
    input_path: str,
    output: Optional[str],
    output_format: str,
    density_factor: float,
    max_heading_length: int,
    title: Optional[str],
    log_level: str,
    stats: bool,
):
    """Reconstruct document structure from a plain-text file ('-' for stdin)."""

    with click.open_file(input_path, "r", encoding="utf-8") as f:
        text = f.read()

    config = EngineConfig(
        classifier=ClassifierConfig(
            density_factor=density_factor,
            max_heading_length=max_heading_length,
        ),
        log_level=log_level,
    )
    engine = StructureEngine(config)
    result = engine.convert(text)

    if output_format == "json":
        rendered = json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False)
    elif output_format == "text":
        rendered = to_plain_text(result.blocks)
    elif output_format == "document":
        default_title = "Converted Document" if input_path == "-" else Path(input_path).stem
        rendered = render_document(
            result.html,
            title=title or default_title,
            char_count=len(text),
        )
    else:
        rendered = result.html

    _write_output(rendered, output)

    if stats:
        _display_report(result.report.model_dump())


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Output .html path")
@click.option("--title", default=None, help="Document title")
@click.option("--log-level", default="WARNING", help="Logging level")
def pdf2html(pdf_path: str, output: Optional[str], title: Optional[str], log_level: str):
    """Convert a PDF into a structured HTML document."""

    output = output or str(Path(pdf_path).with_suffix(".html"))

    try:
        extracted = TextExtractor().extract(pdf_path)
        engine = StructureEngine(EngineConfig(log_level=log_level))
        result = engine.convert(extracted.text)
    except ConversionError as e:
        err_console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    html = render_document(
        result.html,
        title=title or f"{Path(pdf_path).stem} - Converted from PDF",
        source_name=extracted.source_name,
        page_count=extracted.page_count,
        char_count=extracted.char_count,
    )
    Path(output).write_text(html, encoding="utf-8")

    console.print(
        Panel.fit(
            f"[bold cyan]PDF → HTML[/]\n"
            f"[dim]{os.path.basename(pdf_path)} → {output}[/]\n"
            f"[dim]{extracted.page_count} pages, {result.report.block_count} blocks[/]",
            border_style="cyan",
        )
    )


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Output .docx path")
@click.option("--log-level", default="WARNING", help="Logging level")
def pdf2docx(pdf_path: str, output: Optional[str], log_level: str):
    """Convert a PDF into a structured Word document."""

    output = output or str(Path(pdf_path).with_suffix(".docx"))

    try:
        extracted = TextExtractor().extract(pdf_path)
        engine = StructureEngine(EngineConfig(log_level=log_level))
        blocks = engine.reconstruct(extracted.text)
    except ConversionError as e:
        err_console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    Path(output).write_bytes(DocxWriter().render(blocks))

    console.print(
        Panel.fit(
            f"[bold cyan]PDF → DOCX[/]\n"
            f"[dim]{os.path.basename(pdf_path)} → {output}[/]\n"
            f"[dim]{extracted.page_count} pages, {len(blocks)} blocks[/]",
            border_style="cyan",
        )
    )


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP conversion service."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]docconv service[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True, dir_okay=False))
def info(pdf_path: str):
    """Display PDF file information."""

    import fitz

    try:
        doc = fitz.open(pdf_path)
    except RuntimeError as e:
        err_console.print(f"[red]Error:[/] Cannot open PDF: {e}")
        sys.exit(1)

    console.print()
    table = Table(title="PDF Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(pdf_path))
    table.add_row("Pages", str(doc.page_count))
    table.add_row(
        "File Size",
        f"{os.path.getsize(pdf_path) / 1024 / 1024:.2f} MB",
    )

    metadata = doc.metadata or {}
    for key in ["title", "author", "subject", "creator", "producer"]:
        val = metadata.get(key, "")
        if val:
            table.add_row(key.title(), val)

    text_chars = sum(len(page.get_text()) for page in doc)
    table.add_row("Text Characters", str(text_chars))

    doc.close()
    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _write_output(rendered: str, output: Optional[str]):
    if output:
        Path(output).write_text(rendered, encoding="utf-8")
        err_console.print(f"[green]✓[/] Wrote {output}")
    else:
        click.echo(rendered)


def _display_report(report: dict):
    """Display the structure report as a rich table on stderr."""
    table = Table(title="Structure Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total Lines", str(report.get("total_lines", 0)))
    table.add_row("Blank Lines", str(report.get("blank_lines", 0)))
    table.add_row("Heading Lines", str(report.get("heading_lines", 0)))
    table.add_row("List Item Lines", str(report.get("list_item_lines", 0)))
    table.add_row("Paragraph Lines", str(report.get("paragraph_lines", 0)))
    table.add_row("Blocks", str(report.get("block_count", 0)))

    for level, count in sorted(report.get("heading_levels", {}).items()):
        table.add_row(f"  h{level}", str(count))

    err_console.print(table)

    for warning in report.get("warnings", []):
        err_console.print(f"[yellow]⚠[/] {warning}")


# ─── Entry point (for python -m docconv.cli) ──────────────────────────────────


if __name__ == "__main__":
    cli()
