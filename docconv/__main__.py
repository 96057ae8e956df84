"""
Module entry point for: python -m docconv

    python -m docconv structure <text_path> [options]
    python -m docconv pdf2html <pdf_path> [options]
    python -m docconv serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
