"""
Document Conversion Service
===========================
Rebuilds document structure from plain extracted text and serves
document-format conversions over HTTP.

Architecture:
    - Line Classifier: Assigns heading / list item / paragraph / blank roles
    - Block Builder: Folds classified lines into headings, lists, paragraphs
    - Markup Emitter: Serializes the block tree into escaped HTML
    - Text Extractor: Pulls plain text out of PDFs (PyMuPDF)
    - Markup Sources: HTML → blocks (BeautifulSoup), Markdown → HTML
    - DOCX Writer / Image Resizer: Office and image conversions

Version: 1.0.0
"""

__version__ = "1.0.0"
