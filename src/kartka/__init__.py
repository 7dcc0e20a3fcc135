"""kartka - OCR scan archive with full-text search."""

__version__ = "0.1.0"
