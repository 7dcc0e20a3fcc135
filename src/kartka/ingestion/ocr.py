"""Page text extraction through Tesseract."""

from __future__ import annotations

import logging
from typing import Protocol

import pytesseract
from PIL import Image

from kartka.errors import OcrError
from kartka.models import PageSource

LOGGER = logging.getLogger(__name__)


class TextExtractor(Protocol):
    def extract(self, page: PageSource) -> str:
        """Return the text of one page or raise :class:`OcrError`."""
        ...


class TesseractExtractor:
    """Run Tesseract on a single page image."""

    def __init__(self, *, language: str = "eng", timeout: float | None = None) -> None:
        self.language = language
        self.timeout = timeout

    def extract(self, page: PageSource) -> str:
        LOGGER.info("processing %s..", page.path)
        try:
            with Image.open(page.path) as image:
                return pytesseract.image_to_string(
                    image,
                    lang=self.language,
                    timeout=self.timeout or 0,
                )
        except pytesseract.TesseractNotFoundError as exc:
            raise OcrError("tesseract is not installed or not on PATH") from exc
        except (RuntimeError, OSError) as exc:
            # TesseractError and timeouts are RuntimeErrors, unreadable images OSErrors
            raise OcrError(f"running OCR on {page.path}: {exc}") from exc
