"""Conversion between page images and PDF archives.

Uses PyMuPDF (fitz) in both directions: merging a batch of scans into one
PDF, and rendering an archived PDF back into one PNG per page.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Protocol, Sequence

import fitz  # PyMuPDF

from kartka.errors import ExternalToolError
from kartka.models import PageSource

LOGGER = logging.getLogger(__name__)

TOOL_NAME = "pymupdf"


class Rasterizer(Protocol):
    def images_to_pdf(self, pages: Sequence[PageSource], destination: Path) -> Path:
        ...

    def pdf_to_images(self, pdf_path: Path, directory: Path, stem: str) -> List[Path]:
        ...


def page_image_name(stem: str, index: int) -> str:
    """Name of a rendered page; zero padding keeps byte order equal to page order."""
    return f"{stem}-{index:04d}.png"


class PyMuPDFRasterizer:
    def __init__(self, *, dpi: int = 200) -> None:
        self.dpi = dpi

    def images_to_pdf(self, pages: Sequence[PageSource], destination: Path) -> Path:
        """Merge page images, in batch order, into a single PDF at ``destination``."""
        LOGGER.info("converting %d page(s) to PDF..", len(pages))
        with fitz.open() as pdf:
            for page in pages:
                try:
                    with fitz.open(page.path) as image:
                        pdf_bytes = image.convert_to_pdf()
                    with fitz.open("pdf", pdf_bytes) as page_pdf:
                        pdf.insert_pdf(page_pdf)
                except Exception as exc:
                    raise ExternalToolError(TOOL_NAME, f"converting {page.path}: {exc}") from exc
            try:
                pdf.save(str(destination))
            except Exception as exc:
                raise ExternalToolError(TOOL_NAME, f"writing {destination}: {exc}") from exc
        return destination

    def pdf_to_images(self, pdf_path: Path, directory: Path, stem: str) -> List[Path]:
        """Render every page of ``pdf_path`` into ``directory`` as PNG files."""
        try:
            doc = fitz.open(pdf_path)
        except Exception as exc:
            raise ExternalToolError(TOOL_NAME, f"opening PDF {pdf_path}: {exc}") from exc

        written: List[Path] = []
        try:
            for index in range(len(doc)):
                target = directory / page_image_name(stem, index)
                pix = doc[index].get_pixmap(dpi=self.dpi)
                pix.save(str(target))
                written.append(target)
        except Exception as exc:
            raise ExternalToolError(TOOL_NAME, f"rendering {pdf_path}: {exc}") from exc
        finally:
            doc.close()

        LOGGER.debug("Rendered %d page(s) from %s", len(written), pdf_path)
        return written
