"""Scan ingestion pipeline."""

from __future__ import annotations

import logging
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Sequence

from kartka.errors import EmptyBatchError
from kartka.index.storage import ContentStore
from kartka.ingestion.ocr import TextExtractor
from kartka.ingestion.rasterize import Rasterizer
from kartka.models import ContentRecord, PageSource, ScanResult
from kartka.remote import RemoteStore
from kartka.utils.files import collect_pages, remove_pages
from kartka.utils.text import assemble_body

LOGGER = logging.getLogger(__name__)

IDENTIFIER_FORMAT = "%Y_%m_%d_%H_%M_%S"
ARCHIVE_EXTENSION = ".pdf"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def mint_identifier(now: datetime | None = None) -> str:
    """Identifier for a new archive, e.g. ``2024_03_01_17_05_09.pdf``."""
    now = now or _utcnow()
    return now.strftime(IDENTIFIER_FORMAT) + ARCHIVE_EXTENSION


class ArchiveBuilder:
    """Coordinates OCR, storage, PDF conversion and upload of a batch of scans."""

    def __init__(
        self,
        extractor: TextExtractor,
        store: ContentStore,
        rasterizer: Rasterizer,
        remote: RemoteStore,
        *,
        scan_dir: Path,
        delete_policy: str = "ask",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.extractor = extractor
        self.store = store
        self.rasterizer = rasterizer
        self.remote = remote
        self.scan_dir = Path(scan_dir)
        self.delete_policy = delete_policy
        self.clock = clock

    def ingest(self, directory: Path, identifier: str) -> ContentRecord:
        """OCR every page in ``directory`` and store the text under ``identifier``."""
        pages = collect_pages(directory)
        if not pages:
            raise EmptyBatchError(f"no pages found in {directory}")
        return self._store_pages(pages, identifier)

    def _store_pages(self, pages: Sequence[PageSource], identifier: str) -> ContentRecord:
        # any page failing aborts the batch before anything is stored
        texts: List[str] = [self.extractor.extract(page) for page in pages]
        record = self.store.put(identifier, assemble_body(texts))
        LOGGER.info("Indexed %s from %d page(s)", identifier, len(pages))
        return record

    def scan(self, confirm_delete: Callable[[], bool] | None = None) -> ScanResult:
        """Archive the current contents of the scan directory.

        ``confirm_delete`` is consulted when the delete policy is ``"ask"``;
        sources are only removed once upload has succeeded.
        """
        pages = collect_pages(self.scan_dir)
        if not pages:
            raise EmptyBatchError(f"no pages found in {self.scan_dir}")

        identifier = mint_identifier(self.clock())
        self._store_pages(pages, identifier)

        with tempfile.TemporaryDirectory(prefix="kartka-scan-") as workdir:
            pdf_path = Path(workdir) / identifier
            self.rasterizer.images_to_pdf(pages, pdf_path)
            self.remote.copy_in(Path(workdir), identifier)

        deleted = False
        if self._should_delete(confirm_delete):
            removed = remove_pages(pages)
            LOGGER.info("Deleted %d scanned page(s) from %s", removed, self.scan_dir)
            deleted = True

        return ScanResult(identifier=identifier, pages=list(pages), deleted_sources=deleted)

    def _should_delete(self, confirm_delete: Callable[[], bool] | None) -> bool:
        if self.delete_policy == "always":
            return True
        if self.delete_policy == "never":
            return False
        return bool(confirm_delete and confirm_delete())
