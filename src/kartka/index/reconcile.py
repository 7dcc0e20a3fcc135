"""Pull archives that exist remotely but are missing from the local index."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from kartka.errors import IoError, KartkaError
from kartka.index.indexer import ArchiveBuilder
from kartka.index.storage import ContentStore
from kartka.ingestion.rasterize import Rasterizer
from kartka.models import HydrateReport
from kartka.remote import RemoteStore

LOGGER = logging.getLogger(__name__)


class ReconciliationEngine:
    """One-way reconciliation of the local text index against the remote folder.

    Remote names present locally are never fetched again, even if the remote
    file has changed since.
    """

    def __init__(
        self,
        remote: RemoteStore,
        store: ContentStore,
        rasterizer: Rasterizer,
        builder: ArchiveBuilder,
    ) -> None:
        self.remote = remote
        self.store = store
        self.rasterizer = rasterizer
        self.builder = builder

    def missing(self) -> list[str]:
        remote_names = self.remote.list()
        local_names = self.store.list_identifiers()
        return sorted(remote_names - local_names)

    def hydrate(self, *, continue_on_error: bool = False) -> HydrateReport:
        """Fetch, rasterize and index every missing archive.

        The first failure aborts the run unless ``continue_on_error`` is set,
        in which case failures are collected in the report.
        """
        report = HydrateReport(missing=self.missing())
        total = len(report.missing)
        if not total:
            LOGGER.info("Local index is up to date")
            return report

        for position, identifier in enumerate(report.missing, start=1):
            LOGGER.info(
                "(%d / %d) pulling, converting, and processing: %s..",
                position,
                total,
                identifier,
            )
            try:
                self._pull(identifier)
            except KartkaError as exc:
                if not continue_on_error:
                    raise
                LOGGER.error("Failed to hydrate %s: %s", identifier, exc)
                report.failed.append((identifier, str(exc)))
                continue
            report.pulled.append(identifier)

        return report

    def _pull(self, identifier: str) -> None:
        with tempfile.TemporaryDirectory(prefix="kartka-hydrate-") as workdir:
            workdir_path = Path(workdir)
            pdf_path = workdir_path / identifier
            self.remote.copy_out(identifier, pdf_path)
            self.rasterizer.pdf_to_images(pdf_path, workdir_path, identifier)
            try:
                pdf_path.unlink()
            except OSError as exc:
                raise IoError(f"removing {pdf_path}: {exc}") from exc
            # the remote name is reused as-is, no new identifier is minted
            self.builder.ingest(workdir_path, identifier)
