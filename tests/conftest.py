"""Shared fakes for the external collaborators."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Sequence, Set, Tuple

import pytest

from kartka.errors import ExternalToolError, OcrError
from kartka.index.indexer import ArchiveBuilder
from kartka.index.storage import ContentStore
from kartka.ingestion.rasterize import page_image_name
from kartka.models import PageSource


class FakeExtractor:
    """Returns the file content as the page text."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: List[str] = []

    def extract(self, page: PageSource) -> str:
        self.calls.append(page.name)
        if page.name == self.fail_on:
            raise OcrError(f"running OCR on {page.path}: boom")
        return page.path.read_text(encoding="utf-8")


class FakeRasterizer:
    """Writes fake PDFs listing page names; renders fake PDFs back to pages."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.to_pdf_calls: List[Tuple[List[str], Path]] = []
        self.to_images_calls: List[Tuple[Path, Path, str]] = []

    def images_to_pdf(self, pages: Sequence[PageSource], destination: Path) -> Path:
        self.to_pdf_calls.append(([page.name for page in pages], destination))
        if self.fail:
            raise ExternalToolError("pymupdf", "cannot write PDF")
        destination.write_text("\f".join(page.path.read_text() for page in pages))
        return destination

    def pdf_to_images(self, pdf_path: Path, directory: Path, stem: str) -> List[Path]:
        self.to_images_calls.append((pdf_path, directory, stem))
        written = []
        for index, text in enumerate(pdf_path.read_text().split("\f")):
            target = directory / page_image_name(stem, index)
            target.write_text(text)
            written.append(target)
        return written


class FakeRemote:
    """In-memory remote folder holding fake PDFs."""

    def __init__(self, files: Dict[str, str] | None = None, fail_on: Set[str] | None = None) -> None:
        self.files: Dict[str, str] = dict(files or {})
        self.fail_on = fail_on or set()
        self.uploads: List[str] = []
        self.fetches: List[str] = []

    def list(self) -> Set[str]:
        return set(self.files)

    def copy_in(self, local_dir: Path, name: str) -> None:
        self.uploads.append(name)
        self.files[name] = (local_dir / name).read_text()

    def copy_out(self, name: str, destination: Path) -> None:
        self.fetches.append(name)
        if name in self.fail_on:
            raise ExternalToolError("rclone", f"exited with status 3: {name} not found")
        destination.write_text(self.files[name])


FIXED_NOW = datetime(2024, 3, 1, 17, 5, 9, tzinfo=timezone.utc)


@pytest.fixture
def scan_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scans"
    path.mkdir()
    return path


@pytest.fixture
def store(tmp_path: Path) -> ContentStore:
    return ContentStore(tmp_path / "index")


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def builder(
    extractor: FakeExtractor,
    store: ContentStore,
    rasterizer: FakeRasterizer,
    remote: FakeRemote,
    scan_dir: Path,
) -> ArchiveBuilder:
    return ArchiveBuilder(
        extractor,
        store,
        rasterizer,
        remote,
        scan_dir=scan_dir,
        delete_policy="never",
        clock=lambda: FIXED_NOW,
    )
