"""Tests for ReconciliationEngine."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeRasterizer, FakeRemote
from kartka.errors import ExternalToolError
from kartka.index.indexer import ArchiveBuilder
from kartka.index.reconcile import ReconciliationEngine
from kartka.index.storage import ContentStore


def _engine(remote: FakeRemote, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder):
    builder.remote = remote
    return ReconciliationEngine(remote, store, rasterizer, builder)


class TestMissing:
    """Test the remote minus local difference."""

    def test_missing_sorted(self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder) -> None:
        remote = FakeRemote({"C.pdf": "c", "A.pdf": "a", "B.pdf": "b"})
        store.put("A.pdf", "a\n")

        engine = _engine(remote, store, rasterizer, builder)

        assert engine.missing() == ["B.pdf", "C.pdf"]

    def test_local_only_records_ignored(
        self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder
    ) -> None:
        remote = FakeRemote({"A.pdf": "a"})
        store.put("A.pdf", "a\n")
        store.put("local.pdf", "only here\n")

        assert _engine(remote, store, rasterizer, builder).missing() == []


class TestHydrate:
    """Test pulling missing archives."""

    def test_nothing_missing(self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder) -> None:
        """Local superset of remote: no fetches and zero pulled."""
        remote = FakeRemote({"A.pdf": "a"})
        store.put("A.pdf", "a\n")
        store.put("Z.pdf", "z\n")

        report = _engine(remote, store, rasterizer, builder).hydrate()

        assert report.count == 0
        assert remote.fetches == []
        assert rasterizer.to_images_calls == []

    def test_converges(self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder) -> None:
        """Remote {A, B, C} and local {A}: fetch exactly B and C."""
        remote = FakeRemote(
            {
                "A.pdf": "alpha",
                "B.pdf": "bravo page one\fbravo page two",
                "C.pdf": "charlie",
            }
        )
        store.put("A.pdf", "alpha\n")

        report = _engine(remote, store, rasterizer, builder).hydrate()

        assert sorted(remote.fetches) == ["B.pdf", "C.pdf"]
        assert report.count == 2
        assert report.pulled == ["B.pdf", "C.pdf"]
        assert store.list_identifiers() == {"A.pdf", "B.pdf", "C.pdf"}
        assert store.read("B.pdf").body == "bravo page one\nbravo page two\n"
        assert store.read("C.pdf").body == "charlie\n"

    def test_keeps_remote_identifier(
        self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder
    ) -> None:
        """Hydrated records use the remote name, never a freshly minted one."""
        remote = FakeRemote({"2019_06_01_08_00_00.pdf": "old scan"})

        _engine(remote, store, rasterizer, builder).hydrate()

        assert store.list_identifiers() == {"2019_06_01_08_00_00.pdf"}
        _, _, stem = rasterizer.to_images_calls[0]
        assert stem == "2019_06_01_08_00_00.pdf"

    def test_second_run_is_noop(self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder) -> None:
        remote = FakeRemote({"A.pdf": "a", "B.pdf": "b"})
        engine = _engine(remote, store, rasterizer, builder)

        assert engine.hydrate().count == 2
        assert engine.hydrate().count == 0
        assert remote.fetches == ["A.pdf", "B.pdf"]

    def test_pdf_removed_before_ingest(
        self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder
    ) -> None:
        """The fetched PDF is not indexed as a page, and temp dirs are cleaned."""
        remote = FakeRemote({"A.pdf": "only page"})

        _engine(remote, store, rasterizer, builder).hydrate()

        pdf_path, workdir, _ = rasterizer.to_images_calls[0]
        assert store.read("A.pdf").body == "only page\n"
        assert not pdf_path.exists()
        assert not workdir.exists()

    def test_fail_fast(self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder) -> None:
        """By default the first failure aborts the whole run."""
        remote = FakeRemote({"A.pdf": "a", "B.pdf": "b", "C.pdf": "c"}, fail_on={"B.pdf"})

        with pytest.raises(ExternalToolError, match="B.pdf"):
            _engine(remote, store, rasterizer, builder).hydrate()

        assert remote.fetches == ["A.pdf", "B.pdf"]
        assert store.list_identifiers() == {"A.pdf"}

    def test_continue_on_error(self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder) -> None:
        """With continue_on_error each item is isolated and failures reported."""
        remote = FakeRemote({"A.pdf": "a", "B.pdf": "b", "C.pdf": "c"}, fail_on={"B.pdf"})

        report = _engine(remote, store, rasterizer, builder).hydrate(continue_on_error=True)

        assert report.pulled == ["A.pdf", "C.pdf"]
        assert [identifier for identifier, _ in report.failed] == ["B.pdf"]
        assert "B.pdf" in report.failed[0][1]
        assert store.list_identifiers() == {"A.pdf", "C.pdf"}

    def test_failed_item_retried_next_run(
        self, store: ContentStore, rasterizer: FakeRasterizer, builder: ArchiveBuilder
    ) -> None:
        remote = FakeRemote({"A.pdf": "a"}, fail_on={"A.pdf"})
        engine = _engine(remote, store, rasterizer, builder)
        engine.hydrate(continue_on_error=True)

        remote.fail_on.clear()
        report = engine.hydrate()

        assert report.pulled == ["A.pdf"]

    def test_workdir_cleaned_on_failure(self, store: ContentStore, builder: ArchiveBuilder) -> None:
        class BrokenRasterizer(FakeRasterizer):
            def pdf_to_images(self, pdf_path: Path, directory: Path, stem: str):
                self.to_images_calls.append((pdf_path, directory, stem))
                raise ExternalToolError("pymupdf", "not a PDF")

        rasterizer = BrokenRasterizer()
        remote = FakeRemote({"A.pdf": "garbage"})

        with pytest.raises(ExternalToolError):
            _engine(remote, store, rasterizer, builder).hydrate()

        _, workdir, _ = rasterizer.to_images_calls[0]
        assert not workdir.exists()
        assert store.list_identifiers() == set()
