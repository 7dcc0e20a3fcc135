"""Utility helpers for working with scan directories."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List

from kartka.errors import IoError
from kartka.models import PageSource

LOGGER = logging.getLogger(__name__)


def is_hidden_name(name: str) -> bool:
    return name.startswith(".")


def is_readable_name(name: str) -> bool:
    """Return False for names holding undecodable bytes."""
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def collect_pages(directory: Path) -> List[PageSource]:
    """List the pages of a batch, sorted by the raw bytes of their file names.

    Hidden entries, entries with unreadable names and sub-directories are left
    out. The returned order is the order page text gets concatenated in.
    """
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise IoError(f"reading dir {directory}: {exc}") from exc

    pages: List[PageSource] = []
    for entry in entries:
        page = PageSource(path=entry, origin_order=len(pages))
        if not is_readable_name(page.name) or page.is_hidden:
            LOGGER.debug("Skipping %r", page.name)
            continue
        if not entry.is_file():
            LOGGER.debug("Skipping non-file entry %s", entry)
            continue
        pages.append(page)

    pages.sort(key=lambda page: os.fsencode(page.name))
    for index, page in enumerate(pages):
        page.origin_order = index
    return pages


def remove_pages(pages: Iterable[PageSource]) -> int:
    """Delete the page files of a processed batch."""
    removed = 0
    for page in pages:
        try:
            page.path.unlink()
        except OSError as exc:
            raise IoError(f"deleting {page.path}: {exc}") from exc
        removed += 1
    return removed
