"""Core kartka data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple


@dataclass(slots=True)
class PageSource:
    """One scanned page inside a batch."""

    path: Path
    origin_order: int

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith(".")


@dataclass(slots=True)
class ContentRecord:
    """Extracted text of one archived document."""

    name: str
    body: str


@dataclass(slots=True)
class ScanResult:
    identifier: str
    pages: List[PageSource]
    deleted_sources: bool = False


@dataclass(slots=True)
class HydrateReport:
    missing: List[str] = field(default_factory=list)
    pulled: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.pulled)
