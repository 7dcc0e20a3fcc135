"""Full-text search over the content store through ripgrep."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Set
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from kartka.config import DEFAULT_PREVIEW_URL
from kartka.errors import ParseError
from kartka.utils.process import run_tool

LOGGER = logging.getLogger(__name__)

MATCH_TYPE = "match"
# ripgrep exits with 1 when nothing matched
RG_OK_CODES = (0, 1)


class RipgrepPath(BaseModel):
    # non UTF-8 paths are reported under "bytes" instead
    text: str | None = None


class RipgrepData(BaseModel):
    path: RipgrepPath | None = None


class RipgrepMessage(BaseModel):
    """One line of ``rg --json`` output, reduced to the fields we read."""

    type: str
    data: RipgrepData | None = None

    @property
    def path_text(self) -> str | None:
        if self.data is None or self.data.path is None:
            return None
        return self.data.path.text


def parse_ripgrep_output(output: str) -> Set[str]:
    """Reduce ``rg --json`` output to the set of matching document identifiers."""
    identifiers: Set[str] = set()
    for lineno, line in enumerate(output.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            message = RipgrepMessage.model_validate_json(line)
        except ValidationError as exc:
            raise ParseError(f"ripgrep output line {lineno} is not a valid message: {exc}") from exc

        if message.type != MATCH_TYPE:
            continue

        path_text = message.path_text
        if path_text is None:
            raise ParseError(f"ripgrep match on line {lineno} has no data.path.text")
        identifiers.add(Path(path_text).name)
    return identifiers


def build_links(identifiers: Iterable[str], template: str = DEFAULT_PREVIEW_URL) -> List[str]:
    return [template.format(name=quote(identifier)) for identifier in sorted(identifiers)]


class RipgrepSearcher:
    """Case-insensitive search of the index directory."""

    def __init__(self, directory: Path, *, binary: str = "rg", timeout: float | None = None) -> None:
        self.directory = Path(directory)
        self.binary = binary
        self.timeout = timeout

    def query(self, text: str) -> Set[str]:
        if not text.strip():
            return set()

        result = run_tool(
            [self.binary, "--json", "-i", "-e", text, "."],
            tool="ripgrep",
            cwd=self.directory,
            timeout=self.timeout,
            ok_codes=RG_OK_CODES,
        )
        identifiers = parse_ripgrep_output(result.stdout)
        LOGGER.debug("Query %r matched %d document(s)", text, len(identifiers))
        return identifiers
