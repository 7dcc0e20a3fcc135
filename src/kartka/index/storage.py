"""Directory-backed store of extracted document text."""

from __future__ import annotations

import errno
import logging
import os
import tempfile
from pathlib import Path
from typing import Set

from kartka.errors import DuplicateIdentifierError, InvalidIdentifierError, IoError
from kartka.models import ContentRecord
from kartka.utils.files import is_hidden_name

LOGGER = logging.getLogger(__name__)

# os.link errors on filesystems without hard links.
_NO_HARD_LINKS = {errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP}


def validate_identifier(identifier: str) -> str:
    if not identifier or identifier in (".", ".."):
        raise InvalidIdentifierError(f"invalid identifier: {identifier!r}")
    if "/" in identifier or "\\" in identifier or "\0" in identifier:
        raise InvalidIdentifierError(f"identifier must be a plain file name: {identifier!r}")
    if is_hidden_name(identifier):
        raise InvalidIdentifierError(f"identifier must not be hidden: {identifier!r}")
    return identifier


class ContentStore:
    """One text file per document identifier, never overwritten."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IoError(f"creating index dir {self.directory}: {exc}") from exc

    def path_for(self, identifier: str) -> Path:
        return self.directory / validate_identifier(identifier)

    def put(self, identifier: str, body: str) -> ContentRecord:
        """Create the record for ``identifier``.

        Raises :class:`DuplicateIdentifierError` if it already exists; the
        existing record is left untouched.
        """
        target = self.path_for(identifier)
        # Written under a hidden name first, then linked into place: the link
        # is the atomic create-if-absent and searches never see partial text.
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=self.directory)
        except OSError as exc:
            raise IoError(f"creating temporary file in {self.directory}: {exc}") from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(body)
            os.link(tmp_path, target)
        except FileExistsError as exc:
            raise DuplicateIdentifierError(identifier) from exc
        except OSError as exc:
            if exc.errno not in _NO_HARD_LINKS:
                raise IoError(f"writing {target}: {exc}") from exc
            LOGGER.debug("Hard links unsupported in %s, using exclusive create", self.directory)
            self._create_exclusive(target, identifier, body)
        finally:
            tmp_path.unlink(missing_ok=True)

        LOGGER.debug("Stored %s (%d chars)", target, len(body))
        return ContentRecord(name=identifier, body=body)

    def _create_exclusive(self, target: Path, identifier: str, body: str) -> None:
        try:
            handle = target.open("x", encoding="utf-8")
        except FileExistsError as exc:
            raise DuplicateIdentifierError(identifier) from exc
        except OSError as exc:
            raise IoError(f"writing {target}: {exc}") from exc
        try:
            with handle:
                handle.write(body)
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise IoError(f"writing {target}: {exc}") from exc

    def read(self, identifier: str) -> ContentRecord:
        path = self.path_for(identifier)
        try:
            body = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IoError(f"reading {path}: {exc}") from exc
        return ContentRecord(name=identifier, body=body)

    def list_identifiers(self) -> Set[str]:
        try:
            entries = list(self.directory.iterdir())
        except OSError as exc:
            raise IoError(f"reading index dir {self.directory}: {exc}") from exc
        return {
            entry.name
            for entry in entries
            if not is_hidden_name(entry.name) and entry.is_file()
        }
