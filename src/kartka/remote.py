"""Remote archive folder accessed through rclone."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Set

from kartka.config import DEFAULT_REMOTE
from kartka.utils.files import is_hidden_name
from kartka.utils.process import run_tool

LOGGER = logging.getLogger(__name__)


class RemoteStore(Protocol):
    def list(self) -> Set[str]:
        ...

    def copy_in(self, local_dir: Path, name: str) -> None:
        ...

    def copy_out(self, name: str, destination: Path) -> None:
        ...


class RcloneRemote:
    """List, upload and download archive files in an rclone remote."""

    def __init__(
        self,
        remote: str = DEFAULT_REMOTE,
        *,
        binary: str = "rclone",
        timeout: float | None = None,
    ) -> None:
        self.remote = remote
        self.binary = binary
        self.timeout = timeout

    def remote_path(self, name: str) -> str:
        if self.remote.endswith((":", "/")):
            return f"{self.remote}{name}"
        return f"{self.remote}/{name}"

    def _run(self, *args: str):
        return run_tool([self.binary, *args], tool="rclone", timeout=self.timeout)

    def list(self) -> Set[str]:
        result = self._run("lsf", "--files-only", self.remote)
        names = {line.strip() for line in result.stdout.splitlines()}
        return {name for name in names if name and not is_hidden_name(name)}

    def copy_in(self, local_dir: Path, name: str) -> None:
        LOGGER.info("Copying %s to %s..", name, self.remote)
        self._run(
            "copy",
            "--exclude",
            ".DS_Store",
            "--include",
            name,
            str(local_dir),
            self.remote,
        )

    def copy_out(self, name: str, destination: Path) -> None:
        LOGGER.debug("Fetching %s into %s", self.remote_path(name), destination)
        self._run("copyto", self.remote_path(name), str(destination))
