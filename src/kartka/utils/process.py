"""Blocking invocation of external command line tools."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Collection, Sequence

from kartka.errors import ExternalToolError

LOGGER = logging.getLogger(__name__)


def _excerpt(text: str, limit: int = 500) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + "..."


def run_tool(
    args: Sequence[str],
    *,
    tool: str,
    cwd: Path | None = None,
    timeout: float | None = None,
    ok_codes: Collection[int] = (0,),
) -> subprocess.CompletedProcess[str]:
    """Run ``args`` and return the completed process.

    Output is decoded as UTF-8. Raises :class:`ExternalToolError` when
    ``cwd`` is missing, the binary is missing, the call times out or the exit
    status is not in ``ok_codes``.
    """
    if cwd is not None and not Path(cwd).is_dir():
        raise ExternalToolError(tool, f"working directory does not exist: {cwd}")

    LOGGER.debug("Running %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            list(args),
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise ExternalToolError(tool, f"executable not found: {args[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise ExternalToolError(tool, f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise ExternalToolError(tool, f"could not start: {exc}") from exc

    if result.returncode not in ok_codes:
        detail = _excerpt(result.stderr) or "no error output"
        raise ExternalToolError(tool, f"exited with status {result.returncode}: {detail}")
    return result
