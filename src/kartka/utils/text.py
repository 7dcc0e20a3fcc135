"""Text helpers."""

from __future__ import annotations

from typing import Iterable

RECORD_SEPARATOR = "\n"


def assemble_body(texts: Iterable[str]) -> str:
    """Join per-page text in batch order, each page followed by a newline.

    ``["Hello", "World"]`` becomes ``"Hello\\nWorld\\n"``.
    """
    return "".join(f"{text}{RECORD_SEPARATOR}" for text in texts)
