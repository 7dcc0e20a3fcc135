"""FastAPI application exposing search and upload."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from kartka import __version__
from kartka.config import AppConfig
from kartka.errors import DuplicateIdentifierError, InvalidIdentifierError, KartkaError
from kartka.index.search import RipgrepSearcher, build_links
from kartka.index.storage import ContentStore

LOGGER = logging.getLogger(__name__)

router = APIRouter()


class UploadPayload(BaseModel):
    name: str
    content: str


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@router.get("/search")
async def search_documents(request: Request, query: str = "") -> dict[str, List[str]]:
    if not query.strip():
        return {"links": []}

    state = request.app.state
    try:
        identifiers = await asyncio.to_thread(state.searcher.query, query)
    except KartkaError as exc:
        LOGGER.error("Search for %r failed: %s", query, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {"links": build_links(identifiers, state.config.preview_url)}


@router.put("/upload")
async def upload_content(request: Request, payload: UploadPayload) -> dict[str, Any]:
    store: ContentStore = request.app.state.store
    try:
        await asyncio.to_thread(store.put, payload.name, payload.content)
    except DuplicateIdentifierError as exc:
        return _failure(409, str(exc))
    except InvalidIdentifierError as exc:
        return _failure(400, str(exc))
    except KartkaError as exc:
        LOGGER.error("Upload of %r failed: %s", payload.name, exc)
        return _failure(500, str(exc))

    LOGGER.info("Stored uploaded content %s", payload.name)
    return {"success": True}


def create_app(config: AppConfig) -> FastAPI:
    """Build the web application around an already loaded configuration."""
    app = FastAPI(title="kartka", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.store = ContentStore(config.index_dir)
    app.state.searcher = RipgrepSearcher(
        config.index_dir, binary=config.rg_binary, timeout=config.command_timeout
    )
    app.include_router(router)
    return app
