"""HTTP surface for sheet-music search."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from sheet_finder import __version__
from sheet_finder.config import AppConfig, MissingCredentialError, get_config
from sheet_finder.gdrive_search import SearchBackendError, SearchCriteria, SheetMusicSearcher

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/search"

MISCONFIGURED_MESSAGE = "API key is not configured on the server."
INTERNAL_ERROR_MESSAGE = "An internal server error occurred."

router = APIRouter()


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    song_title: str | None = Field(default=None, alias="songTitle")
    key: str | None = None
    lyrics: str | None = None

    def to_criteria(self) -> SearchCriteria:
        return SearchCriteria(
            song_title=self.song_title or "",
            key=self.key or "",
            lyrics=self.lyrics or "",
        )


@router.post(SEARCH_PATH)
async def search(request: Request) -> JSONResponse:
    """Search the sheet-music folder tree and return matching Drive files.

    The credential is checked before the body is read; an unreadable body is
    an internal error like any other unexpected failure.
    """
    searcher: SheetMusicSearcher = request.app.state.searcher
    try:
        searcher.config.google.require_api_key()
        payload = SearchRequest.model_validate(await request.json())
        files = await searcher.search(payload.to_criteria())
    except MissingCredentialError as exc:
        logger.error("Search rejected: service misconfigured", extra={"error": str(exc)})
        return _message_response(500, MISCONFIGURED_MESSAGE)
    except SearchBackendError as exc:
        logger.error(
            "Drive search failed",
            extra={"status": exc.status_code, "upstream_message": exc.upstream_message},
        )
        return _message_response(502, f"Google Drive API Error: {exc.upstream_message}")
    except Exception:
        logger.exception("Search request failed")
        return _message_response(500, INTERNAL_ERROR_MESSAGE)
    return JSONResponse(files)


def create_app(
    config: AppConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the API application; `transport` replaces the Drive network layer."""

    app = FastAPI(title="Sheet Music Finder API", version=__version__)
    app.state.searcher = SheetMusicSearcher(config or get_config(), transport=transport)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.include_router(router)
    return app


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning(
        "Request rejected",
        extra={"method": request.method, "path": request.url.path, "status": exc.status_code},
    )
    return _message_response(exc.status_code, str(exc.detail), headers=exc.headers)


def _message_response(
    status_code: int, message: str, *, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse({"message": message}, status_code=status_code, headers=headers)


__all__ = ["SEARCH_PATH", "SearchRequest", "create_app", "router"]
