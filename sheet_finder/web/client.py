"""Client-side call into the `/api/search` endpoint."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from sheet_finder.web.app import SEARCH_PATH

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

CONNECTING_MESSAGE = "Connecting to the server and searching..."
ERROR_PREFIX = "Error while searching for sheet music: "
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred while searching for sheet music."


class SearchRequestError(RuntimeError):
    """Raised with a human-readable message when a search cannot be completed."""


async def search_sheet_music(
    song_title: str,
    key: str,
    lyrics: str,
    on_progress: ProgressCallback,
    *,
    base_url: str,
    client: httpx.AsyncClient | None = None,
) -> list[dict[str, Any]]:
    """POST the search fields to the server and return the file records it finds.

    `on_progress` receives a status line when the request starts and an empty
    string once it finishes, whether or not it succeeded. `base_url` is the
    server origin (for example `https://scores.example.org`); pass "" only with
    a `client` that carries its own base URL.
    """

    payload = {"songTitle": song_title, "key": key, "lyrics": lyrics}
    try:
        on_progress(CONNECTING_MESSAGE)
        try:
            response = await _post_search(payload, base_url=base_url, client=client)
            if response.is_success:
                return response.json()
            message = _server_message(response)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error calling backend search API", extra={"error": str(exc)})
            if str(exc):
                raise SearchRequestError(ERROR_PREFIX + str(exc)) from exc
            raise SearchRequestError(UNKNOWN_ERROR_MESSAGE) from exc

        logger.error(
            "Backend search API returned an error",
            extra={"status": response.status_code, "error": message},
        )
        raise SearchRequestError(ERROR_PREFIX + message)
    finally:
        on_progress("")


async def _post_search(
    payload: dict[str, str],
    *,
    base_url: str,
    client: httpx.AsyncClient | None,
) -> httpx.Response:
    url = base_url.rstrip("/") + SEARCH_PATH
    if client is not None:
        return await client.post(url, json=payload)
    async with httpx.AsyncClient() as owned:
        return await owned.post(url, json=payload)


def _server_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Server error: {response.reason_phrase}"


__all__ = [
    "CONNECTING_MESSAGE",
    "ProgressCallback",
    "SearchRequestError",
    "search_sheet_music",
]
