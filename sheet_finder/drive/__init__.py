"""Async access to the Google Drive v3 `files` listing endpoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from sheet_finder.config import AppConfig

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PDF_MIME_TYPE = "application/pdf"
DOCUMENT_MIME_TYPE = "application/vnd.google-apps.document"


class DriveError(RuntimeError):
    """Base class for Drive failures that are not an error status from Drive."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class DriveTransportError(DriveError):
    """Raised when a Drive request fails before any HTTP response arrives."""


class DriveResponseError(DriveError):
    """Raised when Drive reports success but the body is not a JSON object."""


class DriveClient:
    """Issue `files.list` calls with the service API key attached.

    Non-success responses are returned to the caller untouched; only
    transport failures raise.
    """

    def __init__(self, http: httpx.AsyncClient, *, api_key: str, api_url: str) -> None:
        self._http = http
        self._api_key = api_key
        self._api_url = api_url

    async def list_files(
        self,
        *,
        query: str,
        fields: str,
        page_size: int = MAX_PAGE_SIZE,
        page_token: str | None = None,
        order_by: str | None = None,
        operation: str = "files.list",
    ) -> httpx.Response:
        params: dict[str, str] = {
            "key": self._api_key,
            "q": query,
            "fields": fields,
            "pageSize": str(min(page_size, MAX_PAGE_SIZE)),
        }
        if page_token:
            params["pageToken"] = page_token
        if order_by:
            params["orderBy"] = order_by

        try:
            return await self._http.get(self._api_url, params=params)
        except httpx.RequestError as exc:
            logger.error(
                "Drive request failed",
                extra={"operation": operation, "error": str(exc)},
            )
            raise DriveTransportError(operation, str(exc) or type(exc).__name__) from exc


@asynccontextmanager
async def open_drive_client(
    config: AppConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[DriveClient]:
    """Yield a `DriveClient` backed by a fresh HTTP client for one request.

    Raises `MissingCredentialError` before any connection is made when the
    API key is not configured.
    """

    api_key = config.google.require_api_key()
    async with httpx.AsyncClient(
        timeout=config.http.timeout_seconds,
        transport=transport,
    ) as http:
        yield DriveClient(http, api_key=api_key, api_url=config.google.api_url)


def decode_json(response: httpx.Response, *, operation: str) -> dict[str, Any]:
    """Parse a successful Drive response body, which must be a JSON object."""

    try:
        payload: Any = response.json()
    except ValueError as exc:
        logger.error(
            "Drive returned an unreadable body",
            extra={"operation": operation, "status": response.status_code},
        )
        raise DriveResponseError(operation, f"body is not JSON ({exc})") from exc
    if not isinstance(payload, dict):
        logger.error(
            "Drive returned an unexpected body",
            extra={"operation": operation, "status": response.status_code},
        )
        raise DriveResponseError(operation, f"expected a JSON object, got {type(payload).__name__}")
    return payload


def quote_literal(value: str) -> str:
    """Render `value` as a single-quoted Drive query string literal."""

    return "'" + value.replace("'", "\\'") + "'"


def upstream_error_message(response: httpx.Response) -> str:
    """Extract `error.message` from a Drive error body, falling back to raw text."""

    try:
        payload: Any = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text or response.reason_phrase


__all__ = [
    "DOCUMENT_MIME_TYPE",
    "DriveClient",
    "DriveError",
    "DriveResponseError",
    "DriveTransportError",
    "decode_json",
    "FOLDER_MIME_TYPE",
    "MAX_PAGE_SIZE",
    "PDF_MIME_TYPE",
    "open_drive_client",
    "quote_literal",
    "upstream_error_message",
]
