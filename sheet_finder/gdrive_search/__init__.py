"""Sheet-music search over the configured Drive folder tree."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from sheet_finder.config import AppConfig
from sheet_finder.drive import (
    DOCUMENT_MIME_TYPE,
    MAX_PAGE_SIZE,
    PDF_MIME_TYPE,
    DriveClient,
    decode_json,
    open_drive_client,
    quote_literal,
    upstream_error_message,
)
from sheet_finder.gdrive_folders import collect_folder_ids

logger = logging.getLogger(__name__)

FileRecord = dict[str, Any]

RESULT_FIELDS = "files(id,name,mimeType)"
RESULT_ORDER = "name"


class SearchBackendError(RuntimeError):
    """Raised when Drive rejects the final search request."""

    def __init__(self, status_code: int, upstream_message: str) -> None:
        super().__init__(f"Drive search returned {status_code}: {upstream_message}")
        self.status_code = status_code
        self.upstream_message = upstream_message


@dataclass(frozen=True, slots=True)
class SearchCriteria:
    """Optional free-text constraints; an empty value means "no constraint"."""

    song_title: str = ""
    key: str = ""
    lyrics: str = ""


def build_search_query(folder_ids: Sequence[str], criteria: SearchCriteria) -> str:
    parents = " or ".join(f"{quote_literal(folder_id)} in parents" for folder_id in folder_ids)
    clauses = [
        f"({parents})",
        f"(mimeType = {quote_literal(PDF_MIME_TYPE)}"
        f" or mimeType = {quote_literal(DOCUMENT_MIME_TYPE)})",
        "trashed = false",
    ]
    if criteria.song_title:
        clauses.append(f"name contains {quote_literal(criteria.song_title)}")
    if criteria.key:
        clauses.append(f"name contains {quote_literal(criteria.key)}")
    if criteria.lyrics:
        clauses.append(f"fullText contains {quote_literal(criteria.lyrics)}")
    return " and ".join(clauses)


async def search_files(
    drive: DriveClient,
    folder_ids: Sequence[str],
    criteria: SearchCriteria,
) -> list[FileRecord]:
    """Run one name-ordered search scoped to `folder_ids`.

    At most one page of results is fetched, so matches past the first
    `MAX_PAGE_SIZE` are dropped.
    """

    if not folder_ids:
        return []

    response = await drive.list_files(
        query=build_search_query(folder_ids, criteria),
        fields=RESULT_FIELDS,
        page_size=MAX_PAGE_SIZE,
        order_by=RESULT_ORDER,
        operation="files.search",
    )
    if not response.is_success:
        raise SearchBackendError(response.status_code, upstream_error_message(response))

    payload = decode_json(response, operation="files.search")
    if payload.get("nextPageToken"):
        logger.warning(
            "Search results truncated",
            extra={"page_size": MAX_PAGE_SIZE, "folder_count": len(folder_ids)},
        )
    return payload.get("files") or []


class SheetMusicSearcher:
    """Resolve the folder tree under the configured root and search it."""

    def __init__(
        self,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def config(self) -> AppConfig:
        return self._config

    async def search(self, criteria: SearchCriteria) -> list[FileRecord]:
        async with open_drive_client(self._config, transport=self._transport) as drive:
            folder_ids = await collect_folder_ids(drive, self._config.google.root_folder_id)
            if not folder_ids:
                return []
            files = await search_files(drive, folder_ids, criteria)

        logger.info(
            "Search complete",
            extra={"folder_count": len(folder_ids), "result_count": len(files)},
        )
        return files


__all__ = [
    "FileRecord",
    "SearchBackendError",
    "SearchCriteria",
    "SheetMusicSearcher",
    "build_search_query",
    "search_files",
]
