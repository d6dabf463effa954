"""Breadth-first discovery of every folder below a Drive root."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import AsyncIterator

from sheet_finder.drive import (
    FOLDER_MIME_TYPE,
    MAX_PAGE_SIZE,
    DriveClient,
    decode_json,
    quote_literal,
)

logger = logging.getLogger(__name__)

_CHILD_FIELDS = "files(id),nextPageToken"


def child_folder_query(folder_id: str) -> str:
    return (
        f"{quote_literal(folder_id)} in parents"
        f" and mimeType = {quote_literal(FOLDER_MIME_TYPE)}"
        " and trashed = false"
    )


async def collect_folder_ids(drive: DriveClient, root_folder_id: str) -> list[str]:
    """Return `root_folder_id` followed by every folder reachable beneath it.

    Folders are expanded one at a time in discovery order. A folder whose
    listing comes back with an error status is skipped (its subtree is not
    explored); a transport failure propagates and aborts the walk.
    """

    discovered = [root_folder_id]
    seen = {root_folder_id}
    frontier = deque([root_folder_id])

    while frontier:
        folder_id = frontier.popleft()
        async for child_id in _iter_child_folder_ids(drive, folder_id):
            if child_id in seen:
                continue
            seen.add(child_id)
            discovered.append(child_id)
            frontier.append(child_id)

    logger.info(
        "Folder scan complete",
        extra={"root_folder_id": root_folder_id, "folder_count": len(discovered)},
    )
    return discovered


async def _iter_child_folder_ids(drive: DriveClient, folder_id: str) -> AsyncIterator[str]:
    query = child_folder_query(folder_id)
    page_token: str | None = None
    while True:
        response = await drive.list_files(
            query=query,
            fields=_CHILD_FIELDS,
            page_size=MAX_PAGE_SIZE,
            page_token=page_token,
            operation="folders.list",
        )
        if not response.is_success:
            logger.error(
                "Failed to list subfolders",
                extra={
                    "folder_id": folder_id,
                    "status": response.status_code,
                    "body": response.text,
                },
            )
            return

        payload = decode_json(response, operation="folders.list")
        for entry in payload.get("files") or ():
            yield entry["id"]

        page_token = payload.get("nextPageToken")
        if not page_token:
            return


__all__ = ["child_folder_query", "collect_folder_ids"]
