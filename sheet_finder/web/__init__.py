"""HTTP endpoint and matching client call for sheet-music search."""

from __future__ import annotations

from sheet_finder.web.app import SEARCH_PATH, SearchRequest, create_app
from sheet_finder.web.client import SearchRequestError, search_sheet_music

__all__ = [
    "SEARCH_PATH",
    "SearchRequest",
    "SearchRequestError",
    "create_app",
    "search_sheet_music",
]
