from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
from sheet_finder.config import AppConfig, GoogleConfig, HttpConfig

API_URL = "https://drive.test/drive/v3/files"
API_KEY = "test-api-key-0123456789"
ROOT_FOLDER_ID = "root-folder"
FOLDER_MIME = "application/vnd.google-apps.folder"

CONFIG_ENV_KEYS = (
    "GOOGLE_API_KEY",
    "GOOGLE_DRIVE_ROOT_FOLDER_ID",
    "GOOGLE_DRIVE_API_URL",
    "SHEET_FINDER_HTTP_TIMEOUT",
)


@dataclass(slots=True)
class FakeDrive:
    """In-memory stand-in for the Drive `files` endpoint.

    Folder listings are served from `children`, `page_limit` entries per page.
    Anything that is not a folder listing is treated as the final search.
    """

    children: dict[str, list[str]] = field(default_factory=dict)
    files: list[dict[str, str]] = field(default_factory=list)
    page_limit: int = 1000
    failing_folders: set[str] = field(default_factory=set)
    unreachable_folders: set[str] = field(default_factory=set)
    garbled_folders: set[str] = field(default_factory=set)
    search_status: int = 200
    search_body: Any = None
    search_unreachable: bool = False
    search_next_page_token: str | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        query = request.url.params["q"]
        if f"mimeType = '{FOLDER_MIME}'" in query:
            return self._list_folder(request, query.split("'")[1])
        return self._search(request)

    @property
    def folder_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if FOLDER_MIME in r.url.params["q"]]

    @property
    def search_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if FOLDER_MIME not in r.url.params["q"]]

    def _list_folder(self, request: httpx.Request, folder_id: str) -> httpx.Response:
        if folder_id in self.unreachable_folders:
            raise httpx.ConnectError("connection refused", request=request)
        if folder_id in self.garbled_folders:
            return httpx.Response(200, text="<html>maintenance</html>")
        if folder_id in self.failing_folders:
            return httpx.Response(500, json={"error": {"message": "backend error"}})

        offset = int(request.url.params.get("pageToken") or 0)
        kids = self.children.get(folder_id, [])
        page = kids[offset : offset + self.page_limit]
        body: dict[str, Any] = {"files": [{"id": kid} for kid in page]}
        if offset + self.page_limit < len(kids):
            body["nextPageToken"] = str(offset + self.page_limit)
        return httpx.Response(200, json=body)

    def _search(self, request: httpx.Request) -> httpx.Response:
        if self.search_unreachable:
            raise httpx.ReadTimeout("read timed out", request=request)
        if self.search_status != 200:
            if isinstance(self.search_body, str):
                return httpx.Response(self.search_status, text=self.search_body)
            return httpx.Response(self.search_status, json=self.search_body)
        body: dict[str, Any] = {"files": self.files}
        if self.search_body is not None:
            body = self.search_body
        if self.search_next_page_token:
            body["nextPageToken"] = self.search_next_page_token
        return httpx.Response(200, content=json.dumps(body).encode("utf-8"))


def build_config(*, api_key: str | None = API_KEY) -> AppConfig:
    return AppConfig(
        google=GoogleConfig(api_key=api_key, root_folder_id=ROOT_FOLDER_ID, api_url=API_URL),
        http=HttpConfig(timeout_seconds=5.0),
    )


@pytest.fixture(autouse=True)
def isolated_config_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    import sheet_finder.config as app_config

    for key in CONFIG_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SHEET_FINDER_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("SHEET_FINDER_CONFIG_FILE", str(tmp_path / "missing.toml"))
    monkeypatch.setattr(app_config, "_CONFIG_CACHE", None)
    yield


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    try:
        yield
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)


@pytest.fixture()
def app_config() -> AppConfig:
    return build_config()


@pytest.fixture()
def fake_drive() -> FakeDrive:
    return FakeDrive(
        children={
            ROOT_FOLDER_ID: ["hymns", "worship"],
            "hymns": ["hymns-archive"],
            "worship": [],
            "hymns-archive": [],
        },
        files=[
            {"id": "f1", "name": "Amazing Grace (G).pdf", "mimeType": "application/pdf"},
            {
                "id": "f2",
                "name": "Amazing Love (D)",
                "mimeType": "application/vnd.google-apps.document",
            },
        ],
    )
