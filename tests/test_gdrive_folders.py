from __future__ import annotations

import logging

import pytest
from conftest import API_KEY, ROOT_FOLDER_ID, FakeDrive
from sheet_finder.config import AppConfig
from sheet_finder.drive import DriveResponseError, DriveTransportError, open_drive_client
from sheet_finder.gdrive_folders import child_folder_query, collect_folder_ids


async def walk(config: AppConfig, drive: FakeDrive) -> list[str]:
    async with open_drive_client(config, transport=drive.transport()) as client:
        return await collect_folder_ids(client, ROOT_FOLDER_ID)


def test_child_folder_query_filters_trashed_folders() -> None:
    assert child_folder_query("abc") == (
        "'abc' in parents and mimeType = 'application/vnd.google-apps.folder'"
        " and trashed = false"
    )


@pytest.mark.asyncio
async def test_collects_every_folder_breadth_first(
    app_config: AppConfig, fake_drive: FakeDrive
) -> None:
    folder_ids = await walk(app_config, fake_drive)

    assert folder_ids == [ROOT_FOLDER_ID, "hymns", "worship", "hymns-archive"]
    assert len(fake_drive.folder_requests) == 4


@pytest.mark.asyncio
async def test_root_without_children_yields_only_root(app_config: AppConfig) -> None:
    drive = FakeDrive(children={})

    assert await walk(app_config, drive) == [ROOT_FOLDER_ID]


@pytest.mark.asyncio
async def test_requests_carry_key_and_page_size(
    app_config: AppConfig, fake_drive: FakeDrive
) -> None:
    await walk(app_config, fake_drive)

    first = fake_drive.folder_requests[0]
    assert first.url.params["key"] == API_KEY
    assert first.url.params["pageSize"] == "1000"
    assert first.url.params["fields"] == "files(id),nextPageToken"
    assert "pageToken" not in first.url.params


@pytest.mark.asyncio
async def test_follows_continuation_tokens_until_exhausted(app_config: AppConfig) -> None:
    drive = FakeDrive(
        children={ROOT_FOLDER_ID: ["a", "b", "c", "d", "e"], "c": ["c1", "c2", "c3"]},
        page_limit=2,
    )

    folder_ids = await walk(app_config, drive)

    assert folder_ids == [ROOT_FOLDER_ID, "a", "b", "c", "d", "e", "c1", "c2", "c3"]
    root_tokens = [
        r.url.params.get("pageToken")
        for r in drive.folder_requests
        if r.url.params["q"].startswith(f"'{ROOT_FOLDER_ID}'")
    ]
    assert root_tokens == [None, "2", "4"]


@pytest.mark.asyncio
async def test_no_folder_is_reported_twice(app_config: AppConfig) -> None:
    drive = FakeDrive(
        children={ROOT_FOLDER_ID: ["a", "b"], "a": ["shared"], "b": ["shared", ROOT_FOLDER_ID]},
    )

    folder_ids = await walk(app_config, drive)

    assert folder_ids.count(ROOT_FOLDER_ID) == 1
    assert sorted(folder_ids) == sorted({ROOT_FOLDER_ID, "a", "b", "shared"})


@pytest.mark.asyncio
async def test_failed_listing_skips_only_that_subtree(
    app_config: AppConfig,
    fake_drive: FakeDrive,
    caplog: pytest.LogCaptureFixture,
) -> None:
    fake_drive.failing_folders.add("hymns")

    with caplog.at_level(logging.ERROR, logger="sheet_finder.gdrive_folders"):
        folder_ids = await walk(app_config, fake_drive)

    assert folder_ids == [ROOT_FOLDER_ID, "hymns", "worship"]
    assert "hymns-archive" not in folder_ids
    failures = [r for r in caplog.records if r.getMessage() == "Failed to list subfolders"]
    assert len(failures) == 1
    assert failures[0].folder_id == "hymns"
    assert failures[0].status == 500


@pytest.mark.asyncio
async def test_failed_root_listing_still_returns_root(app_config: AppConfig) -> None:
    drive = FakeDrive(children={ROOT_FOLDER_ID: ["a"]}, failing_folders={ROOT_FOLDER_ID})

    assert await walk(app_config, drive) == [ROOT_FOLDER_ID]


@pytest.mark.asyncio
async def test_transport_error_aborts_the_walk(
    app_config: AppConfig, fake_drive: FakeDrive
) -> None:
    fake_drive.unreachable_folders.add("worship")

    with pytest.raises(DriveTransportError) as excinfo:
        await walk(app_config, fake_drive)

    assert excinfo.value.operation == "folders.list"
    assert "connection refused" in str(excinfo.value)


@pytest.mark.asyncio
async def test_non_json_listing_raises_typed_error(
    app_config: AppConfig, fake_drive: FakeDrive
) -> None:
    fake_drive.garbled_folders.add("hymns")

    with pytest.raises(DriveResponseError) as excinfo:
        await walk(app_config, fake_drive)

    assert excinfo.value.operation == "folders.list"
    assert "not JSON" in str(excinfo.value)
