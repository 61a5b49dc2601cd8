"""Tests for client lifecycle and component wiring."""

from __future__ import annotations

import httpx
import pytest

from blocksync.adapters.notion.client import NotionSyncClient
from blocksync.adapters.notion.errors import NotionClientError
from blocksync.config import NotionConfig


def _config(**overrides) -> NotionConfig:
    values = {"NOTION_API_KEY": "secret_client_key", **overrides}
    return NotionConfig.model_validate(values)


def test_orchestrator_requires_context() -> None:
    client = NotionSyncClient(_config())
    with pytest.raises(NotionClientError):
        _ = client.orchestrator


@pytest.mark.asyncio
async def test_requests_use_configured_url_version_and_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "p1", "archived": False})

    config = _config(
        NOTION_API_URL="https://proxy.example/notion/v1", NOTION_API_VERSION="2022-06-28"
    )
    async with NotionSyncClient(config, transport=httpx.MockTransport(handler)) as client:
        assert await client.orchestrator.check_exists("p1") is True

    request = seen[0]
    assert str(request.url) == "https://proxy.example/notion/v1/pages/p1"
    assert request.headers["Notion-Version"] == "2022-06-28"
    assert request.headers["Authorization"] == "Bearer secret_client_key"


@pytest.mark.asyncio
async def test_exit_closes_http_client() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    client = NotionSyncClient(_config(), transport=transport)
    async with client:
        http_client = client._http_client
        assert http_client is not None

    assert http_client.is_closed
    with pytest.raises(NotionClientError):
        _ = client.orchestrator


@pytest.mark.asyncio
async def test_custom_content_filter_is_used(no_sleep) -> None:
    from blocksync.adapters.notion.models import FilterResult

    calls: list[bool] = []

    def drop_everything(blocks, exclude_media):
        calls.append(exclude_media)
        return FilterResult(skipped_count=len(blocks))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": [], "has_more": False})

    async with NotionSyncClient(
        _config(), content_filter=drop_everything, transport=httpx.MockTransport(handler)
    ) as client:
        result = await client.orchestrator.refresh_all(
            "p1", [{"type": "paragraph", "paragraph": {}}], exclude_media=True
        )

    assert calls == [True]
    assert result.success is True
    assert result.skipped_count == 1
    assert result.added_count == 0
