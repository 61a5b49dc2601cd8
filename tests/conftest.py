"""Pytest configuration and shared fixtures.

Wire-level tests run the real executor and transport against
``httpx.MockTransport`` handlers. Sleeps are patched out so the suite
never waits on backoff or inter-batch delays.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from blocksync.adapters.notion.executor import RequestExecutor
from blocksync.adapters.notion.models import RetryPolicy
from blocksync.adapters.notion.transport import RetryingTransport

TEST_API_KEY = "secret_test_key_0123456789"
NO_RETRY = RetryPolicy(max_retries=0, base_delay_ms=1)

Handler = Callable[[httpx.Request], Any]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of config tests."""
    for key in list(os.environ):
        if key.startswith("NOTION_") or key.startswith("LOG_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def no_sleep():
    """Patch every place the engine sleeps; each module gets its own mock."""
    mocks = SimpleNamespace(transport=AsyncMock(), deleter=AsyncMock(), appender=AsyncMock())
    with (
        patch("blocksync.adapters.notion.transport.sleep_ms", mocks.transport),
        patch("blocksync.adapters.notion.deleter.sleep_ms", mocks.deleter),
        patch("blocksync.adapters.notion.appender.sleep_ms", mocks.appender),
    ):
        yield mocks


@pytest.fixture
def make_executor(no_sleep):
    """Factory building a RequestExecutor whose HTTP client is served by ``handler``."""

    def _make(
        handler: Handler,
        *,
        api_key: str | None = TEST_API_KEY,
        policy: RetryPolicy = NO_RETRY,
    ) -> RequestExecutor:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RequestExecutor(
            RetryingTransport(client), api_key=api_key, default_policy=policy
        )

    return _make


def paragraph_block(text: str, block_id: str | None = None) -> dict[str, Any]:
    block: dict[str, Any] = {
        "type": "paragraph",
        "paragraph": {"rich_text": [{"type": "text", "text": {"content": text}}]},
    }
    if block_id:
        block["id"] = block_id
    return block


def heading_block(text: str, level: int = 3, block_id: str | None = None) -> dict[str, Any]:
    block_type = f"heading_{level}"
    block: dict[str, Any] = {
        "type": block_type,
        block_type: {
            "rich_text": [{"type": "text", "text": {"content": text}, "plain_text": text}]
        },
    }
    if block_id:
        block["id"] = block_id
    return block
