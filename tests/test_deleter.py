"""Tests for wave-based bulk deletion."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from blocksync.adapters.notion.deleter import BoundedConcurrencyDeleter
from blocksync.adapters.notion.errors import MissingCredentialError


class _DeleteServer:
    """Async handler tracking how many deletes are in flight at once."""

    def __init__(self, failing: dict[str, int] | None = None, raising: set[str] | None = None):
        self.failing = failing or {}
        self.raising = raising or set()
        self.deleted: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        block_id = request.url.path.rsplit("/", 1)[-1]
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            if block_id in self.raising:
                raise httpx.ConnectError("connection reset")
            if block_id in self.failing:
                return httpx.Response(self.failing[block_id], json={"code": "object_not_found"})
            self.deleted.append(block_id)
            return httpx.Response(200, json={"id": block_id, "archived": True})
        finally:
            self.in_flight -= 1


def _ids(count: int) -> list[str]:
    return [f"b{i}" for i in range(1, count + 1)]


@pytest.mark.asyncio
async def test_waves_of_three_with_two_pauses(make_executor, no_sleep) -> None:
    server = _DeleteServer()
    deleter = BoundedConcurrencyDeleter(
        make_executor(server), concurrency_limit=3, inter_batch_delay_ms=1000
    )
    completed_at_pause: list[int] = []
    no_sleep.deleter.side_effect = lambda delay_ms: completed_at_pause.append(
        len(server.deleted)
    )

    outcome = await deleter.delete_many(_ids(7))

    assert outcome.success_count == 7
    assert outcome.failure_count == 0
    assert sorted(server.deleted) == sorted(_ids(7))
    assert completed_at_pause == [3, 6]
    assert [call.args[0] for call in no_sleep.deleter.await_args_list] == [1000, 1000]
    assert server.max_in_flight == 3


@pytest.mark.asyncio
async def test_concurrency_cap_never_exceeded(make_executor, no_sleep) -> None:
    server = _DeleteServer()
    deleter = BoundedConcurrencyDeleter(make_executor(server), concurrency_limit=2)

    await deleter.delete_many(_ids(9))

    assert server.max_in_flight == 2
    assert no_sleep.deleter.await_count == 4


@pytest.mark.asyncio
async def test_failures_recorded_without_aborting(make_executor, no_sleep) -> None:
    server = _DeleteServer(failing={"b2": 404}, raising={"b5"})
    deleter = BoundedConcurrencyDeleter(make_executor(server), concurrency_limit=3)

    outcome = await deleter.delete_many(_ids(7))

    assert outcome.success_count == 5
    assert outcome.failure_count == 2
    assert outcome.success_count + outcome.failure_count == 7
    assert {error.item_id for error in outcome.errors} == {"b2", "b5"}
    by_id = {error.item_id: error.error for error in outcome.errors}
    assert by_id["b2"] == "The requested resource was not found. It may have been deleted."
    assert by_id["b5"] == "Network connection failed. Check connectivity and retry."


@pytest.mark.asyncio
async def test_empty_input_makes_no_calls(make_executor, no_sleep) -> None:
    server = _DeleteServer()
    outcome = await BoundedConcurrencyDeleter(make_executor(server)).delete_many([])

    assert outcome.success_count + outcome.failure_count == 0
    assert server.deleted == []
    no_sleep.deleter.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_credential_propagates(make_executor, no_sleep) -> None:
    server = _DeleteServer()
    deleter = BoundedConcurrencyDeleter(make_executor(server, api_key=None))

    with pytest.raises(MissingCredentialError):
        await deleter.delete_many(["b1"])


def test_concurrency_limit_must_be_positive(make_executor) -> None:
    with pytest.raises(ValueError):
        BoundedConcurrencyDeleter(make_executor(_DeleteServer()), concurrency_limit=0)
