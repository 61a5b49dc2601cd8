"""Tests for the retrying HTTP transport."""

from __future__ import annotations

import unittest

import httpx
import pytest

from blocksync.adapters.notion.models import RetryPolicy
from blocksync.adapters.notion.transport import (
    RetryingTransport,
    failure_text,
    is_retryable_response,
    parse_error_body,
)

URL = "https://api.notion.com/v1/pages/p1"


def _transport(handler) -> RetryingTransport:
    return RetryingTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class _Sequence:
    """Handler replaying a fixed list of responses or exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(
            outcome.status_code, content=outcome.content, headers=outcome.headers
        )


class TestRetryClassification(unittest.TestCase):
    def test_rate_limit_and_conflict_are_retryable(self):
        assert is_retryable_response(429)
        assert is_retryable_response(409)

    def test_server_errors_are_retryable(self):
        for status in (500, 502, 503, 504, 599):
            assert is_retryable_response(status)

    def test_other_client_errors_are_not_retryable(self):
        for status in (400, 401, 403, 404, 410, 422):
            assert not is_retryable_response(status)

    def test_transient_message_makes_any_status_retryable(self):
        assert is_retryable_response(400, "Saving failed: Unsaved transactions remain")
        assert is_retryable_response(400, "DatastoreInfraError: try again")
        assert not is_retryable_response(400, "body failed validation")


class TestErrorBody(unittest.TestCase):
    def test_parses_message_and_code(self):
        response = httpx.Response(400, json={"code": "validation_error", "message": "bad"})
        body = parse_error_body(response)
        assert body.code == "validation_error"
        assert body.message == "bad"
        assert failure_text(response) == "validation_error bad"

    def test_non_json_body_yields_empty(self):
        response = httpx.Response(502, text="<html>Bad Gateway</html>")
        body = parse_error_body(response)
        assert body.code is None
        assert body.message is None
        assert failure_text(response) == "HTTP 502"

    def test_non_object_json_yields_empty(self):
        response = httpx.Response(500, json=["unexpected"])
        assert parse_error_body(response).message is None


@pytest.mark.asyncio
async def test_success_returns_without_retry(no_sleep) -> None:
    handler = _Sequence(httpx.Response(200, json={"id": "p1"}))
    response = await _transport(handler).execute(
        URL, policy=RetryPolicy(max_retries=3, base_delay_ms=800)
    )

    assert response.status_code == 200
    assert handler.calls == 1
    no_sleep.transport.assert_not_awaited()


@pytest.mark.asyncio
async def test_retries_rate_limit_then_succeeds(no_sleep) -> None:
    handler = _Sequence(
        httpx.Response(429, json={"code": "rate_limited"}),
        httpx.Response(429, json={"code": "rate_limited"}),
        httpx.Response(200, json={"id": "p1"}),
    )
    response = await _transport(handler).execute(
        URL, policy=RetryPolicy(max_retries=3, base_delay_ms=800)
    )

    assert response.status_code == 200
    assert handler.calls == 3
    delays = [call.args[0] for call in no_sleep.transport.await_args_list]
    assert len(delays) == 2
    assert 800 <= delays[0] < 1000
    assert 1600 <= delays[1] < 1800


@pytest.mark.asyncio
async def test_exhausted_retryable_status_returns_last_response(no_sleep) -> None:
    handler = _Sequence(httpx.Response(503, json={"code": "service_unavailable"}))
    response = await _transport(handler).execute(
        URL, policy=RetryPolicy(max_retries=2, base_delay_ms=500)
    )

    assert response.status_code == 503
    assert handler.calls == 3
    assert no_sleep.transport.await_count == 2


@pytest.mark.asyncio
async def test_non_retryable_status_returned_immediately(no_sleep) -> None:
    handler = _Sequence(httpx.Response(400, json={"code": "validation_error", "message": "x"}))
    response = await _transport(handler).execute(
        URL, policy=RetryPolicy(max_retries=3, base_delay_ms=800)
    )

    assert response.status_code == 400
    assert handler.calls == 1
    no_sleep.transport.assert_not_awaited()


@pytest.mark.asyncio
async def test_transient_message_on_bad_request_is_retried(no_sleep) -> None:
    handler = _Sequence(
        httpx.Response(400, json={"message": "Conflict: unsaved transactions"}),
        httpx.Response(200, json={}),
    )
    response = await _transport(handler).execute(
        URL, method="PATCH", policy=RetryPolicy(max_retries=1, base_delay_ms=500)
    )

    assert response.status_code == 200
    assert handler.calls == 2


@pytest.mark.asyncio
async def test_network_error_retried_then_succeeds(no_sleep) -> None:
    handler = _Sequence(httpx.ConnectError("connection refused"), httpx.Response(200, json={}))
    response = await _transport(handler).execute(
        URL, policy=RetryPolicy(max_retries=2, base_delay_ms=500)
    )

    assert response.status_code == 200
    assert handler.calls == 2
    assert no_sleep.transport.await_count == 1


@pytest.mark.asyncio
async def test_network_error_reraised_after_budget(no_sleep) -> None:
    handler = _Sequence(httpx.ReadTimeout("timed out"))

    with pytest.raises(httpx.ReadTimeout):
        await _transport(handler).execute(
            URL, policy=RetryPolicy(max_retries=2, base_delay_ms=500)
        )

    assert handler.calls == 3
    assert no_sleep.transport.await_count == 2


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt(no_sleep) -> None:
    handler = _Sequence(httpx.Response(500, json={}))
    response = await _transport(handler).execute(
        URL, policy=RetryPolicy(max_retries=0, base_delay_ms=500)
    )

    assert response.status_code == 500
    assert handler.calls == 1


@pytest.mark.asyncio
async def test_request_carries_method_headers_and_body(no_sleep) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    await _transport(handler).execute(
        URL,
        method="PATCH",
        headers={"Notion-Version": "2025-09-03"},
        content=b'{"archived":true}',
        policy=RetryPolicy(max_retries=0, base_delay_ms=1),
    )

    assert seen[0].method == "PATCH"
    assert seen[0].headers["Notion-Version"] == "2025-09-03"
    assert seen[0].content == b'{"archived":true}'
