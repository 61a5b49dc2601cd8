"""HTTP execution with jittered exponential backoff."""

from __future__ import annotations

import logging

import httpx

from blocksync.adapters.notion.constants import (
    RETRYABLE_STATUS_CODES,
    TRANSIENT_MESSAGE_PATTERNS,
)
from blocksync.adapters.notion.errors import TransportInvariantError
from blocksync.adapters.notion.models import ApiErrorBody, RetryPolicy
from blocksync.core.backoff import JITTER_CEILING_MS, compute_backoff_delay_ms, sleep_ms
from blocksync.core.logging_utils import truncate_log_content
from blocksync.core.security import redact_tokens, sanitize_url_for_logging

logger = logging.getLogger(__name__)


def parse_error_body(response: httpx.Response) -> ApiErrorBody:
    """Extract ``{message, code}`` from a failed response.

    Never raises: a body that is missing, not JSON, or not an object yields
    an empty ``ApiErrorBody``.
    """
    try:
        data = response.json()
    except ValueError:
        return ApiErrorBody()
    if not isinstance(data, dict):
        return ApiErrorBody()
    message = data.get("message")
    code = data.get("code")
    return ApiErrorBody(
        message=message if isinstance(message, str) else None,
        code=code if isinstance(code, str) else None,
    )


def is_transient_message(message: str | None) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(pattern in lowered for pattern in TRANSIENT_MESSAGE_PATTERNS)


def is_retryable_response(status_code: int, message: str | None = None) -> bool:
    """409, 429 and any 5xx are retryable, as is a known transient backend message."""
    if status_code in RETRYABLE_STATUS_CODES or status_code >= 500:
        return True
    return is_transient_message(message)


class RetryingTransport:
    """Executes one HTTP call, retrying transient failures.

    Non-success responses that are not retryable (or that exhaust the
    retry budget) are returned as-is for the caller to inspect. Network
    errors are re-raised once the budget is spent.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        jitter_ceiling_ms: int = JITTER_CEILING_MS,
    ) -> None:
        self._client = client
        self._jitter_ceiling_ms = jitter_ceiling_ms

    async def execute(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        policy: RetryPolicy,
        operation_name: str = "request",
    ) -> httpx.Response:
        attempt = 0

        while attempt <= policy.max_retries:
            try:
                response = await self._client.request(
                    method, url, headers=headers, content=content
                )
            except httpx.TransportError as exc:
                if attempt >= policy.max_retries:
                    logger.error(
                        "notion_transport_retry_exhausted",
                        extra={
                            "operation": operation_name,
                            "url": sanitize_url_for_logging(url),
                            "attempts": attempt + 1,
                            "error": type(exc).__name__,
                        },
                    )
                    raise
                await self._backoff(attempt, policy, operation_name, error=type(exc).__name__)
                attempt += 1
                continue

            if response.is_success:
                if attempt > 0:
                    logger.info(
                        "notion_retry_succeeded",
                        extra={"operation": operation_name, "attempt": attempt + 1},
                    )
                return response

            body = parse_error_body(response)
            retryable = is_retryable_response(response.status_code, body.message)
            if retryable and attempt < policy.max_retries:
                await self._backoff(
                    attempt,
                    policy,
                    operation_name,
                    error=body.code or str(response.status_code),
                    status_code=response.status_code,
                )
                attempt += 1
                continue

            logger.warning(
                "notion_request_failed",
                extra={
                    "operation": operation_name,
                    "method": method,
                    "url": sanitize_url_for_logging(url),
                    "status_code": response.status_code,
                    "code": body.code,
                    "error_message": truncate_log_content(
                        redact_tokens(body.message) if body.message else None, 200
                    ),
                    "retryable": retryable,
                    "attempts": attempt + 1,
                },
            )
            return response

        msg = f"{operation_name} exited the retry loop without a response or an error"
        raise TransportInvariantError(msg)

    async def _backoff(
        self,
        attempt: int,
        policy: RetryPolicy,
        operation_name: str,
        *,
        error: str,
        status_code: int | None = None,
    ) -> None:
        delay_ms = compute_backoff_delay_ms(
            attempt, policy.base_delay_ms, jitter_ceiling_ms=self._jitter_ceiling_ms
        )
        logger.warning(
            "notion_retry_attempt",
            extra={
                "operation": operation_name,
                "attempt": attempt + 1,
                "max_retries": policy.max_retries,
                "delay_ms": delay_ms,
                "status_code": status_code,
                "error": error,
            },
        )
        await sleep_ms(delay_ms)


def failure_text(response: httpx.Response) -> str:
    """Raw description of a failed response, to be passed through ``sanitize_api_error``."""
    body = parse_error_body(response)
    text = " ".join(part for part in (body.code, body.message) if part)
    return text or f"HTTP {response.status_code}"
