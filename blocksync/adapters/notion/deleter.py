"""Bulk block deletion under a concurrency cap."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from blocksync.adapters.notion.constants import (
    DELETE_BATCH_DELAY_MS,
    DELETE_CONCURRENCY,
    DELETE_DELAY_MS,
    DELETE_RETRIES,
)
from blocksync.adapters.notion.errors import MissingCredentialError
from blocksync.adapters.notion.models import BatchError, BatchOutcome, RetryPolicy
from blocksync.adapters.notion.transport import failure_text
from blocksync.core.backoff import sleep_ms
from blocksync.core.security import sanitize_api_error

if TYPE_CHECKING:
    from collections.abc import Sequence

    from blocksync.adapters.notion.executor import RequestExecutor

logger = logging.getLogger(__name__)

DEFAULT_DELETE_POLICY = RetryPolicy(max_retries=DELETE_RETRIES, base_delay_ms=DELETE_DELAY_MS)


class BoundedConcurrencyDeleter:
    """Deletes blocks in fixed-size waves.

    At most ``concurrency_limit`` deletes are in flight at once. Waves are
    separated by ``inter_batch_delay_ms`` to stay under the API rate limit.
    This delay is independent of the appender's inter-batch delay; running
    both against the same integration at once can exceed the limit.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        concurrency_limit: int = DELETE_CONCURRENCY,
        inter_batch_delay_ms: int = DELETE_BATCH_DELAY_MS,
        retry_policy: RetryPolicy = DEFAULT_DELETE_POLICY,
    ) -> None:
        if concurrency_limit < 1:
            msg = f"concurrency_limit must be at least 1, got {concurrency_limit}"
            raise ValueError(msg)
        self._executor = executor
        self._concurrency_limit = concurrency_limit
        self._inter_batch_delay_ms = inter_batch_delay_ms
        self._retry_policy = retry_policy

    async def delete_many(
        self, item_ids: Sequence[str], *, api_key: str | None = None
    ) -> BatchOutcome:
        """Delete every id, recording each failure without aborting the rest."""
        ids = list(item_ids)
        outcome = BatchOutcome()
        limit = self._concurrency_limit

        for start in range(0, len(ids), limit):
            wave = ids[start : start + limit]
            results = await asyncio.gather(
                *(self._delete_one(item_id, api_key) for item_id in wave),
                return_exceptions=True,
            )

            for item_id, result in zip(wave, results, strict=True):
                if isinstance(result, (MissingCredentialError, asyncio.CancelledError)):
                    raise result
                if isinstance(result, BaseException):
                    error = sanitize_api_error(result, "delete_block")
                elif result is None:
                    outcome.success_count += 1
                    continue
                else:
                    error = result

                logger.warning(
                    "notion_delete_block_failed",
                    extra={"block_id": item_id, "error": error},
                )
                outcome.errors.append(BatchError(item_id=item_id, error=error))
                outcome.failure_count += 1

            if start + limit < len(ids):
                await sleep_ms(self._inter_batch_delay_ms)

        logger.info(
            "notion_delete_many_complete",
            extra={
                "requested": len(ids),
                "success_count": outcome.success_count,
                "failure_count": outcome.failure_count,
            },
        )
        return outcome

    async def _delete_one(self, item_id: str, api_key: str | None) -> str | None:
        """Returns None on success, otherwise a sanitized reason."""
        response = await self._executor.call(
            f"/blocks/{item_id}",
            method="DELETE",
            retry_policy=self._retry_policy,
            api_key=api_key,
            operation_name="delete_block",
        )
        if response.is_success:
            return None
        return sanitize_api_error(failure_text(response), "delete_block")
