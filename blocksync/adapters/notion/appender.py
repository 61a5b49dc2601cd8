"""Sequential batched appends to a parent block."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

import httpx

from blocksync.adapters.notion.constants import MAX_BLOCKS_PER_WRITE, RATE_LIMIT_DELAY_MS
from blocksync.adapters.notion.executor import DEFAULT_RETRY_POLICY
from blocksync.adapters.notion.models import AppendResult, Block, RetryPolicy, as_block
from blocksync.adapters.notion.transport import failure_text
from blocksync.core.backoff import sleep_ms
from blocksync.core.security import sanitize_api_error

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from blocksync.adapters.notion.executor import RequestExecutor

logger = logging.getLogger(__name__)


class BatchAppender:
    """Writes children to one parent in order, one batch at a time.

    Batches already written are never rolled back. A result with
    ``added_count < total_count`` can be resumed by calling ``append_all``
    again with ``start_index`` advanced by ``added_count``.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        batch_size: int = MAX_BLOCKS_PER_WRITE,
        rate_limit_delay_ms: int = RATE_LIMIT_DELAY_MS,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    ) -> None:
        if not 1 <= batch_size <= MAX_BLOCKS_PER_WRITE:
            msg = f"batch_size must be between 1 and {MAX_BLOCKS_PER_WRITE}, got {batch_size}"
            raise ValueError(msg)
        self._executor = executor
        self._batch_size = batch_size
        self._rate_limit_delay_ms = rate_limit_delay_ms
        self._retry_policy = retry_policy

    async def append_all(
        self,
        parent_id: str,
        items: Sequence[Block | Mapping[str, Any]],
        start_index: int = 0,
        *,
        api_key: str | None = None,
    ) -> AppendResult:
        if start_index < 0:
            msg = f"start_index must be non-negative, got {start_index}"
            raise ValueError(msg)

        pending = [as_block(item).to_api() for item in items[start_index:]]
        total = len(pending)
        if total == 0:
            return AppendResult(success=True, added_count=0, total_count=0)

        total_batches = math.ceil(total / self._batch_size)
        added = 0
        logger.info(
            "notion_append_started",
            extra={"total_blocks": total, "start_index": start_index, "batches": total_batches},
        )

        for batch_number, offset in enumerate(range(0, total, self._batch_size), start=1):
            batch = pending[offset : offset + self._batch_size]
            logger.debug(
                "notion_append_batch_sent",
                extra={
                    "batch_number": batch_number,
                    "total_batches": total_batches,
                    "batch_size": len(batch),
                },
            )

            try:
                response = await self._executor.call(
                    f"/blocks/{parent_id}/children",
                    method="PATCH",
                    body={"children": batch},
                    retry_policy=self._retry_policy,
                    api_key=api_key,
                    operation_name=f"append_batch_{batch_number}",
                )
            except httpx.TransportError as exc:
                error = sanitize_api_error(exc, "append_blocks")
                return self._failed(added, total, batch_number, error)

            if not response.is_success:
                error = sanitize_api_error(failure_text(response), "append_blocks")
                return self._failed(added, total, batch_number, error)

            added += len(batch)

            if offset + self._batch_size < total:
                await sleep_ms(self._rate_limit_delay_ms)

        logger.info("notion_append_complete", extra={"added_count": added, "total_blocks": total})
        return AppendResult(success=True, added_count=added, total_count=total)

    @staticmethod
    def _failed(added: int, total: int, batch_number: int, error: str) -> AppendResult:
        logger.error(
            "notion_append_batch_failed",
            extra={
                "batch_number": batch_number,
                "added_count": added,
                "total_blocks": total,
                "error": error,
            },
        )
        return AppendResult(success=False, added_count=added, total_count=total, error=error)
