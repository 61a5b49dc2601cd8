"""Cursor-paginated reads of a block's children."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from blocksync.adapters.notion.constants import CHECK_DELAY_MS, CHECK_RETRIES, MAX_PAGE_SIZE
from blocksync.adapters.notion.models import Block, BlockList, ListBlocksResult, RetryPolicy
from blocksync.adapters.notion.transport import failure_text
from blocksync.core.security import sanitize_api_error

if TYPE_CHECKING:
    from blocksync.adapters.notion.executor import RequestExecutor

logger = logging.getLogger(__name__)

DEFAULT_READ_POLICY = RetryPolicy(max_retries=CHECK_RETRIES, base_delay_ms=CHECK_DELAY_MS)


class PaginatedReader:
    """Materializes the full children collection of a page or block."""

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        page_size: int = MAX_PAGE_SIZE,
        retry_policy: RetryPolicy = DEFAULT_READ_POLICY,
    ) -> None:
        self._executor = executor
        self._page_size = page_size
        self._retry_policy = retry_policy

    async def list_all(self, parent_id: str, *, api_key: str | None = None) -> ListBlocksResult:
        """Walk every page of ``GET /blocks/{parent_id}/children``.

        A failure on any page fails the whole listing; a truncated
        collection is never reported as success.
        """
        blocks: list[Block] = []
        cursor: str | None = None
        pages_read = 0

        try:
            while True:
                response = await self._executor.call(
                    f"/blocks/{parent_id}/children",
                    query_params={"page_size": self._page_size, "start_cursor": cursor},
                    retry_policy=self._retry_policy,
                    api_key=api_key,
                    operation_name="list_block_children",
                )
                if not response.is_success:
                    logger.warning(
                        "notion_list_children_failed",
                        extra={
                            "status_code": response.status_code,
                            "pages_read": pages_read,
                            "blocks_read": len(blocks),
                        },
                    )
                    return ListBlocksResult(
                        success=False,
                        error=sanitize_api_error(failure_text(response), "fetch_blocks"),
                    )

                page = BlockList.model_validate(response.json())
                pages_read += 1
                blocks.extend(page.results)

                if not page.has_more:
                    break
                if not page.next_cursor:
                    logger.error(
                        "notion_list_children_missing_cursor",
                        extra={"pages_read": pages_read, "blocks_read": len(blocks)},
                    )
                    return ListBlocksResult(
                        success=False,
                        error=sanitize_api_error("missing pagination cursor", "fetch_blocks"),
                    )
                cursor = page.next_cursor
        except (httpx.TransportError, ValueError) as exc:
            logger.warning(
                "notion_list_children_error",
                extra={"error": type(exc).__name__, "pages_read": pages_read},
            )
            return ListBlocksResult(success=False, error=sanitize_api_error(exc, "fetch_blocks"))

        logger.debug(
            "notion_list_children_complete",
            extra={"pages_read": pages_read, "blocks_read": len(blocks)},
        )
        return ListBlocksResult(success=True, blocks=blocks)
