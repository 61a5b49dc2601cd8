"""Wiring of the sync engine from ``NotionConfig``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from blocksync.adapters.notion.appender import BatchAppender
from blocksync.adapters.notion.deleter import BoundedConcurrencyDeleter
from blocksync.adapters.notion.errors import NotionClientError
from blocksync.adapters.notion.executor import RequestExecutor
from blocksync.adapters.notion.filtering import filter_content_blocks
from blocksync.adapters.notion.orchestrator import SyncOrchestrator
from blocksync.adapters.notion.pagination import PaginatedReader
from blocksync.adapters.notion.transport import RetryingTransport

if TYPE_CHECKING:
    from typing import Self

    from blocksync.adapters.notion.filtering import ContentFilter
    from blocksync.config.notion import NotionConfig

logger = logging.getLogger(__name__)


def build_orchestrator(
    config: NotionConfig,
    http_client: httpx.AsyncClient,
    *,
    content_filter: ContentFilter = filter_content_blocks,
) -> SyncOrchestrator:
    """Assemble the transport, executor and bulk components around one HTTP client."""
    transport = RetryingTransport(http_client)
    executor = RequestExecutor(
        transport,
        api_key=config.api_key or None,
        base_url=config.api_url,
        api_version=config.api_version,
        default_policy=config.create_policy,
    )
    reader = PaginatedReader(
        executor, page_size=config.page_size, retry_policy=config.check_policy
    )
    deleter = BoundedConcurrencyDeleter(
        executor,
        concurrency_limit=config.delete_concurrency,
        inter_batch_delay_ms=config.delete_batch_delay_ms,
        retry_policy=config.delete_policy,
    )
    appender = BatchAppender(
        executor,
        batch_size=config.blocks_per_batch,
        rate_limit_delay_ms=config.rate_limit_delay_ms,
        retry_policy=config.create_policy,
    )
    return SyncOrchestrator(
        executor,
        reader,
        deleter,
        appender,
        highlight_header=config.highlight_section_header,
        content_filter=content_filter,
        blocks_per_write=config.blocks_per_batch,
        check_policy=config.check_policy,
        write_policy=config.create_policy,
        search_page_size=config.page_size,
    )


class NotionSyncClient:
    """Async context manager owning the HTTP client behind a ``SyncOrchestrator``.

    The HTTP client carries no credentials; the API key is attached to each
    request by the executor.
    """

    def __init__(
        self,
        config: NotionConfig,
        *,
        content_filter: ContentFilter = filter_content_blocks,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._content_filter = content_filter
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None
        self._orchestrator: SyncOrchestrator | None = None

    async def __aenter__(self) -> Self:
        self._http_client = httpx.AsyncClient(
            timeout=self.config.request_timeout_sec,
            transport=self._transport,
        )
        self._orchestrator = build_orchestrator(
            self.config, self._http_client, content_filter=self._content_filter
        )
        logger.debug("notion_client_opened", extra={"api_url": self.config.api_url})
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            self._orchestrator = None

    @property
    def orchestrator(self) -> SyncOrchestrator:
        if self._orchestrator is None:
            msg = "Client not initialized. Use async context manager."
            raise NotionClientError(msg)
        return self._orchestrator
