"""Page lifecycle operations built on the paginated reader, deleter and appender.

Every operation returns a result model. Remote failures never raise;
only programmer errors do (a missing credential raises
``MissingCredentialError`` before any request is sent).

Operations on the same page must be serialized by the caller: nothing
here locks a page against a concurrent refresh.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from blocksync.adapters.notion.constants import (
    CHECK_DELAY_MS,
    CHECK_RETRIES,
    HIGHLIGHT_SECTION_HEADER,
    MAX_BLOCKS_PER_WRITE,
    MAX_DETAILED_FILTER_LOGS,
    MAX_PAGE_SIZE,
)
from blocksync.adapters.notion.executor import DEFAULT_RETRY_POLICY
from blocksync.adapters.notion.filtering import filter_content_blocks
from blocksync.adapters.notion.models import (
    Block,
    CreatePageResult,
    DeleteAllResult,
    FilterResult,
    PageData,
    RefreshResult,
    RetryPolicy,
    SearchResult,
    SectionRefreshResult,
    UpdateTitleResult,
    as_block,
)
from blocksync.adapters.notion.sections import find_section
from blocksync.adapters.notion.transport import failure_text
from blocksync.core.security import sanitize_api_error, sanitize_url_for_logging

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from blocksync.adapters.notion.appender import BatchAppender
    from blocksync.adapters.notion.deleter import BoundedConcurrencyDeleter
    from blocksync.adapters.notion.executor import RequestExecutor
    from blocksync.adapters.notion.filtering import ContentFilter
    from blocksync.adapters.notion.models import ParentReference
    from blocksync.adapters.notion.pagination import PaginatedReader

    BlockLike = Block | Mapping[str, Any]

logger = logging.getLogger(__name__)

DEFAULT_CHECK_POLICY = RetryPolicy(max_retries=CHECK_RETRIES, base_delay_ms=CHECK_DELAY_MS)


class SyncOrchestrator:
    """Create, refresh and inspect Notion pages."""

    def __init__(
        self,
        executor: RequestExecutor,
        reader: PaginatedReader,
        deleter: BoundedConcurrencyDeleter,
        appender: BatchAppender,
        *,
        highlight_header: str = HIGHLIGHT_SECTION_HEADER,
        content_filter: ContentFilter = filter_content_blocks,
        blocks_per_write: int = MAX_BLOCKS_PER_WRITE,
        check_policy: RetryPolicy = DEFAULT_CHECK_POLICY,
        write_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        search_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._executor = executor
        self._reader = reader
        self._deleter = deleter
        self._appender = appender
        self._highlight_header = highlight_header
        self._content_filter = content_filter
        self._blocks_per_write = blocks_per_write
        self._check_policy = check_policy
        self._write_policy = write_policy
        self._search_page_size = search_page_size

    # ------------------------------------------------------------------
    # Existence
    # ------------------------------------------------------------------

    async def check_exists(self, page_id: str, *, api_key: str | None = None) -> bool | None:
        """Tri-state existence check.

        Returns:
            True if the page exists and is not archived, False if it is
            missing (404) or archived, None if the answer is unknown. None
            must not be treated as "does not exist".
        """
        try:
            response = await self._executor.call(
                f"/pages/{page_id}",
                retry_policy=self._check_policy,
                api_key=api_key,
                operation_name="retrieve_page",
            )
            if response.status_code == 404:
                return False
            if not response.is_success:
                logger.warning(
                    "notion_page_existence_unknown",
                    extra={"status_code": response.status_code},
                )
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "notion_page_existence_unknown",
                extra={"error": sanitize_api_error(exc, "check_page")},
            )
            return None

        if not isinstance(data, dict):
            return None
        return not (data.get("archived") or data.get("in_trash"))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str | None = None,
        *,
        filter: Mapping[str, Any] | None = None,
        sort: Mapping[str, Any] | None = None,
        start_cursor: str | None = None,
        page_size: int | None = None,
        api_key: str | None = None,
    ) -> SearchResult:
        """Fetch one page of pages or data sources shared with the integration.

        Used to pick a parent for new pages. Pass ``next_cursor`` back as
        ``start_cursor`` to read further.
        """
        body: dict[str, Any] = {"page_size": page_size or self._search_page_size}
        if query:
            body["query"] = query
        if filter:
            body["filter"] = dict(filter)
        if sort:
            body["sort"] = dict(sort)
        if start_cursor:
            body["start_cursor"] = start_cursor

        try:
            response = await self._executor.call(
                "/search",
                method="POST",
                body=body,
                retry_policy=self._check_policy,
                api_key=api_key,
                operation_name="search",
            )
            if not response.is_success:
                error = sanitize_api_error(failure_text(response), "search")
                logger.error(
                    "notion_search_failed",
                    extra={"status_code": response.status_code, "error": error},
                )
                return SearchResult(success=False, error=error)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            error = sanitize_api_error(exc, "search")
            logger.error("notion_search_failed", extra={"error": error})
            return SearchResult(success=False, error=error)

        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            return SearchResult(
                success=False, error=sanitize_api_error("unexpected response", "search")
            )
        results = [item for item in data["results"] if isinstance(item, dict)]
        logger.debug("notion_search_complete", extra={"result_count": len(results)})
        return SearchResult(
            success=True,
            results=results,
            has_more=bool(data.get("has_more")),
            next_cursor=data.get("next_cursor"),
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def filter_blocks(
        self, blocks: Sequence[BlockLike], exclude_media: bool = False
    ) -> FilterResult:
        """Run the content filter and log a bounded sample of skip reasons."""
        result = self._content_filter(blocks, exclude_media)

        if result.skipped_count:
            logger.info(
                "notion_blocks_filtered",
                extra={
                    "skipped_count": result.skipped_count,
                    "total_blocks": len(blocks),
                    "exclude_media": exclude_media,
                },
            )
        for reason in result.invalid_reasons[:MAX_DETAILED_FILTER_LOGS]:
            logger.warning(
                "notion_block_skipped",
                extra={
                    "reason": reason.reason,
                    "url": sanitize_url_for_logging(reason.url) if reason.url else None,
                },
            )
        if len(result.invalid_reasons) > MAX_DETAILED_FILTER_LOGS:
            logger.warning(
                "notion_more_blocks_skipped",
                extra={
                    "additional_skipped": len(result.invalid_reasons) - MAX_DETAILED_FILTER_LOGS
                },
            )
        return result

    def build_page_data(
        self,
        *,
        title: str,
        page_url: str,
        parent: ParentReference,
        blocks: Sequence[BlockLike] = (),
        site_icon: str | None = None,
        exclude_media: bool = False,
    ) -> PageData:
        """Build the create-page payload with at most one write batch of children."""
        filtered = self.filter_blocks(blocks, exclude_media)
        payload: dict[str, Any] = {
            "parent": parent.to_api(),
            "properties": {
                "Title": {"title": [{"text": {"content": title or "Untitled"}}]},
                "URL": {"url": page_url or None},
            },
            "children": [
                block.to_api() for block in filtered.valid_blocks[: self._blocks_per_write]
            ],
        }
        if site_icon:
            payload["icon"] = {"type": "external", "external": {"url": site_icon}}

        return PageData(
            payload=payload,
            valid_blocks=filtered.valid_blocks,
            skipped_count=filtered.skipped_count,
        )

    async def create_page(
        self,
        payload: Mapping[str, Any],
        children: Sequence[BlockLike] = (),
        *,
        api_key: str | None = None,
    ) -> CreatePageResult:
        """Create a page, chaining an append for children beyond the first batch.

        When ``children`` is empty, children already present in ``payload``
        are used instead, so the create request never carries more than one
        write batch. A failed chained append does not undo the created page:
        the result is ``success=True`` with ``append_result.success=False``.
        """
        body = dict(payload)
        children = [as_block(b) for b in (children or body.get("children") or ())]
        if children:
            body["children"] = [b.to_api() for b in children[: self._blocks_per_write]]

        try:
            response = await self._executor.call(
                "/pages",
                method="POST",
                body=body,
                retry_policy=self._write_policy,
                api_key=api_key,
                operation_name="create_page",
            )
            if not response.is_success:
                error = sanitize_api_error(failure_text(response), "create_page")
                logger.error(
                    "notion_create_page_failed",
                    extra={"status_code": response.status_code, "error": error},
                )
                return CreatePageResult(success=False, error=error)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            error = sanitize_api_error(exc, "create_page")
            logger.error("notion_create_page_failed", extra={"error": error})
            return CreatePageResult(success=False, error=error)

        if not isinstance(data, dict):
            return CreatePageResult(
                success=False, error=sanitize_api_error("unexpected response", "create_page")
            )
        result = CreatePageResult(success=True, page_id=data.get("id"), url=data.get("url"))
        logger.info("notion_page_created", extra={"page_id": result.page_id})

        if result.page_id and len(children) > self._blocks_per_write:
            logger.info(
                "notion_create_page_chained_append",
                extra={"total_blocks": len(children), "page_id": result.page_id},
            )
            append_result = await self._appender.append_all(
                result.page_id, children, self._blocks_per_write, api_key=api_key
            )
            result.append_result = append_result
            if not append_result.success:
                logger.warning(
                    "notion_create_page_partial_append",
                    extra={
                        "page_id": result.page_id,
                        "added_count": append_result.added_count,
                        "total_count": append_result.total_count,
                    },
                )

        return result

    async def save_page(
        self,
        *,
        title: str,
        page_url: str,
        parent: ParentReference,
        blocks: Sequence[BlockLike],
        site_icon: str | None = None,
        exclude_media: bool = False,
        api_key: str | None = None,
    ) -> CreatePageResult:
        """Filter, build and create a page in one step."""
        page_data = self.build_page_data(
            title=title,
            page_url=page_url,
            parent=parent,
            blocks=blocks,
            site_icon=site_icon,
            exclude_media=exclude_media,
        )
        result = await self.create_page(
            page_data.payload, page_data.valid_blocks, api_key=api_key
        )
        result.skipped_count = page_data.skipped_count
        return result

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_title(
        self, page_id: str, title: str, *, api_key: str | None = None
    ) -> UpdateTitleResult:
        body = {"properties": {"title": {"title": [{"type": "text", "text": {"content": title}}]}}}
        try:
            response = await self._executor.call(
                f"/pages/{page_id}",
                method="PATCH",
                body=body,
                retry_policy=self._write_policy,
                api_key=api_key,
                operation_name="update_title",
            )
        except httpx.HTTPError as exc:
            return UpdateTitleResult(success=False, error=sanitize_api_error(exc, "update_title"))

        if not response.is_success:
            error = sanitize_api_error(failure_text(response), "update_title")
            logger.error("notion_update_title_failed", extra={"error": error})
            return UpdateTitleResult(success=False, error=error)
        return UpdateTitleResult(success=True)

    async def delete_all_blocks(
        self, page_id: str, *, api_key: str | None = None
    ) -> DeleteAllResult:
        """Delete every child of a page. Partial failure still counts as success."""
        listing = await self._reader.list_all(page_id, api_key=api_key)
        if not listing.success:
            return DeleteAllResult(success=False, error=listing.error or "Failed to list blocks")

        block_ids = [block.id for block in listing.blocks if block.id]
        if not block_ids:
            return DeleteAllResult(success=True)

        outcome = await self._deleter.delete_many(block_ids, api_key=api_key)
        if outcome.failure_count:
            logger.warning(
                "notion_delete_all_partial",
                extra={"failure_count": outcome.failure_count, "total_blocks": len(block_ids)},
            )
        return DeleteAllResult(
            success=True,
            deleted_count=outcome.success_count,
            failure_count=outcome.failure_count,
            errors=outcome.errors,
        )

    async def refresh_all(
        self,
        page_id: str,
        new_children: Sequence[BlockLike],
        *,
        title: str | None = None,
        exclude_media: bool = False,
        api_key: str | None = None,
    ) -> RefreshResult:
        """Replace every child of a page.

        Order: title (best effort), delete all children, append new ones.
        If the append fails after the delete succeeded, the page is left
        with only the blocks that were written; nothing is restored.
        """
        filtered = self.filter_blocks(new_children, exclude_media)

        if title:
            title_result = await self.update_title(page_id, title, api_key=api_key)
            if not title_result.success:
                logger.warning(
                    "notion_refresh_title_failed",
                    extra={"page_id": page_id, "error": title_result.error},
                )

        deleted = await self.delete_all_blocks(page_id, api_key=api_key)
        if not deleted.success:
            return RefreshResult(
                success=False,
                error=deleted.error,
                error_type="notion_api",
                details={
                    "phase": "delete_existing",
                    "deleted_count": deleted.deleted_count,
                    "failure_count": deleted.failure_count,
                },
            )

        appended = await self._appender.append_all(
            page_id, filtered.valid_blocks, 0, api_key=api_key
        )
        result = RefreshResult(
            success=appended.success,
            added_count=appended.added_count,
            deleted_count=deleted.deleted_count,
            delete_failure_count=deleted.failure_count,
            skipped_count=filtered.skipped_count,
            error=appended.error,
        )
        if not appended.success:
            result.error_type = "notion_api"
            result.details = {
                "phase": "append_new",
                "added_count": appended.added_count,
                "total_count": appended.total_count,
            }
        return result

    async def refresh_section(
        self,
        page_id: str,
        new_section_blocks: Sequence[BlockLike],
        *,
        sentinel: str | None = None,
        api_key: str | None = None,
    ) -> SectionRefreshResult:
        """Replace only the highlight section of a page.

        The page is always re-listed first. Blocks outside the located
        section are never deleted. The new section is appended at the end
        of the page. New blocks are validated before the page is touched.
        """
        try:
            new_blocks = [as_block(b) for b in new_section_blocks]
        except (TypeError, ValueError) as exc:
            error = sanitize_api_error(exc, "update_highlights")
            logger.error("notion_section_invalid_blocks", extra={"error": error})
            return SectionRefreshResult(
                success=False,
                error=error,
                error_type="internal",
                details={"phase": "validate"},
            )

        listing = await self._reader.list_all(page_id, api_key=api_key)
        if not listing.success:
            return SectionRefreshResult(
                success=False,
                error=listing.error,
                error_type="notion_api",
                details={"phase": "fetch_blocks"},
            )

        section_ids = find_section(listing.blocks, sentinel or self._highlight_header)
        outcome = await self._deleter.delete_many(section_ids, api_key=api_key)
        if outcome.failure_count:
            logger.warning(
                "notion_section_delete_partial",
                extra={"failure_count": outcome.failure_count, "total_blocks": len(section_ids)},
            )
        logger.info(
            "notion_section_cleared",
            extra={"deleted_count": outcome.success_count, "total_blocks": len(section_ids)},
        )

        result = SectionRefreshResult(
            success=True,
            deleted_count=outcome.success_count,
            delete_failure_count=outcome.failure_count,
        )
        if not new_blocks:
            return result

        if len(new_blocks) > self._blocks_per_write:
            appended = await self._appender.append_all(page_id, new_blocks, 0, api_key=api_key)
            result.added_count = appended.added_count
            if not appended.success:
                return self._section_append_failed(result, appended.error)
            return result

        try:
            response = await self._executor.call(
                f"/blocks/{page_id}/children",
                method="PATCH",
                body={"children": [b.to_api() for b in new_blocks]},
                retry_policy=self._write_policy,
                api_key=api_key,
                operation_name="append_section",
            )
            if not response.is_success:
                return self._section_append_failed(
                    result, sanitize_api_error(failure_text(response), "update_highlights")
                )
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            return self._section_append_failed(
                result, sanitize_api_error(exc, "update_highlights")
            )

        results = data.get("results") if isinstance(data, dict) else None
        result.added_count = len(results) if isinstance(results, list) else len(new_blocks)
        logger.info("notion_section_appended", extra={"added_count": result.added_count})
        return result

    @staticmethod
    def _section_append_failed(
        result: SectionRefreshResult, error: str | None
    ) -> SectionRefreshResult:
        logger.error(
            "notion_section_append_failed",
            extra={"deleted_count": result.deleted_count, "error": error},
        )
        result.success = False
        result.error = error
        result.error_type = "notion_api"
        result.details = {"phase": "append_section", "deleted_count": result.deleted_count}
        return result
