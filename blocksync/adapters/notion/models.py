"""Pydantic models for the Notion sync engine."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from blocksync.adapters.notion.constants import HEADING_TYPES


class Block(BaseModel):
    """One ordered content unit.

    The payload lives under a key equal to ``type`` (e.g. ``paragraph``) and
    is kept opaque. ``id`` is only present once the block exists remotely.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str

    @property
    def payload(self) -> dict[str, Any] | None:
        value = (self.model_extra or {}).get(self.type)
        return value if isinstance(value, dict) else None

    @property
    def is_heading(self) -> bool:
        return self.type in HEADING_TYPES

    def heading_text(self) -> str | None:
        """Concatenated plain text of a heading block, or None for other types."""
        if not self.is_heading:
            return None
        rich_text = (self.payload or {}).get("rich_text") or []
        parts: list[str] = []
        for segment in rich_text:
            if not isinstance(segment, dict):
                continue
            text = segment.get("plain_text")
            if text is None:
                text = (segment.get("text") or {}).get("content", "")
            parts.append(str(text))
        return "".join(parts)

    def to_api(self) -> dict[str, Any]:
        """Write shape accepted by the append/create endpoints."""
        return {"object": "block", "type": self.type, self.type: self.payload or {}}


def as_block(item: Block | Mapping[str, Any]) -> Block:
    if isinstance(item, Block):
        return item
    return Block.model_validate(dict(item))


class ParentReference(BaseModel):
    """Where a page lives: under another page or under a collection (data source)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["page", "collection"]
    target_id: str = Field(min_length=1)

    @classmethod
    def page(cls, page_id: str) -> ParentReference:
        return cls(kind="page", target_id=page_id)

    @classmethod
    def collection(cls, collection_id: str) -> ParentReference:
        return cls(kind="collection", target_id=collection_id)

    def to_api(self) -> dict[str, str]:
        if self.kind == "page":
            return {"type": "page_id", "page_id": self.target_id}
        return {"type": "data_source_id", "data_source_id": self.target_id}


class RetryPolicy(BaseModel):
    """Retry budget for one call. Reads, creates and deletes use different policies."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(ge=0)
    base_delay_ms: int = Field(gt=0)


class ApiErrorBody(BaseModel):
    """Best-effort parse of a Notion error response body."""

    model_config = ConfigDict(extra="ignore")

    message: str | None = None
    code: str | None = None


class BlockList(BaseModel):
    """One page of a ``GET /blocks/{id}/children`` response."""

    model_config = ConfigDict(extra="ignore")

    results: list[Block] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


class BatchError(BaseModel):
    item_id: str
    error: str


class BatchOutcome(BaseModel):
    """Result of a multi-item operation. Never all-or-nothing."""

    success_count: int = 0
    failure_count: int = 0
    errors: list[BatchError] = Field(default_factory=list)


class ListBlocksResult(BaseModel):
    success: bool
    blocks: list[Block] = Field(default_factory=list)
    error: str | None = None


class AppendResult(BaseModel):
    success: bool
    added_count: int = 0
    total_count: int = 0
    error: str | None = None

    @property
    def is_partial(self) -> bool:
        return 0 < self.added_count < self.total_count


class InvalidReason(BaseModel):
    reason: str
    url: str | None = None


class FilterResult(BaseModel):
    valid_blocks: list[Block] = Field(default_factory=list)
    skipped_count: int = 0
    invalid_reasons: list[InvalidReason] = Field(default_factory=list)


class PageData(BaseModel):
    payload: dict[str, Any]
    valid_blocks: list[Block] = Field(default_factory=list)
    skipped_count: int = 0


class CreatePageResult(BaseModel):
    success: bool
    page_id: str | None = None
    url: str | None = None
    append_result: AppendResult | None = None
    skipped_count: int = 0
    error: str | None = None


class UpdateTitleResult(BaseModel):
    success: bool
    error: str | None = None


class DeleteAllResult(BaseModel):
    success: bool
    deleted_count: int = 0
    failure_count: int = 0
    errors: list[BatchError] = Field(default_factory=list)
    error: str | None = None


ErrorType = Literal["notion_api", "internal"]


class RefreshResult(BaseModel):
    success: bool
    added_count: int = 0
    deleted_count: int = 0
    delete_failure_count: int = 0
    skipped_count: int = 0
    error: str | None = None
    error_type: ErrorType | None = None
    details: dict[str, Any] | None = None


class SectionRefreshResult(BaseModel):
    success: bool
    deleted_count: int = 0
    added_count: int = 0
    delete_failure_count: int = 0
    error: str | None = None
    error_type: ErrorType | None = None
    details: dict[str, Any] | None = None


class SearchResult(BaseModel):
    """One page of ``POST /search`` results; pass ``next_cursor`` back to continue."""

    success: bool
    results: list[dict[str, Any]] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None
    error: str | None = None
