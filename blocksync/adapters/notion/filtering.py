"""Pre-write classification of content blocks.

The orchestrator accepts any ``ContentFilter``; ``filter_content_blocks``
is the default and only checks what is needed to route a write.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from pydantic import ValidationError

from blocksync.adapters.notion.constants import MEDIA_TYPES
from blocksync.adapters.notion.models import Block, FilterResult, InvalidReason, as_block


class ContentFilter(Protocol):
    def __call__(
        self, blocks: Sequence[Block | Mapping[str, Any]], exclude_media: bool
    ) -> FilterResult: ...


def _image_url(block: Block) -> str | None:
    payload = block.payload or {}
    source_type = payload.get("type")
    source = payload.get(source_type) if isinstance(source_type, str) else None
    if not isinstance(source, dict):
        source = payload.get("external") or payload.get("file") or {}
    url = source.get("url") if isinstance(source, dict) else None
    return url if isinstance(url, str) else None


def filter_content_blocks(
    blocks: Sequence[Block | Mapping[str, Any]], exclude_media: bool = False
) -> FilterResult:
    """Split blocks into writable ones and skipped ones with reasons.

    Reasons: ``invalid_structure`` (no type or no payload under the type
    key), ``media_excluded``, ``missing_url`` and ``invalid_url`` (images
    whose source is not an http(s) URL).
    """
    result = FilterResult()

    for item in blocks or ():
        try:
            block = as_block(item)
        except ValidationError:
            result.invalid_reasons.append(InvalidReason(reason="invalid_structure"))
            continue

        if block.payload is None:
            result.invalid_reasons.append(InvalidReason(reason="invalid_structure"))
            continue

        if block.type in MEDIA_TYPES and exclude_media:
            result.invalid_reasons.append(InvalidReason(reason="media_excluded"))
            continue

        if block.type == "image":
            url = _image_url(block)
            if not url:
                result.invalid_reasons.append(InvalidReason(reason="missing_url"))
                continue
            if not url.startswith(("http://", "https://")):
                result.invalid_reasons.append(InvalidReason(reason="invalid_url", url=url))
                continue

        result.valid_blocks.append(block)

    result.skipped_count = len(result.invalid_reasons)
    return result
