"""Constructors for the few block shapes the sync engine writes itself."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from blocksync.adapters.notion.constants import HIGHLIGHT_SECTION_HEADER, MAX_RICH_TEXT_LENGTH
from blocksync.adapters.notion.models import Block

_SENTENCE_END = re.compile(r"[.!?。！？]\s")


def _rich_text(content: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": content}}]


def heading(text: str, level: int = 3) -> Block:
    if level not in (1, 2, 3):
        msg = f"heading level must be 1, 2 or 3, got {level}"
        raise ValueError(msg)
    block_type = f"heading_{level}"
    return Block.model_validate({"type": block_type, block_type: {"rich_text": _rich_text(text)}})


def paragraph(text: str, *, color: str = "default") -> Block:
    return Block.model_validate(
        {"type": "paragraph", "paragraph": {"rich_text": _rich_text(text), "color": color}}
    )


def split_text(text: str, max_length: int = MAX_RICH_TEXT_LENGTH) -> list[str]:
    """Split text into chunks no longer than ``max_length``.

    Prefers to break after a sentence end, then at whitespace, and only
    cuts mid-word when a chunk has neither.
    """
    remaining = text.strip()
    chunks: list[str] = []

    while len(remaining) > max_length:
        window = remaining[:max_length]
        split_at = -1
        for match in _SENTENCE_END.finditer(window):
            split_at = match.end()
        if split_at <= 0:
            split_at = window.rfind(" ")
        if split_at <= 0:
            split_at = max_length
        chunks.append(remaining[:split_at].strip())
        remaining = remaining[split_at:].strip()

    if remaining:
        chunks.append(remaining)
    return [chunk for chunk in chunks if chunk]


def build_highlight_blocks(
    highlights: Iterable[Mapping[str, Any]],
    title: str = HIGHLIGHT_SECTION_HEADER,
) -> list[Block]:
    """Sentinel heading followed by one paragraph per highlight chunk.

    Each highlight is ``{"text": str, "color": str}``; ``color`` defaults to
    ``default``. Returns an empty list when there are no highlights.
    """
    items = list(highlights or ())
    if not items:
        return []

    blocks = [heading(title, 3)]
    for highlight in items:
        color = highlight.get("color") or "default"
        for chunk in split_text(str(highlight.get("text") or "")):
            blocks.append(paragraph(chunk, color=color))
    return blocks
