"""Locating the labeled highlight section inside a page's children."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from blocksync.adapters.notion.models import Block, as_block

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def find_section(
    blocks: Iterable[Block | Mapping[str, Any]], sentinel_heading_text: str
) -> list[str]:
    """Return the ids of the section headed by ``sentinel_heading_text``.

    The section is the sentinel heading itself plus every following
    non-heading block, up to the next heading of any level or the end of
    the list. Returns an empty list when no heading matches.
    """
    section: list[str] = []
    collecting = False

    for item in blocks:
        block = as_block(item)
        if collecting:
            if block.is_heading:
                break
            if block.id:
                section.append(block.id)
        elif block.is_heading and block.heading_text() == sentinel_heading_text:
            collecting = True
            if block.id:
                section.append(block.id)

    return section
