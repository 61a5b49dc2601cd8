"""Tests for block constructors and the highlight section builder."""

import unittest

from blocksync.adapters.notion.blocks import (
    build_highlight_blocks,
    heading,
    paragraph,
    split_text,
)
from blocksync.adapters.notion.constants import HIGHLIGHT_SECTION_HEADER
from blocksync.adapters.notion.sections import find_section


class TestConstructors(unittest.TestCase):
    def test_heading_write_shape(self):
        block = heading("Notes", 2)
        assert block.to_api() == {
            "object": "block",
            "type": "heading_2",
            "heading_2": {"rich_text": [{"type": "text", "text": {"content": "Notes"}}]},
        }
        assert block.heading_text() == "Notes"

    def test_heading_level_validated(self):
        with self.assertRaises(ValueError):
            heading("Notes", 4)

    def test_paragraph_color(self):
        block = paragraph("hi", color="yellow_background")
        assert block.payload["color"] == "yellow_background"
        assert block.heading_text() is None


class TestSplitText(unittest.TestCase):
    def test_short_text_single_chunk(self):
        assert split_text("  hello  ") == ["hello"]

    def test_prefers_sentence_boundary(self):
        text = "First sentence. Second sentence is longer."
        assert split_text(text, max_length=20) == [
            "First sentence.",
            "Second sentence is",
            "longer.",
        ]

    def test_hard_cut_without_whitespace(self):
        assert split_text("a" * 25, max_length=10) == ["a" * 10, "a" * 10, "a" * 5]

    def test_every_chunk_within_limit(self):
        text = " ".join(["word"] * 1500)
        chunks = split_text(text)
        assert all(len(chunk) <= 2000 for chunk in chunks)
        assert " ".join(chunks) == text


class TestBuildHighlightBlocks(unittest.TestCase):
    def test_empty_highlights(self):
        assert build_highlight_blocks([]) == []

    def test_sentinel_heading_then_paragraphs(self):
        blocks = build_highlight_blocks(
            [{"text": "Key idea", "color": "yellow_background"}, {"text": "Another"}]
        )
        assert blocks[0].type == "heading_3"
        assert blocks[0].heading_text() == HIGHLIGHT_SECTION_HEADER
        assert [b.payload["color"] for b in blocks[1:]] == ["yellow_background", "default"]

    def test_built_section_is_found_again(self):
        blocks = build_highlight_blocks([{"text": "Key idea"}, {"text": "Another"}])
        listed = [
            {"id": f"id-{i}", **block.to_api()} for i, block in enumerate(blocks)
        ]
        assert find_section(listed, HIGHLIGHT_SECTION_HEADER) == ["id-0", "id-1", "id-2"]
