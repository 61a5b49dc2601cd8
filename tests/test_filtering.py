"""Tests for the default content filter."""

import unittest

from blocksync.adapters.notion.filtering import filter_content_blocks
from tests.conftest import paragraph_block


def _image(url: str | None) -> dict:
    source = {"url": url} if url is not None else {}
    return {"type": "image", "image": {"type": "external", "external": source}}


class TestFilterContentBlocks(unittest.TestCase):
    def test_valid_blocks_pass_through_in_order(self):
        blocks = [paragraph_block("a"), _image("https://example.com/a.png"), paragraph_block("b")]
        result = filter_content_blocks(blocks)
        assert [block.type for block in result.valid_blocks] == ["paragraph", "image", "paragraph"]
        assert result.skipped_count == 0

    def test_structure_checks(self):
        result = filter_content_blocks([{"paragraph": {}}, {"type": "paragraph"}])
        assert result.skipped_count == 2
        assert {r.reason for r in result.invalid_reasons} == {"invalid_structure"}

    def test_media_excluded_on_request(self):
        blocks = [_image("https://example.com/a.png"), {"type": "video", "video": {}}]
        result = filter_content_blocks(blocks, exclude_media=True)
        assert result.valid_blocks == []
        assert [r.reason for r in result.invalid_reasons] == ["media_excluded", "media_excluded"]

    def test_image_url_checks(self):
        blocks = [_image(None), _image("data:image/png;base64,AAAA")]
        result = filter_content_blocks(blocks)
        reasons = [(r.reason, r.url) for r in result.invalid_reasons]
        assert reasons == [("missing_url", None), ("invalid_url", "data:image/png;base64,AAAA")]

    def test_uploaded_file_image_accepted(self):
        block = {"type": "image", "image": {"type": "file", "file": {"url": "https://s3/x.png"}}}
        assert filter_content_blocks([block]).skipped_count == 0
