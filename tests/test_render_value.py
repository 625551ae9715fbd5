"""
Unit tests for record rendering in social.graze.atview.render.value

Tests cover string classification, number and boolean literals, mapping key
order, blob media detection, the depth ceiling and clipboard text.
"""

import pytest

from social.graze.atview.atproto.pds import RecordOutput
from social.graze.atview.render.value import (
    BooleanNode,
    HyperlinkNode,
    ImageNode,
    MappingNode,
    MappingShape,
    NullNode,
    NumberNode,
    ReferenceNode,
    SequenceNode,
    TextNode,
    TruncatedNode,
    VideoNode,
    classify_mapping,
    copy_text,
    format_number,
    is_absolute_url,
    render_record,
    render_value,
    to_text,
)

REPO = "did:plc:abc123"

IMAGE_BLOB = {
    "$type": "blob",
    "ref": {"$link": "bafkreiimage"},
    "mimeType": "image/jpeg",
    "size": 1234,
}


class TestStrings:
    def test_at_uri_is_reference(self):
        node = render_value("at://did:plc:abc/app.bsky.feed.post/xyz", REPO)
        assert node == ReferenceNode(
            text="at://did:plc:abc/app.bsky.feed.post/xyz",
            href="/at/did:plc:abc/app.bsky.feed.post/xyz",
        )

    def test_at_uri_with_space_is_text(self):
        node = render_value("at://did:plc:abc hello", REPO)
        assert isinstance(node, TextNode)

    def test_did_is_reference(self):
        node = render_value("did:plc:xyz", REPO)
        assert node == ReferenceNode(text="did:plc:xyz", href="/at/did:plc:xyz")

    def test_url_is_hyperlink(self):
        node = render_value("https://example.com/a?b=c", REPO)
        assert node == HyperlinkNode(
            text="https://example.com/a?b=c", href="https://example.com/a?b=c"
        )

    def test_plain_text(self):
        assert render_value("hello world", REPO) == TextNode(text="hello world")

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("https://example.com", True),
            ("mailto:alice@example.com", True),
            ("ipfs://bafy", True),
            ("hello world", False),
            ("hello", False),
            ("https://", False),
            ("https://exa mple.com", False),
            ("1:2", False),
            ("", False),
        ],
    )
    def test_is_absolute_url(self, value, expected):
        assert is_absolute_url(value) is expected


class TestLiterals:
    def test_integer(self):
        assert render_value(42, REPO) == NumberNode(text="42")

    def test_integral_float(self):
        assert render_value(2.0, REPO) == NumberNode(text="2")

    def test_float(self):
        assert render_value(1.5, REPO) == NumberNode(text="1.5")

    def test_booleans_are_not_numbers(self):
        assert render_value(True, REPO) == BooleanNode(text="true")
        assert render_value(False, REPO) == BooleanNode(text="false")

    def test_null(self):
        assert render_value(None, REPO) == NullNode()

    def test_non_finite(self):
        assert format_number(float("nan")) == "NaN"
        assert format_number(float("-inf")) == "-Infinity"


class TestContainers:
    def test_sequence(self):
        node = render_value([1, "a"], REPO)
        assert node == SequenceNode(items=[NumberNode(text="1"), TextNode(text="a")])

    def test_mapping_keys_sorted(self):
        node = render_value({"text": "hi", "$type": "app.bsky.feed.post", "b": 1}, REPO)
        assert isinstance(node, MappingNode)
        assert [entry.key for entry in node.entries] == ["$type", "b", "text"]
        assert node.media is None

    def test_empty_containers(self):
        assert render_value([], REPO) == SequenceNode(items=[])
        assert render_value({}, REPO) == MappingNode(entries=[])

    def test_depth_ceiling(self):
        node = render_value({"a": {"b": [1]}}, REPO, max_depth=2)
        inner = node.entries[0].value
        assert isinstance(inner, MappingNode)
        assert inner.entries[0].value == TruncatedNode()

    def test_deep_nesting_does_not_fail(self):
        value = []
        for _ in range(500):
            value = [value]
        node = render_value(value, REPO)
        depth = 0
        while isinstance(node, SequenceNode):
            node = node.items[0]
            depth += 1
        assert isinstance(node, TruncatedNode)
        assert depth == 64


class TestBlobs:
    def test_image_blob(self):
        node = render_value(IMAGE_BLOB, REPO)
        assert node.media == ImageNode(
            thumbnail="https://cdn.bsky.app/img/feed_thumbnail/plain/did:plc:abc123/bafkreiimage@jpeg",
            href="https://cdn.bsky.app/img/feed_fullsize/plain/did:plc:abc123/bafkreiimage@jpeg",
            mime_type="image/jpeg",
        )
        # raw listing is kept alongside the media
        assert [entry.key for entry in node.entries] == ["$type", "mimeType", "ref", "size"]

    def test_video_blob(self):
        blob = {**IMAGE_BLOB, "mimeType": "video/mp4"}
        node = render_value(blob, REPO)
        assert node.media == VideoNode(
            did=REPO,
            cid="bafkreiimage",
            playlist="https://video.bsky.app/watch/did:plc:abc123/bafkreiimage/playlist.m3u8",
        )

    def test_other_blob_has_no_media(self):
        blob = {**IMAGE_BLOB, "mimeType": "text/plain"}
        assert classify_mapping(blob)[0] == MappingShape.blob
        assert render_value(blob, REPO).media is None

    def test_malformed_blob_is_plain(self):
        blob = {"$type": "blob", "ref": "bafkreiimage"}
        assert classify_mapping(blob) == (MappingShape.plain, None)
        assert render_value(blob, REPO).media is None


class TestCopyText:
    def test_string_unquoted(self):
        assert copy_text("hello") == "hello"

    def test_empty_string_quoted(self):
        assert copy_text("") == '""'

    def test_compact_json(self):
        assert copy_text({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_mapping_entry_copy_text(self):
        node = render_value({"text": "hi", "n": 3}, REPO)
        assert [entry.copy_text for entry in node.entries] == ["3", "hi"]


class TestRenderRecord:
    def test_record(self):
        record = RecordOutput(
            uri="at://did:plc:abc123/app.bsky.feed.post/xyz",
            cid="bafyrecord",
            value={"$type": "app.bsky.feed.post", "text": "hello world"},
        )
        node = render_record(record)

        assert [entry.key for entry in node.entries] == ["cid", "uri", "value"]
        assert isinstance(node.entries[1].value, ReferenceNode)

    def test_to_text(self):
        record = RecordOutput(
            uri="at://did:plc:abc123/app.bsky.feed.post/xyz",
            value={"embed": IMAGE_BLOB, "text": "hi"},
        )
        lines = to_text(render_record(record))

        assert lines[0] == "uri: at://did:plc:abc123/app.bsky.feed.post/xyz"
        assert "value:" in lines
        assert "  text: hi" in lines
        assert any(line.strip().startswith("[image ") for line in lines)
