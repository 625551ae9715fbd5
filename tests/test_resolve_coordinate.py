"""
Unit tests for input normalization in social.graze.atview.resolve.coordinate

Tests cover the accepted input forms (DIDs, handles, AT URIs, first-party
links), the endpoint outcome for foreign URLs, error kinds, round trips and
idempotency.
"""

import pytest

from social.graze.atview.resolve.coordinate import (
    Coordinate,
    EndpointReference,
    NormalizationError,
    NormalizationErrorKind,
    normalize,
    parse_at_uri,
)


class TestNormalizeAccepted:
    """Test suite for the accepted input forms."""

    def test_bare_did(self):
        assert normalize("did:plc:oisofpd7lj26yvgiivf3lxsi") == Coordinate(
            authority="did:plc:oisofpd7lj26yvgiivf3lxsi"
        )

    def test_bare_handle(self):
        assert normalize("alice.example.com") == Coordinate(authority="alice.example.com")

    def test_at_uri(self):
        result = normalize("at://did:plc:abc/app.bsky.feed.post/3l2zpbbhuvw2h")
        assert result == Coordinate(
            authority="did:plc:abc",
            collection="app.bsky.feed.post",
            rkey="3l2zpbbhuvw2h",
        )

    def test_at_uri_scheme_optional(self):
        assert normalize("did:plc:abc/app.bsky.feed.post/xyz") == normalize(
            "at://did:plc:abc/app.bsky.feed.post/xyz"
        )

    def test_authority_and_collection(self):
        result = normalize("at://alice.example.com/app.bsky.feed.like")
        assert result.collection == "app.bsky.feed.like"
        assert result.rkey is None

    def test_profile_url(self):
        assert normalize("https://bsky.app/profile/mary.my.id") == Coordinate(
            authority="mary.my.id"
        )

    def test_post_url(self):
        assert normalize(
            "https://bsky.app/profile/mary.my.id/post/3kenlltlvus2u"
        ) == Coordinate(
            authority="mary.my.id",
            collection="app.bsky.feed.post",
            rkey="3kenlltlvus2u",
        )

    def test_staging_post_url(self):
        result = normalize("https://main.bsky.dev/profile/did:plc:abc/post/xyz")
        assert result == Coordinate(
            authority="did:plc:abc", collection="app.bsky.feed.post", rkey="xyz"
        )

    def test_strips_whitespace(self):
        assert normalize("  alice.example.com \n") == Coordinate(
            authority="alice.example.com"
        )

    def test_mention_form(self):
        assert normalize("@alice.example.com") == Coordinate(authority="alice.example.com")

    def test_trailing_slash(self):
        assert normalize("at://alice.example.com/app.bsky.feed.post/") == Coordinate(
            authority="alice.example.com", collection="app.bsky.feed.post"
        )


class TestNormalizeEndpoint:
    """Test suite for absolute URLs outside the first-party front-ends."""

    @pytest.mark.parametrize(
        "value,host",
        [
            ("https://pds.bsky.mom", "pds.bsky.mom"),
            ("https://pds.bsky.mom/", "pds.bsky.mom"),
            ("http://localhost:2583", "localhost:2583"),
            ("https://example.com/profile/alice/post/xyz", "example.com"),
        ],
    )
    def test_foreign_url_is_endpoint(self, value, host):
        result = normalize(value)
        assert isinstance(result, EndpointReference)
        assert result.host == host
        assert result.route == f"/{host}"

    def test_first_party_url_is_not_endpoint(self):
        assert isinstance(normalize("https://bsky.app/profile/alice"), Coordinate)


class TestNormalizeErrors:
    """Test suite for normalization failures."""

    @pytest.mark.parametrize("value", ["", "   ", "at://", "@"])
    def test_empty(self, value):
        with pytest.raises(NormalizationError) as exc_info:
            normalize(value)
        assert exc_info.value.kind == NormalizationErrorKind.empty

    @pytest.mark.parametrize(
        "value",
        [
            "alice/app.bsky.feed.post/xyz/extra",
            "alice//xyz",
            "https://bsky.app/search?q=hello",
            "https://",
        ],
    )
    def test_malformed(self, value):
        with pytest.raises(NormalizationError) as exc_info:
            normalize(value)
        assert exc_info.value.kind == NormalizationErrorKind.malformed


class TestRoundTrip:
    """Test suite for string round trips and idempotency."""

    @pytest.mark.parametrize(
        "coordinate",
        [
            Coordinate(authority="did:plc:abc"),
            Coordinate(authority="alice.example.com", collection="app.bsky.graph.list"),
            Coordinate(
                authority="did:web:example.com",
                collection="com.whtwnd.blog.entry",
                rkey="3l2zpbbhuvw2h",
            ),
        ],
    )
    def test_round_trip(self, coordinate):
        assert normalize(str(coordinate)) == coordinate

    @pytest.mark.parametrize(
        "value",
        [
            "https://bsky.app/profile/mary.my.id/post/3kenlltlvus2u",
            "@alice.example.com",
            "did:plc:abc/app.bsky.feed.post/xyz/",
        ],
    )
    def test_idempotent(self, value):
        once = normalize(value)
        assert normalize(str(once)) == once

    def test_route(self):
        coordinate = Coordinate(
            authority="did:plc:abc", collection="app.bsky.feed.post", rkey="xyz"
        )
        assert coordinate.route == "/at/did:plc:abc/app.bsky.feed.post/xyz"
        assert coordinate.uri == "at://did:plc:abc/app.bsky.feed.post/xyz"


class TestParseAtUri:
    """Test suite for strict AT URI parsing."""

    def test_full_uri(self):
        assert parse_at_uri("at://did:plc:abc/app.bsky.feed.post/xyz") == Coordinate(
            authority="did:plc:abc", collection="app.bsky.feed.post", rkey="xyz"
        )

    @pytest.mark.parametrize(
        "value",
        [
            "at://did:plc:abc",
            "at://did:plc:abc/app.bsky.feed.post",
            "did:plc:abc/app.bsky.feed.post/xyz",
            "https://did:plc:abc/app.bsky.feed.post/xyz",
            "at://did:plc:abc/app.bsky.feed.post/xyz/extra",
        ],
    )
    def test_rejects_partial_uri(self, value):
        assert parse_at_uri(value) is None
