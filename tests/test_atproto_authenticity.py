"""
Unit tests for the record authenticity boundary in social.graze.atview.atproto.authenticity
"""

import pytest
from unittest.mock import AsyncMock, patch

from social.graze.atview.atproto.authenticity import authenticate_record
from social.graze.atview.atproto.pds import RecordOutput

RECORD = RecordOutput(
    uri="at://did:plc:abc123/app.bsky.feed.post/xyz",
    cid="bafyrecord",
    value={"text": "hello world"},
)
DOCUMENT = {"id": "did:plc:abc123"}


class TestAuthenticateRecord:
    @pytest.mark.asyncio
    async def test_no_verifier(self):
        assert await authenticate_record(None, RECORD, DOCUMENT) is None

    @pytest.mark.asyncio
    async def test_no_document(self):
        authenticator = AsyncMock(return_value=True)

        assert await authenticate_record(authenticator, RECORD, None) is None
        authenticator.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_cid(self):
        record = RECORD.model_copy(update={"cid": None})
        assert await authenticate_record(AsyncMock(return_value=True), record, DOCUMENT) is None

    @pytest.mark.asyncio
    async def test_verified(self):
        authenticator = AsyncMock(return_value=True)

        assert await authenticate_record(authenticator, RECORD, DOCUMENT) is True
        authenticator.assert_awaited_once_with(
            RECORD.uri, "bafyrecord", {"text": "hello world"}, DOCUMENT
        )

    @pytest.mark.asyncio
    async def test_rejected(self):
        assert await authenticate_record(AsyncMock(return_value=False), RECORD, DOCUMENT) is False

    @pytest.mark.asyncio
    @patch("social.graze.atview.atproto.authenticity.sentry_sdk")
    async def test_verifier_raises(self, mock_sentry):
        authenticator = AsyncMock(side_effect=ValueError("bad signature"))

        assert await authenticate_record(authenticator, RECORD, DOCUMENT) is False
        mock_sentry.capture_exception.assert_called_once()
