"""
Shared test configuration and fixtures.

Provides a fake Redis client, a metrics client that records calls, and a
helper for building mocked aiohttp sessions.
"""

from typing import Any, Dict, List, Optional, Tuple, Union
from unittest.mock import AsyncMock

import fakeredis.aioredis
import pytest
import pytest_asyncio
from aiohttp import ClientResponse, ClientSession

from social.graze.atview.app.metrics import MetricsClient


class RecordingMetricsClient(MetricsClient):
    """Metrics client that keeps every call for assertions."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Union[int, float], Dict[str, Any]]] = []

    def increment(self, name, value=1, tag_dict=None) -> None:
        self.calls.append(("increment", name, value, tag_dict or {}))

    def gauge(self, name, value, tag_dict=None) -> None:
        self.calls.append(("gauge", name, value, tag_dict or {}))

    def timer(self, name, value, tag_dict=None) -> None:
        self.calls.append(("timer", name, value, tag_dict or {}))

    async def close(self) -> None:
        pass

    def names(self, kind: str = "increment") -> List[str]:
        return [name for (k, name, _, _) in self.calls if k == kind]


def mock_json_session(
    body: Any, status: int = 200, text: Optional[str] = None
) -> AsyncMock:
    """Build a ClientSession mock whose get() yields a single canned response."""
    mock_session = AsyncMock(spec=ClientSession)
    mock_response = AsyncMock(spec=ClientResponse)
    mock_response.status = status
    mock_response.json.return_value = body
    mock_response.text.return_value = text
    mock_session.get.return_value.__aenter__.return_value = mock_response
    return mock_session


@pytest.fixture
def metrics_client():
    return RecordingMetricsClient()


@pytest_asyncio.fixture
async def fake_redis_client():
    """Provide fake Redis client for unit tests."""
    client = fakeredis.aioredis.FakeRedis(decode_responses=False)
    yield client
    await client.flushall()
    await client.aclose()
