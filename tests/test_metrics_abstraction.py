"""
Unit Tests for Metrics Abstraction Layer

Test Coverage:
- MetricsClient interface implementations
- Backend selection via factory function
- Compatibility between implementations
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from social.graze.atview.app.metrics import (
    MetricsClient,
    NoOpMetricsClient,
    TelegrafCompatibilityClient,
    create_metrics_client,
)


class TestMetricsClientInterface:
    def test_interface_is_abstract(self):
        """MetricsClient should be abstract and not instantiable."""
        with pytest.raises(TypeError):
            MetricsClient()


class TestNoOpMetricsClient:
    @pytest.fixture
    def noop_client(self):
        return NoOpMetricsClient()

    def test_noop_calls(self, noop_client):
        """NoOp calls should not raise exceptions."""
        noop_client.increment("test.counter", 1, {"tag": "value"})
        noop_client.gauge("test.gauge", 42.5)
        noop_client.timer("test.timer", 0.001)

    @pytest.mark.asyncio
    async def test_noop_lifecycle(self, noop_client):
        await noop_client.connect()
        await noop_client.close()


class TestTelegrafCompatibilityClient:
    @pytest.fixture
    def mock_telegraf_client(self):
        mock = Mock()
        mock.connect = AsyncMock()
        mock.close = AsyncMock()
        return mock

    @pytest.fixture
    def telegraf_client(self, mock_telegraf_client):
        return TelegrafCompatibilityClient(mock_telegraf_client)

    def test_telegraf_increment(self, telegraf_client, mock_telegraf_client):
        telegraf_client.increment("atview.resolve.cache.hit", 3, {"method": "GET"})

        mock_telegraf_client.increment.assert_called_once_with(
            "atview.resolve.cache.hit", 3, tag_dict={"method": "GET"}
        )

    def test_telegraf_increment_no_tags(self, telegraf_client, mock_telegraf_client):
        telegraf_client.increment("test.counter")

        mock_telegraf_client.increment.assert_called_once_with(
            "test.counter", 1, tag_dict={}
        )

    def test_telegraf_gauge(self, telegraf_client, mock_telegraf_client):
        telegraf_client.gauge("test.gauge", 42.0, {"status": "ok"})

        mock_telegraf_client.gauge.assert_called_once_with(
            "test.gauge", 42.0, tag_dict={"status": "ok"}
        )

    def test_telegraf_timer(self, telegraf_client, mock_telegraf_client):
        telegraf_client.timer("atview.server.request.time", 1.234, {"path": "/"})

        mock_telegraf_client.timer.assert_called_once_with(
            "atview.server.request.time", 1.234, tag_dict={"path": "/"}
        )

    @pytest.mark.asyncio
    async def test_telegraf_lifecycle(self, telegraf_client, mock_telegraf_client):
        await telegraf_client.connect()
        await telegraf_client.close()

        mock_telegraf_client.connect.assert_awaited_once()
        mock_telegraf_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_telegraf_close_error_logged(self, telegraf_client, mock_telegraf_client):
        mock_telegraf_client.close.side_effect = OSError("closed")

        await telegraf_client.close()


class TestMetricsClientFactory:
    def test_factory_creates_noop_client(self):
        assert isinstance(create_metrics_client("none"), NoOpMetricsClient)

    def test_factory_case_insensitive(self):
        assert isinstance(create_metrics_client("NONE"), NoOpMetricsClient)

    @patch("social.graze.atview.app.metrics.TelegrafStatsdClient")
    def test_factory_creates_telegraf_client(self, mock_telegraf_class):
        client = create_metrics_client("telegraf", host="localhost", port=8125, debug=True)

        assert isinstance(client, TelegrafCompatibilityClient)
        assert client.client is mock_telegraf_class.return_value
        mock_telegraf_class.assert_called_once_with(host="localhost", port=8125, debug=True)

    def test_factory_uses_preconfigured_telegraf_client(self):
        mock_client = Mock()

        client = create_metrics_client("telegraf", telegraf_client=mock_client)

        assert client.client is mock_client

    def test_factory_handles_invalid_backend(self):
        with pytest.raises(ValueError, match="Invalid metrics backend: otel"):
            create_metrics_client("otel")
