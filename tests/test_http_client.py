"""
Unit tests for the shared JSON transport.
"""

from urllib.parse import unquote

import pytest
import requests

from perp_liquidity.connectors.binance.binance_connector import BinanceConnector
from perp_liquidity.errors import UpstreamError
from perp_liquidity.http_client import HttpClient

from fakes import FakeResponse, FakeSession


def make_client(responses, **kwargs) -> HttpClient:
    return HttpClient(session=FakeSession(responses), retry_delay=0, **kwargs)


class TestRequestJson:
    """Status handling and retries."""

    @pytest.mark.asyncio
    async def test_returns_json(self):
        client = make_client([FakeResponse(200, {"ok": True})])

        assert await client.get_json("https://venue.example/book", params={"symbol": "BTC"}) == {"ok": True}

        method, url, kwargs = client.session.requests[0]
        assert method == "GET"
        assert url == "https://venue.example/book"
        assert kwargs["params"] == {"symbol": "BTC"}

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        client = make_client([FakeResponse(200, [])])

        await client.post_json("https://venue.example/info", {"type": "l2Book"})

        method, _, kwargs = client.session.requests[0]
        assert method == "POST"
        assert kwargs["json"] == {"type": "l2Book"}
        assert kwargs["headers"]["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_retries_once_on_server_error(self):
        client = make_client([FakeResponse(503), FakeResponse(200, {"ok": True})])

        assert await client.get_json("https://venue.example/book") == {"ok": True}
        assert len(client.session.requests) == 2

    @pytest.mark.asyncio
    async def test_retries_once_on_throttle(self):
        client = make_client([FakeResponse(429), FakeResponse(429)])

        with pytest.raises(UpstreamError, match="HTTP 429 from https://venue.example/book") as exc_info:
            await client.get_json("https://venue.example/book")

        assert exc_info.value.status_code == 429
        assert len(client.session.requests) == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        client = make_client([FakeResponse(404)])

        with pytest.raises(UpstreamError, match="HTTP 404"):
            await client.get_json("https://venue.example/book")

        assert len(client.session.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_failure_wrapped(self):
        client = make_client([requests.ConnectionError("connection refused")])

        with pytest.raises(UpstreamError, match="connection refused"):
            await client.get_json("https://venue.example/book")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = make_client([FakeResponse(200, invalid_json=True)])

        with pytest.raises(UpstreamError, match="Invalid JSON"):
            await client.get_json("https://venue.example/book")


class TestProxy:
    """Optional URL proxy prefix."""

    def test_without_prefix(self):
        assert HttpClient(session=FakeSession([])).with_proxy("https://a.example/x") == "https://a.example/x"

    @pytest.mark.asyncio
    async def test_prefix_wraps_encoded_url(self):
        client = make_client([FakeResponse(200, {})], proxy_prefix="https://proxy.example/?url=")

        await client.get_json("https://api.bybit.com/v5?x=1")

        _, url, _ = client.session.requests[0]
        assert url == "https://proxy.example/?url=https%3A%2F%2Fapi.bybit.com%2Fv5%3Fx%3D1"

    @pytest.mark.asyncio
    async def test_query_travels_inside_proxied_target(self):
        """Connector params end up in the forwarded URL, not on the proxy."""
        client = make_client([FakeResponse(200, {})], proxy_prefix="https://proxy.example/?url=")
        connector = BinanceConnector(http_client=client, base_endpoint="https://fapi.binance.com")

        await connector.fetch_raw("BTCUSDT")

        _, url, kwargs = client.session.requests[0]
        assert kwargs["params"] is None
        assert url.startswith("https://proxy.example/?url=")
        target = unquote(url[len("https://proxy.example/?url="):])
        assert target == "https://fapi.binance.com/fapi/v1/depth?symbol=BTCUSDT&limit=1000"

    @pytest.mark.asyncio
    async def test_params_passed_through_without_proxy(self):
        client = make_client([FakeResponse(200, {})])

        await client.get_json("https://venue.example/book", params={"limit": 5})

        _, url, kwargs = client.session.requests[0]
        assert url == "https://venue.example/book"
        assert kwargs["params"] == {"limit": 5}

    def test_close_closes_session(self):
        client = make_client([])
        client.close()

        assert client.session.closed is True
