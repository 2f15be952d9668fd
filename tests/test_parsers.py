"""
Unit tests for the per-venue book parsers and the venue registry.
"""

import pytest

from perp_liquidity.connectors.asterdex.asterdex_connector import parse_asterdex_book
from perp_liquidity.connectors.base_connector import BookLevel, Exchange
from perp_liquidity.connectors.binance.binance_connector import parse_binance_book
from perp_liquidity.connectors.bybit.bybit_connector import parse_bybit_book
from perp_liquidity.connectors.dydx.dydx_connector import parse_dydx_book
from perp_liquidity.connectors.hyperliquid.hyperliquid_connector import parse_hyperliquid_book
from perp_liquidity.connectors.lighter.lighter_connector import LighterConnector, parse_lighter_book
from perp_liquidity.connectors.lighter.lighter_stream import parse_lighter_stream_book
from perp_liquidity.connectors.registry import BOOK_PARSERS, CONNECTOR_CLASSES, create_connectors, get_parser
from perp_liquidity.config import EXCHANGE_LABELS, VenueEndpoints
from perp_liquidity.errors import EmptyBookError, MalformedBookError, StreamSnapshotError, VenueStatusError

from fakes import FakeHttpClient


class TestHyperliquidParser:
    """l2Book responses."""

    def test_sorts_and_keeps_timestamp(self):
        raw = {
            "coin": "BTC",
            "time": 1_700_000_000_123,
            "levels": [
                [{"px": "100", "sz": "1", "n": 1}, {"px": "101", "sz": "2", "n": 3}],
                [{"px": "103", "sz": "1", "n": 1}, {"px": "102", "sz": "4", "n": 2}],
            ],
        }
        book = parse_hyperliquid_book(raw)

        assert [level.price for level in book.bids] == [101.0, 100.0]
        assert [level.price for level in book.asks] == [102.0, 103.0]
        assert book.asks[0] == BookLevel(102.0, 4.0)
        assert book.timestamp == 1_700_000_000_123

    def test_degenerate_levels_dropped(self):
        """Zero, negative and non-numeric levels are filtered out."""
        raw = {
            "time": 1,
            "levels": [
                [{"px": "0", "sz": "1"}, {"px": "99", "sz": "-1"}, {"px": "abc", "sz": "1"}, {"px": "98", "sz": "1"}],
                [{"px": "101", "sz": "0"}, {"px": "102", "sz": "1"}],
            ],
        }
        book = parse_hyperliquid_book(raw)

        assert book.bids == (BookLevel(98.0, 1.0),)
        assert book.asks == (BookLevel(102.0, 1.0),)

    def test_missing_levels_is_malformed(self):
        with pytest.raises(MalformedBookError, match="Invalid Hyperliquid order book response"):
            parse_hyperliquid_book({"levels": [[]]})

    def test_empty_side(self):
        with pytest.raises(EmptyBookError, match="Hyperliquid order book is empty"):
            parse_hyperliquid_book({"levels": [[], [{"px": "1", "sz": "1"}]]})


class TestDydxParser:
    """Indexer orderbook responses."""

    def test_parses_and_stamps_parse_time(self):
        raw = {
            "bids": [{"price": "99.5", "size": "2"}],
            "asks": [{"price": "100.5", "size": "3"}],
        }
        book = parse_dydx_book(raw)

        assert book.bids == (BookLevel(99.5, 2.0),)
        assert book.asks == (BookLevel(100.5, 3.0),)
        assert book.timestamp > 1_600_000_000_000

    def test_non_list_sides_are_malformed(self):
        with pytest.raises(MalformedBookError, match="Invalid dYdX order book response"):
            parse_dydx_book({"bids": None, "asks": []})


class TestDepthSnapshotParsers:
    """Binance and AsterDEX share the futures depth payload."""

    @pytest.fixture
    def raw(self):
        return {
            "lastUpdateId": 1,
            "E": 1_700_000_000_500,
            "T": 1_700_000_000_400,
            "bids": [["99.0", "1.5"], ["99.5", "1.0"]],
            "asks": [["100.5", "2.0"], ["100.0", "0.5"]],
        }

    def test_binance_uses_transaction_time(self, raw):
        book = parse_binance_book(raw)

        assert book.bids[0] == BookLevel(99.5, 1.0)
        assert book.asks[0] == BookLevel(100.0, 0.5)
        assert book.timestamp == 1_700_000_000_400

    def test_asterdex_matches_binance(self, raw):
        assert parse_asterdex_book(raw) == parse_binance_book(raw)

    def test_asterdex_error_names_venue(self):
        with pytest.raises(MalformedBookError, match="Invalid AsterDEX order book response"):
            parse_asterdex_book({"bids": []})

    def test_short_pairs_dropped(self, raw):
        raw["bids"].append(["98.0"])
        book = parse_binance_book(raw)

        assert len(book.bids) == 2


class TestBybitParser:
    """v5 orderbook envelopes."""

    def test_parses_result(self):
        raw = {
            "retCode": 0,
            "retMsg": "OK",
            "result": {"s": "BTCUSDT", "ts": 1_700_000_000_999, "b": [["99", "1"]], "a": [["101", "2"]]},
        }
        book = parse_bybit_book(raw)

        assert book.bids == (BookLevel(99.0, 1.0),)
        assert book.asks == (BookLevel(101.0, 2.0),)
        assert book.timestamp == 1_700_000_000_999

    def test_status_error_wins_over_shape(self):
        """A non-zero retCode is reported even when result is missing."""
        with pytest.raises(VenueStatusError, match="Bybit error: Invalid symbol"):
            parse_bybit_book({"retCode": 10001, "retMsg": "Invalid symbol"})

    def test_status_error_without_message(self):
        with pytest.raises(VenueStatusError, match="Bybit error: unknown error"):
            parse_bybit_book({"retCode": 10001, "retMsg": ""})

    def test_missing_ret_code_is_malformed(self):
        with pytest.raises(MalformedBookError, match="Invalid Bybit order book response"):
            parse_bybit_book({"result": {"b": [], "a": []}})

    def test_bad_levels(self):
        with pytest.raises(MalformedBookError, match="Invalid Bybit order book levels"):
            parse_bybit_book({"retCode": 0, "result": {"b": [["1", "1"]], "a": None}})


class TestLighterParsers:
    """REST orders and stream snapshots."""

    def test_same_price_orders_are_aggregated(self):
        raw = {
            "bids": [
                {"price": "100", "remaining_base_amount": "1"},
                {"price": "100", "remaining_base_amount": "2"},
                {"price": "99", "remaining_base_amount": "1"},
            ],
            "asks": [{"price": "101", "remaining_base_amount": "0.5"}],
        }
        book = parse_lighter_book(raw)

        assert book.bids == (BookLevel(100.0, 3.0), BookLevel(99.0, 1.0))
        assert book.asks == (BookLevel(101.0, 0.5),)

    def test_rest_malformed(self):
        with pytest.raises(MalformedBookError, match="Invalid Lighter order book response"):
            parse_lighter_book({"bids": []})

    def test_stream_snapshot(self):
        message = {
            "channel": "order_book:1",
            "order_book": {
                "bids": [{"price": "3000.1", "size": "2"}],
                "asks": [{"price": "3000.5", "size": "1"}],
            },
        }
        book = parse_lighter_stream_book(message)

        assert book.bids == (BookLevel(3000.1, 2.0),)
        assert book.asks == (BookLevel(3000.5, 1.0),)

    def test_stream_empty_snapshot(self):
        with pytest.raises(StreamSnapshotError, match="snapshot is empty"):
            parse_lighter_stream_book({"order_book": {"bids": [{"price": "1", "size": "1"}], "asks": []}})

    def test_stream_message_without_book(self):
        with pytest.raises(StreamSnapshotError):
            parse_lighter_stream_book({"type": "connected"})


def hyperliquid_payload(bids, asks):
    return {"time": 1, "levels": [[{"px": p, "sz": s} for p, s in bids], [{"px": p, "sz": s} for p, s in asks]]}


def dydx_payload(bids, asks):
    return {"bids": [{"price": p, "size": s} for p, s in bids], "asks": [{"price": p, "size": s} for p, s in asks]}


def lighter_payload(bids, asks):
    return {
        "bids": [{"price": p, "remaining_base_amount": s} for p, s in bids],
        "asks": [{"price": p, "remaining_base_amount": s} for p, s in asks],
    }


def depth_payload(bids, asks):
    return {"T": 1, "bids": [list(level) for level in bids], "asks": [list(level) for level in asks]}


def bybit_payload(bids, asks):
    return {
        "retCode": 0,
        "retMsg": "OK",
        "result": {"ts": 1, "b": [list(level) for level in bids], "a": [list(level) for level in asks]},
    }


PAYLOAD_BUILDERS = {
    Exchange.HYPERLIQUID: hyperliquid_payload,
    Exchange.DYDX: dydx_payload,
    Exchange.LIGHTER: lighter_payload,
    Exchange.ASTERDEX: depth_payload,
    Exchange.BINANCE: depth_payload,
    Exchange.BYBIT: bybit_payload,
}


class TestDegenerateLevels:
    """Every venue drops non-positive levels and fails when nothing is left."""

    @pytest.mark.parametrize("exchange", list(BOOK_PARSERS))
    def test_degenerate_level_excluded(self, exchange):
        raw = PAYLOAD_BUILDERS[exchange](
            [("100", "1"), ("99", "0"), ("98", "-1"), ("0", "5")],
            [("101", "2"), ("-101", "1")]
        )
        book = BOOK_PARSERS[exchange](raw)

        assert book.bids == (BookLevel(100.0, 1.0),)
        assert book.asks == (BookLevel(101.0, 2.0),)

    @pytest.mark.parametrize("exchange", list(BOOK_PARSERS))
    def test_only_degenerate_levels_is_empty(self, exchange):
        raw = PAYLOAD_BUILDERS[exchange]([("0", "1"), ("99", "-2")], [("101", "1")])

        with pytest.raises(EmptyBookError, match=f"{EXCHANGE_LABELS[exchange]} order book is empty"):
            BOOK_PARSERS[exchange](raw)

    @pytest.mark.parametrize("exchange", list(BOOK_PARSERS))
    def test_degenerate_asks_are_empty(self, exchange):
        raw = PAYLOAD_BUILDERS[exchange]([("100", "1")], [("101", "0"), ("-1", "3")])

        with pytest.raises(EmptyBookError, match=f"{EXCHANGE_LABELS[exchange]} order book is empty"):
            BOOK_PARSERS[exchange](raw)


class TestRegistry:
    """Closed venue registry."""

    def test_every_venue_registered(self):
        assert set(BOOK_PARSERS) == set(Exchange)
        assert set(CONNECTOR_CLASSES) == set(Exchange)

    def test_get_parser(self):
        assert get_parser(Exchange.BYBIT) is parse_bybit_book

    def test_create_connectors_shares_http_client(self):
        http_client = FakeHttpClient()
        endpoints = VenueEndpoints(lighter_stream="wss://stream.example/stream")
        connectors = create_connectors(endpoints, http_client=http_client)

        assert set(connectors) == set(Exchange)
        for exchange, connector in connectors.items():
            assert connector.exchange == exchange
            assert connector.http_client is http_client

        lighter = connectors[Exchange.LIGHTER]
        assert isinstance(lighter, LighterConnector)
        assert lighter.stream_client.url == "wss://stream.example/stream"
        assert connectors[Exchange.DYDX].base_endpoint == "https://indexer.dydx.trade/v4"
