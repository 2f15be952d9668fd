"""
Closed venue registry.

The venue set is fixed, so dispatch is a plain mapping from Exchange to the
connector class and its pure book parser.
"""

from typing import Dict, Optional, Type

from .asterdex.asterdex_connector import AsterdexConnector, parse_asterdex_book
from .base_connector import BaseVenueConnector, BookParser, Exchange
from .binance.binance_connector import BinanceConnector, parse_binance_book
from .bybit.bybit_connector import BybitConnector, parse_bybit_book
from .dydx.dydx_connector import DydxConnector, parse_dydx_book
from .hyperliquid.hyperliquid_connector import HyperliquidConnector, parse_hyperliquid_book
from .lighter.lighter_connector import LighterConnector, parse_lighter_book
from .lighter.lighter_stream import LighterStreamClient
from .lighter.market_cache import LighterMarketCache
from perp_liquidity.config import VenueEndpoints
from perp_liquidity.http_client import HttpClient

BOOK_PARSERS: Dict[Exchange, BookParser] = {
    Exchange.HYPERLIQUID: parse_hyperliquid_book,
    Exchange.DYDX: parse_dydx_book,
    Exchange.LIGHTER: parse_lighter_book,
    Exchange.ASTERDEX: parse_asterdex_book,
    Exchange.BINANCE: parse_binance_book,
    Exchange.BYBIT: parse_bybit_book,
}

CONNECTOR_CLASSES: Dict[Exchange, Type[BaseVenueConnector]] = {
    Exchange.HYPERLIQUID: HyperliquidConnector,
    Exchange.DYDX: DydxConnector,
    Exchange.LIGHTER: LighterConnector,
    Exchange.ASTERDEX: AsterdexConnector,
    Exchange.BINANCE: BinanceConnector,
    Exchange.BYBIT: BybitConnector,
}


def get_parser(exchange: Exchange) -> BookParser:
    return BOOK_PARSERS[exchange]


def create_connectors(endpoints: Optional[VenueEndpoints] = None,
                      http_client: Optional[HttpClient] = None) -> Dict[Exchange, BaseVenueConnector]:
    """Build one connector per venue sharing a single HTTP client."""
    endpoints = endpoints or VenueEndpoints()
    http_client = http_client or HttpClient(timeout=endpoints.http_timeout, proxy_prefix=endpoints.proxy_prefix)

    connectors = {}
    for exchange, connector_class in CONNECTOR_CLASSES.items():
        if exchange == Exchange.LIGHTER:
            connectors[exchange] = LighterConnector(
                http_client=http_client,
                base_endpoint=endpoints.lighter,
                market_cache=LighterMarketCache(http_client, endpoints.lighter),
                stream_client=LighterStreamClient(endpoints.lighter_stream)
            )
        else:
            connectors[exchange] = connector_class(
                http_client=http_client,
                base_endpoint=endpoints.for_exchange(exchange)
            )
    return connectors
