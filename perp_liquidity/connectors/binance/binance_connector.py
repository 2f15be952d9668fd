from typing import Any

from ..base_connector import BaseVenueConnector, Exchange, NormalizedBook, build_book, parse_pair_levels
from perp_liquidity.config import BINANCE_DEPTH_LIMIT
from perp_liquidity.errors import MalformedBookError


def parse_depth_snapshot(raw: Any, venue_label: str) -> NormalizedBook:
    """
    Parse a USD-M futures depth snapshot:
    {"E": event ms, "T": transaction ms, "bids": [[px, qty]], "asks": [[px, qty]]}
    """
    if not isinstance(raw, dict) or not isinstance(raw.get('bids'), list) \
            or not isinstance(raw.get('asks'), list):
        raise MalformedBookError(f"Invalid {venue_label} order book response")

    return build_book(
        venue_label,
        parse_pair_levels(raw['bids']),
        parse_pair_levels(raw['asks']),
        raw.get('T')
    )


def parse_binance_book(raw: Any) -> NormalizedBook:
    return parse_depth_snapshot(raw, "Binance")


class BinanceConnector(BaseVenueConnector):
    exchange = Exchange.BINANCE
    label = "Binance"
    depth_limit = BINANCE_DEPTH_LIMIT

    async def fetch_raw(self, symbol: str, **options) -> Any:
        return await self.http_client.get_json(
            f"{self.base_endpoint}/fapi/v1/depth",
            params={'symbol': symbol, 'limit': self.depth_limit}
        )

    def parse_book(self, raw: Any) -> NormalizedBook:
        return parse_binance_book(raw)
