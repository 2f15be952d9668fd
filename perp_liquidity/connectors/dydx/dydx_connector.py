from typing import Any
from urllib.parse import quote

from ..base_connector import BaseVenueConnector, Exchange, NormalizedBook, build_book, parse_field_levels
from perp_liquidity.errors import MalformedBookError


def parse_dydx_book(raw: Any) -> NormalizedBook:
    # Indexer books carry no capture time, so the parse time is used
    if not isinstance(raw, dict) or not isinstance(raw.get('bids'), list) \
            or not isinstance(raw.get('asks'), list):
        raise MalformedBookError("Invalid dYdX order book response")

    return build_book(
        "dYdX",
        parse_field_levels(raw['bids'], 'price', 'size'),
        parse_field_levels(raw['asks'], 'price', 'size')
    )


class DydxConnector(BaseVenueConnector):
    exchange = Exchange.DYDX
    label = "dYdX"

    async def fetch_raw(self, symbol: str, **options) -> Any:
        return await self.http_client.get_json(
            f"{self.base_endpoint}/orderbooks/perpetualMarket/{quote(symbol, safe='')}"
        )

    def parse_book(self, raw: Any) -> NormalizedBook:
        return parse_dydx_book(raw)
