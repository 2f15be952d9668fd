from typing import Any

from ..base_connector import BaseVenueConnector, Exchange, NormalizedBook, build_book, parse_pair_levels
from perp_liquidity.config import BYBIT_DEPTH_LIMIT
from perp_liquidity.errors import MalformedBookError, VenueStatusError


def parse_bybit_book(raw: Any) -> NormalizedBook:
    """
    Parse a v5 orderbook envelope:
    {"retCode": 0, "retMsg": "OK", "result": {"ts": ms, "b": [[px, qty]], "a": [[px, qty]]}}

    A non-zero retCode fails with the venue's message before levels are
    inspected.
    """
    ret_code = raw.get('retCode') if isinstance(raw, dict) else None
    if not isinstance(ret_code, int) or isinstance(ret_code, bool):
        raise MalformedBookError("Invalid Bybit order book response")

    if ret_code != 0:
        raise VenueStatusError(f"Bybit error: {raw.get('retMsg') or 'unknown error'}")

    if not isinstance(raw.get('result'), dict):
        raise MalformedBookError("Invalid Bybit order book response")

    result = raw['result']
    if not isinstance(result.get('b'), list) or not isinstance(result.get('a'), list):
        raise MalformedBookError("Invalid Bybit order book levels")

    return build_book(
        "Bybit",
        parse_pair_levels(result['b']),
        parse_pair_levels(result['a']),
        result.get('ts')
    )


class BybitConnector(BaseVenueConnector):
    exchange = Exchange.BYBIT
    label = "Bybit"

    async def fetch_raw(self, symbol: str, **options) -> Any:
        return await self.http_client.get_json(
            f"{self.base_endpoint}/v5/market/orderbook",
            params={'category': 'linear', 'symbol': symbol, 'limit': BYBIT_DEPTH_LIMIT}
        )

    def parse_book(self, raw: Any) -> NormalizedBook:
        return parse_bybit_book(raw)
