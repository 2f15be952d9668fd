from typing import Any

from ..base_connector import Exchange, NormalizedBook
from ..binance.binance_connector import BinanceConnector, parse_depth_snapshot
from perp_liquidity.config import ASTERDEX_DEPTH_LIMIT


def parse_asterdex_book(raw: Any) -> NormalizedBook:
    # AsterDEX mirrors the Binance futures depth payload
    return parse_depth_snapshot(raw, "AsterDEX")


class AsterdexConnector(BinanceConnector):
    exchange = Exchange.ASTERDEX
    label = "AsterDEX"
    depth_limit = ASTERDEX_DEPTH_LIMIT

    def parse_book(self, raw: Any) -> NormalizedBook:
        return parse_asterdex_book(raw)
