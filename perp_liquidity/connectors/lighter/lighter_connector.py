from typing import Any, Dict, List
import logging

from ..base_connector import BaseVenueConnector, BookLevel, Exchange, NormalizedBook, build_book, to_level
from .lighter_stream import LighterStreamClient
from .market_cache import LighterMarketCache
from perp_liquidity.config import LIGHTER_REST_ORDER_LIMIT
from perp_liquidity.errors import MalformedBookError

logger = logging.getLogger(__name__)


def aggregate_orders(orders: List[Any]) -> List[BookLevel]:
    """
    Lighter's orderBookOrders lists individual resting orders, so several
    entries can share a price. Sum their remaining size per price.
    """
    size_by_price: Dict[float, float] = {}
    for order in orders:
        if not isinstance(order, dict):
            continue
        level = to_level(order.get('price'), order.get('remaining_base_amount'))
        if level is None:
            continue
        size_by_price[level.price] = size_by_price.get(level.price, 0.0) + level.size

    return [BookLevel(price=price, size=size) for price, size in size_by_price.items()]


def parse_lighter_book(raw: Any) -> NormalizedBook:
    if not isinstance(raw, dict) or not isinstance(raw.get('bids'), list) \
            or not isinstance(raw.get('asks'), list):
        raise MalformedBookError("Invalid Lighter order book response")

    return build_book(
        "Lighter",
        aggregate_orders(raw['bids']),
        aggregate_orders(raw['asks'])
    )


class LighterConnector(BaseVenueConnector):
    """
    Lighter order books by market id.

    Native symbols are mapped to market ids through the shared
    LighterMarketCache. `fetch_stream_book` is the deeper, slower path used
    when the truncated REST page cannot fill every tier.
    """

    exchange = Exchange.LIGHTER
    label = "Lighter"

    def __init__(self, http_client=None, base_endpoint: str = None,
                 market_cache: LighterMarketCache = None, stream_client: LighterStreamClient = None,
                 order_limit: int = LIGHTER_REST_ORDER_LIMIT, **kwargs):
        super().__init__(http_client=http_client, base_endpoint=base_endpoint, **kwargs)
        self.market_cache = market_cache or LighterMarketCache(http_client, self.base_endpoint)
        self.stream_client = stream_client
        self.order_limit = order_limit

    async def fetch_raw(self, symbol: str, **options) -> Any:
        market_id = await self.market_cache.resolve_market_id(symbol)
        return await self.http_client.get_json(
            f"{self.base_endpoint}/api/v1/orderBookOrders",
            params={'market_id': market_id, 'limit': self.order_limit}
        )

    def parse_book(self, raw: Any) -> NormalizedBook:
        return parse_lighter_book(raw)

    async def fetch_stream_book(self, symbol: str) -> NormalizedBook:
        if self.stream_client is None:
            raise RuntimeError("Lighter stream client is not configured")
        market_id = await self.market_cache.resolve_market_id(symbol)
        logger.debug("Requesting Lighter stream snapshot for %s (market %s)", symbol, market_id)
        return await self.stream_client.fetch_snapshot(market_id)
