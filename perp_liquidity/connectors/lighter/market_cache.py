from typing import Any, Callable, Dict, Optional
import asyncio
import logging
import time

from perp_liquidity.config import LIGHTER_MARKET_CACHE_TTL_SECONDS
from perp_liquidity.errors import MalformedBookError, UnknownMarketError

logger = logging.getLogger(__name__)


def parse_market_listing(data: Any) -> Dict[str, int]:
    """Build symbol -> market_id from an /api/v1/orderBooks response."""
    if isinstance(data, dict):
        # Handle wrapped response - try both 'order_books' and 'orderbooks'
        orderbooks = data.get('order_books', data.get('orderbooks'))
    else:
        orderbooks = data

    if not isinstance(orderbooks, list):
        raise MalformedBookError("Lighter market list is malformed")

    by_symbol = {}
    for orderbook in orderbooks:
        if not isinstance(orderbook, dict):
            continue
        symbol = orderbook.get('symbol')
        market_id = orderbook.get('market_id', orderbook.get('index'))  # Try both field names
        if not isinstance(symbol, str) or not symbol:
            continue
        if not isinstance(market_id, int) or isinstance(market_id, bool):
            continue
        by_symbol[symbol.upper()] = market_id
    return by_symbol


class LighterMarketCache:
    """
    Shared symbol -> market_id table for Lighter.

    Entries expire after `ttl` seconds and are refreshed lazily by the first
    caller that finds them stale. Concurrent callers wait on the same refresh
    instead of each hitting the listing endpoint.
    """

    def __init__(self, http_client, base_endpoint: str, ttl: float = LIGHTER_MARKET_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.http_client = http_client
        self.base_endpoint = base_endpoint.rstrip('/')
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, int] = {}
        self._expires_at: Optional[float] = None
        self._lock = asyncio.Lock()
        self.refresh_count = 0

    def is_fresh(self) -> bool:
        return self._expires_at is not None and self._clock() < self._expires_at

    async def refresh(self) -> None:
        data = await self.http_client.get_json(f"{self.base_endpoint}/api/v1/orderBooks")
        entries = parse_market_listing(data)
        self._entries = entries
        self._expires_at = self._clock() + self.ttl
        self.refresh_count += 1
        logger.debug("Refreshed Lighter market cache with %d markets", len(entries))

    async def _ensure_fresh(self) -> None:
        if self.is_fresh():
            return
        async with self._lock:
            # Another waiter may have refreshed while we queued on the lock
            if self.is_fresh():
                return
            await self.refresh()

    async def resolve_market_id(self, symbol: str) -> int:
        await self._ensure_fresh()
        market_id = self._entries.get(symbol.upper())
        if market_id is None:
            raise UnknownMarketError(f"Unknown Lighter market symbol: {symbol}")
        return market_id

    def invalidate(self) -> None:
        self._expires_at = None
