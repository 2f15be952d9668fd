"""
Liquidity monitor configuration.

Tracked tickers, tiers and the poll interval are compiled in. Venue endpoints
can be overridden from the environment (the CLI loads `.env.local` first):

    HYPERLIQUID_BASE_ENDPOINT   default https://api.hyperliquid.xyz
    DYDX_BASE_ENDPOINT          default https://indexer.dydx.trade/v4
    LIGHTER_BASE_ENDPOINT       default https://mainnet.zklighter.elliot.ai
    LIGHTER_STREAM_ENDPOINT     default wss://mainnet.zklighter.elliot.ai/stream
    ASTERDEX_BASE_ENDPOINT      default https://fapi.asterdex.com
    BINANCE_BASE_ENDPOINT       default https://fapi.binance.com
    BYBIT_BASE_ENDPOINT         default https://api.bybit.com
    LIQUIDITY_HTTP_PROXY_PREFIX optional, prepended to the URL-encoded target
    LIQUIDITY_HTTP_TIMEOUT      seconds, default 10
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import os

from perp_liquidity.connectors.base_connector import Exchange

NOTIONAL_TIERS: Tuple[int, ...] = (1_000, 10_000, 100_000, 1_000_000)
POLL_INTERVAL_MS = 1_500

# Canonical venue order used for status tables and listings
EXCHANGES: Tuple[Exchange, ...] = (
    Exchange.HYPERLIQUID,
    Exchange.DYDX,
    Exchange.LIGHTER,
    Exchange.ASTERDEX,
    Exchange.BINANCE,
    Exchange.BYBIT,
)

EXCHANGE_LABELS: Dict[Exchange, str] = {
    Exchange.HYPERLIQUID: "Hyperliquid",
    Exchange.DYDX: "dYdX",
    Exchange.LIGHTER: "Lighter",
    Exchange.ASTERDEX: "AsterDEX",
    Exchange.BINANCE: "Binance",
    Exchange.BYBIT: "Bybit",
}

# Finest first; coarser buckets expose more depth per level
HYPERLIQUID_SIG_FIGS: Tuple[int, ...] = (5, 4, 3, 2)

LIGHTER_REST_ORDER_LIMIT = 250
LIGHTER_MARKET_CACHE_TTL_SECONDS = 5 * 60
LIGHTER_STREAM_TIMEOUT_SECONDS = 8.0

HTTP_RETRY_COUNT = 1
HTTP_RETRY_DELAY_SECONDS = 0.25

ASTERDEX_DEPTH_LIMIT = 1000
BINANCE_DEPTH_LIMIT = 1000
BYBIT_DEPTH_LIMIT = 500


@dataclass(frozen=True)
class VenueEndpoints:
    hyperliquid: str = "https://api.hyperliquid.xyz"
    dydx: str = "https://indexer.dydx.trade/v4"
    lighter: str = "https://mainnet.zklighter.elliot.ai"
    lighter_stream: str = "wss://mainnet.zklighter.elliot.ai/stream"
    asterdex: str = "https://fapi.asterdex.com"
    binance: str = "https://fapi.binance.com"
    bybit: str = "https://api.bybit.com"
    proxy_prefix: Optional[str] = None
    http_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "VenueEndpoints":
        defaults = cls()
        timeout = os.getenv('LIQUIDITY_HTTP_TIMEOUT')
        return cls(
            hyperliquid=os.getenv('HYPERLIQUID_BASE_ENDPOINT') or defaults.hyperliquid,
            dydx=os.getenv('DYDX_BASE_ENDPOINT') or defaults.dydx,
            lighter=os.getenv('LIGHTER_BASE_ENDPOINT') or defaults.lighter,
            lighter_stream=os.getenv('LIGHTER_STREAM_ENDPOINT') or defaults.lighter_stream,
            asterdex=os.getenv('ASTERDEX_BASE_ENDPOINT') or defaults.asterdex,
            binance=os.getenv('BINANCE_BASE_ENDPOINT') or defaults.binance,
            bybit=os.getenv('BYBIT_BASE_ENDPOINT') or defaults.bybit,
            proxy_prefix=os.getenv('LIQUIDITY_HTTP_PROXY_PREFIX') or None,
            http_timeout=float(timeout) if timeout else defaults.http_timeout,
        )

    def for_exchange(self, exchange: Exchange) -> str:
        return getattr(self, exchange.value)
