from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum
import math
import time

from perp_liquidity.errors import EmptyBookError


class Exchange(Enum):
    HYPERLIQUID = "hyperliquid"
    DYDX = "dydx"
    LIGHTER = "lighter"
    ASTERDEX = "asterdex"
    BINANCE = "binance"
    BYBIT = "bybit"


class BookSide(Enum):
    BID = "bid"
    ASK = "ask"


@dataclass(frozen=True)
class BookLevel:
    price: float
    size: float


@dataclass(frozen=True)
class NormalizedBook:
    """
    Venue-agnostic order book built fresh from one raw response.
    Bids are strictly descending by price, asks strictly ascending.
    """
    bids: Tuple[BookLevel, ...]
    asks: Tuple[BookLevel, ...]
    timestamp: int                    # Epoch milliseconds


@dataclass(frozen=True)
class SlippageResult:
    notional: float                   # Target USD size
    vwap: float                       # 0 when nothing was consumed
    slippage_bps: float               # Positive means adverse execution
    filled: bool
    filled_notional: float


@dataclass(frozen=True)
class AnalysisMeta:
    is_aggregated_estimate: Optional[bool] = None
    hyperliquid_n_sig_figs: Optional[int] = None
    # Granularity used per tier index, e.g. (5, 5, 4, 3)
    hyperliquid_n_sig_figs_per_tier: Optional[Tuple[int, ...]] = None
    lighter_ws_fallback: Optional[bool] = None


@dataclass(frozen=True)
class LiquidityAnalysis:
    ticker: str
    exchange: Exchange
    timestamp: int                    # Book capture time, epoch ms
    collected_at: str                 # Wall-clock ISO-8601 at analysis time
    best_bid: float
    best_ask: float
    mid_price: float
    spread: float
    spread_bps: float
    bids: Tuple[SlippageResult, ...]
    asks: Tuple[SlippageResult, ...]
    meta: Optional[AnalysisMeta] = None


@dataclass
class ExchangeStatus:
    exchange: Exchange
    loading: bool = True
    error: Optional[str] = None
    last_updated: Optional[int] = None
    analysis: Optional[LiquidityAnalysis] = None
    book: Optional[NormalizedBook] = None


def now_ms() -> int:
    return int(time.time() * 1000)


def to_level(price: Any, size: Any) -> Optional[BookLevel]:
    """Coerce a raw (price, size) pair, returning None for degenerate levels."""
    try:
        px = float(price)
        sz = float(size)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(px) and math.isfinite(sz)) or px <= 0 or sz <= 0:
        return None
    return BookLevel(price=px, size=sz)


def parse_pair_levels(levels: Iterable[Any]) -> List[BookLevel]:
    """Levels encoded as [price, qty] tuples (Binance-style depth)."""
    parsed = []
    for entry in levels:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            continue
        level = to_level(entry[0], entry[1])
        if level is not None:
            parsed.append(level)
    return parsed


def parse_field_levels(levels: Iterable[Any], price_key: str, size_key: str) -> List[BookLevel]:
    """Levels encoded as objects with named price and size fields."""
    parsed = []
    for entry in levels:
        if not isinstance(entry, dict):
            continue
        level = to_level(entry.get(price_key), entry.get(size_key))
        if level is not None:
            parsed.append(level)
    return parsed


def venue_timestamp(value: Any) -> int:
    # bool is an int subclass but never a capture time
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return int(value)
    return now_ms()


def build_book(venue_label: str, bids: List[BookLevel], asks: List[BookLevel],
               timestamp: Any = None) -> NormalizedBook:
    """Sort both sides and enforce the non-empty invariant."""
    sorted_bids = tuple(sorted(bids, key=lambda level: level.price, reverse=True))
    sorted_asks = tuple(sorted(asks, key=lambda level: level.price))

    if not sorted_bids or not sorted_asks:
        raise EmptyBookError(f"{venue_label} order book is empty")

    return NormalizedBook(
        bids=sorted_bids,
        asks=sorted_asks,
        timestamp=venue_timestamp(timestamp)
    )


BookParser = Callable[[Any], NormalizedBook]


class BaseVenueConnector(ABC):
    """
    One venue's fetch + parse pipeline.

    Subclasses know how to request the raw order book for a native symbol and
    how to turn the venue's payload into a NormalizedBook. Symbol resolution
    stays in exchange_symbol_reference so connectors never format symbols.
    """

    exchange: Exchange
    label: str

    def __init__(self, http_client=None, base_endpoint: str = None, **kwargs):
        self.http_client = http_client
        self.base_endpoint = base_endpoint.rstrip('/') if base_endpoint else None
        self.extra_params = kwargs

    @abstractmethod
    async def fetch_raw(self, symbol: str, **options) -> Any:
        """Return the unparsed JSON order book body for a native symbol."""
        pass

    @abstractmethod
    def parse_book(self, raw: Any) -> NormalizedBook:
        pass

    async def fetch_book(self, symbol: str, **options) -> NormalizedBook:
        raw = await self.fetch_raw(symbol, **options)
        return self.parse_book(raw)
