from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from perp_liquidity.config import NOTIONAL_TIERS
from perp_liquidity.connectors.base_connector import (
    AnalysisMeta, BookLevel, BookSide, Exchange, LiquidityAnalysis, NormalizedBook, SlippageResult
)
from perp_liquidity.errors import EmptyBookError

BPS = 10_000


def compute_slippage(levels: Iterable[BookLevel], target_notional: float, mid_price: float,
                     side: BookSide) -> SlippageResult:
    """
    Walk levels best-first and report what executing `target_notional` USD
    would cost against `mid_price`.

    Levels must already be sorted best price first. Slippage is signed so that
    adverse execution is positive on both sides.
    """
    remaining = target_notional
    total_qty = 0.0
    total_cost = 0.0

    for level in levels:
        if remaining <= 0:
            break

        level_notional = level.price * level.size
        fill_notional = min(remaining, level_notional)

        total_cost += fill_notional
        total_qty += fill_notional / level.price
        remaining -= fill_notional

    vwap = total_cost / total_qty if total_qty > 0 else 0.0

    slippage_bps = 0.0
    if vwap > 0:
        if side == BookSide.ASK:
            slippage_bps = (vwap - mid_price) / mid_price * BPS
        else:
            slippage_bps = (mid_price - vwap) / mid_price * BPS

    return SlippageResult(
        notional=target_notional,
        vwap=round(vwap, 6),
        slippage_bps=round(slippage_bps, 2),
        filled=remaining <= 0,
        filled_notional=round(total_cost, 2)
    )


def analyze_book(ticker: str, exchange: Exchange, book: NormalizedBook,
                 collected_at: Optional[datetime] = None, meta: Optional[AnalysisMeta] = None,
                 tiers: Sequence[float] = NOTIONAL_TIERS) -> LiquidityAnalysis:
    if not book.bids or not book.asks:
        raise EmptyBookError(f"Empty order book for {exchange.value}")

    collected_at = collected_at or datetime.now(timezone.utc)

    best_bid = book.bids[0].price
    best_ask = book.asks[0].price
    mid_price = (best_bid + best_ask) / 2
    spread = best_ask - best_bid

    return LiquidityAnalysis(
        ticker=ticker,
        exchange=exchange,
        timestamp=book.timestamp,
        collected_at=collected_at.isoformat(),
        best_bid=best_bid,
        best_ask=best_ask,
        mid_price=round(mid_price, 6),
        spread=round(spread, 6),
        spread_bps=round(spread / mid_price * BPS, 2),
        bids=tuple(compute_slippage(book.bids, tier, mid_price, BookSide.BID) for tier in tiers),
        asks=tuple(compute_slippage(book.asks, tier, mid_price, BookSide.ASK) for tier in tiers),
        meta=meta
    )


def has_partial_fill(analysis: LiquidityAnalysis) -> bool:
    return any(not result.filled for result in analysis.bids + analysis.asks)
