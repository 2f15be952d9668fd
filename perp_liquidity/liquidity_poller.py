"""
Liquidity poll orchestration.

Every interval the poller fetches, parses and analyzes the active ticker on
each venue that lists it, concurrently, and applies all venue outcomes only
once every pipeline has settled. Two venues get reconciliation strategies:

- Hyperliquid is re-requested at coarser price aggregation (nSigFigs) while
  any notional tier remains unfilled; per tier, the finest granularity that
  fills it wins.
- Lighter falls back from the truncated REST page to a one-shot streaming
  snapshot when the REST book cannot fill every tier.

Both strategies are best effort: their failures degrade to the best result
already in hand and are never surfaced as venue errors.
"""

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Dict, List, Optional, Sequence
import asyncio
import logging

from perp_liquidity.config import EXCHANGES, HYPERLIQUID_SIG_FIGS, NOTIONAL_TIERS, POLL_INTERVAL_MS
from perp_liquidity.connectors.base_connector import (
    AnalysisMeta, BaseVenueConnector, Exchange, ExchangeStatus, LiquidityAnalysis, NormalizedBook, now_ms
)
from perp_liquidity.errors import UnsupportedTickerError
from perp_liquidity.exchange_symbol_reference import is_ticker_supported_on_exchange, resolve_exchange_symbol
from perp_liquidity.slippage import analyze_book, has_partial_fill

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollOutcome:
    exchange: Exchange
    analysis: LiquidityAnalysis
    book: NormalizedBook


def create_initial_statuses() -> Dict[Exchange, ExchangeStatus]:
    return {exchange: ExchangeStatus(exchange=exchange) for exchange in EXCHANGES}


def format_error(error: BaseException) -> str:
    message = str(error)
    return message if message else "Unknown polling error"


async def poll_book(connector: BaseVenueConnector, ticker: str, symbol: str,
                    tiers: Sequence[float] = NOTIONAL_TIERS) -> PollOutcome:
    book = await connector.fetch_book(symbol)
    analysis = analyze_book(ticker, connector.exchange, book, tiers=tiers)
    return PollOutcome(exchange=connector.exchange, analysis=analysis, book=book)


async def poll_hyperliquid(connector: BaseVenueConnector, ticker: str, symbol: str,
                           tiers: Sequence[float] = NOTIONAL_TIERS,
                           sig_figs: Sequence[int] = HYPERLIQUID_SIG_FIGS) -> PollOutcome:
    exchange = connector.exchange
    tier_count = len(tiers)
    finest = sig_figs[0]

    final_bids = [None] * tier_count
    final_asks = [None] * tier_count
    per_tier_sig_figs = [finest] * tier_count
    bid_cursor = 0
    ask_cursor = 0
    coarsest_used = finest

    base_analysis: Optional[LiquidityAnalysis] = None
    last_analysis: Optional[LiquidityAnalysis] = None
    last_book: Optional[NormalizedBook] = None
    last_sig_figs = finest

    for n_sig_figs in sig_figs:
        if bid_cursor >= tier_count and ask_cursor >= tier_count:
            break

        try:
            raw = await connector.fetch_raw(symbol, n_sig_figs=n_sig_figs)
            book = connector.parse_book(raw)
            analysis = analyze_book(ticker, exchange, book, tiers=tiers)
        except Exception as e:
            if base_analysis is None:
                raise
            logger.debug("Hyperliquid %s at nSigFigs=%s failed, keeping coarser fallback: %s",
                         ticker, n_sig_figs, e)
            break

        if base_analysis is None:
            base_analysis = analysis
        last_analysis = analysis
        last_book = book
        last_sig_figs = n_sig_figs

        # Fill is monotone in notional, so each side only ever advances a cursor
        while bid_cursor < tier_count and analysis.bids[bid_cursor].filled:
            final_bids[bid_cursor] = analysis.bids[bid_cursor]
            per_tier_sig_figs[bid_cursor] = min(per_tier_sig_figs[bid_cursor], n_sig_figs)
            coarsest_used = min(coarsest_used, n_sig_figs)
            bid_cursor += 1

        while ask_cursor < tier_count and analysis.asks[ask_cursor].filled:
            final_asks[ask_cursor] = analysis.asks[ask_cursor]
            per_tier_sig_figs[ask_cursor] = min(per_tier_sig_figs[ask_cursor], n_sig_figs)
            coarsest_used = min(coarsest_used, n_sig_figs)
            ask_cursor += 1

    # Tiers nothing could fill take the deepest book we got, still partial
    for i in range(bid_cursor, tier_count):
        final_bids[i] = last_analysis.bids[i]
        per_tier_sig_figs[i] = min(per_tier_sig_figs[i], last_sig_figs)
    for i in range(ask_cursor, tier_count):
        final_asks[i] = last_analysis.asks[i]
        per_tier_sig_figs[i] = min(per_tier_sig_figs[i], last_sig_figs)
    if bid_cursor < tier_count or ask_cursor < tier_count:
        coarsest_used = min(coarsest_used, last_sig_figs)

    # Spread and mid come from the finest request, only tiers are merged
    analysis = replace(
        base_analysis,
        bids=tuple(final_bids),
        asks=tuple(final_asks),
        meta=AnalysisMeta(
            is_aggregated_estimate=coarsest_used < finest,
            hyperliquid_n_sig_figs=coarsest_used,
            hyperliquid_n_sig_figs_per_tier=tuple(per_tier_sig_figs)
        )
    )
    return PollOutcome(exchange=exchange, analysis=analysis, book=last_book)


async def poll_lighter(connector: BaseVenueConnector, ticker: str, symbol: str,
                       tiers: Sequence[float] = NOTIONAL_TIERS) -> PollOutcome:
    exchange = connector.exchange
    rest = await poll_book(connector, ticker, symbol, tiers=tiers)

    if not has_partial_fill(rest.analysis):
        return rest

    try:
        stream_book = await connector.fetch_stream_book(symbol)
        stream_analysis = analyze_book(
            ticker, exchange, stream_book,
            meta=AnalysisMeta(lighter_ws_fallback=True),
            tiers=tiers
        )
    except Exception as e:
        logger.debug("Lighter stream fallback for %s failed, keeping REST result: %s", ticker, e)
        return rest

    return PollOutcome(exchange=exchange, analysis=stream_analysis, book=stream_book)


VenueStrategy = Callable[..., Awaitable[PollOutcome]]

VENUE_STRATEGIES: Dict[Exchange, VenueStrategy] = {
    Exchange.HYPERLIQUID: poll_hyperliquid,
    Exchange.LIGHTER: poll_lighter,
}

StatusListener = Callable[[Dict[Exchange, ExchangeStatus]], None]


class LiquidityPoller:
    """
    Polls one active ticker across all venues and keeps the latest
    ExchangeStatus per venue.

    At most one cycle is in flight; ticks that arrive while a cycle is still
    settling are dropped, not queued. Changing the ticker resets every status
    and discards whatever a cycle started under the old ticker produces.
    """

    def __init__(self, connectors: Dict[Exchange, BaseVenueConnector], ticker: str,
                 interval: float = POLL_INTERVAL_MS / 1000, tiers: Sequence[float] = NOTIONAL_TIERS,
                 clock: Callable[[], int] = now_ms):
        self.connectors = connectors
        self.ticker = ticker
        self.interval = interval
        self.tiers = tuple(tiers)
        self._clock = clock

        self.statuses: Dict[Exchange, ExchangeStatus] = create_initial_statuses()
        self.last_refresh_at: Optional[int] = None

        self._in_flight = False
        self._active = False
        self._generation = 0
        self._listeners: List[StatusListener] = []

    def set_ticker(self, ticker: str) -> None:
        if ticker == self.ticker:
            return
        self.ticker = ticker
        self._generation += 1
        self.statuses = create_initial_statuses()
        self.last_refresh_at = None
        logger.debug("Active ticker changed to %s", ticker)

    def supported_exchanges(self) -> List[Exchange]:
        return [exchange for exchange in EXCHANGES if is_ticker_supported_on_exchange(self.ticker, exchange)]

    @property
    def has_data(self) -> bool:
        return any(status.analysis is not None for status in self.statuses.values())

    @property
    def is_loading(self) -> bool:
        supported = self.supported_exchanges()
        if not supported:
            return False
        return all(self.statuses[exchange].loading and self.statuses[exchange].analysis is None
                   for exchange in supported)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def snapshot(self) -> Dict[Exchange, ExchangeStatus]:
        return dict(self.statuses)

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def poll_venue(self, exchange: Exchange, ticker: str) -> PollOutcome:
        if not is_ticker_supported_on_exchange(ticker, exchange):
            raise UnsupportedTickerError(f"Ticker {ticker} is not listed on {exchange.value}")

        symbol = resolve_exchange_symbol(exchange, ticker)
        strategy = VENUE_STRATEGIES.get(exchange, poll_book)
        return await strategy(self.connectors[exchange], ticker, symbol, tiers=self.tiers)

    def _mark_loading(self, supported: List[Exchange]) -> None:
        statuses = {}
        for exchange in EXCHANGES:
            previous = self.statuses[exchange]
            if exchange in supported:
                statuses[exchange] = replace(previous, loading=True, error=None)
            else:
                statuses[exchange] = ExchangeStatus(exchange=exchange, loading=False)
        self.statuses = statuses

    def _apply(self, supported: List[Exchange], results: list) -> None:
        now = self._clock()
        statuses = dict(self.statuses)

        for exchange, result in zip(supported, results):
            if isinstance(result, BaseException):
                logger.warning("%s poll for %s failed: %s", exchange.value, self.ticker, result)
                statuses[exchange] = replace(statuses[exchange], loading=False, error=format_error(result))
                continue

            statuses[exchange] = ExchangeStatus(
                exchange=exchange,
                loading=False,
                error=None,
                last_updated=result.analysis.timestamp or now,
                analysis=result.analysis,
                book=result.book
            )

        self.statuses = statuses
        self.last_refresh_at = now

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Status listener failed")

    async def poll_once(self) -> bool:
        """Run one cycle. Returns False when the cycle was skipped or discarded."""
        if self._in_flight:
            logger.debug("Poll cycle still in flight, dropping tick")
            return False

        self._in_flight = True
        generation = self._generation
        ticker = self.ticker
        try:
            supported = self.supported_exchanges()
            self._mark_loading(supported)

            results = await asyncio.gather(
                *(self.poll_venue(exchange, ticker) for exchange in supported),
                return_exceptions=True
            )

            if generation != self._generation:
                logger.debug("Discarding poll results for abandoned ticker %s", ticker)
                return False

            self._apply(supported, results)
        finally:
            self._in_flight = False

        self._notify()
        return True

    async def run(self) -> None:
        """Poll immediately, then on every interval until stop() is called."""
        self._active = True
        pending = set()
        try:
            while self._active:
                task = asyncio.create_task(self.poll_once())
                pending.add(task)
                task.add_done_callback(pending.discard)
                await asyncio.sleep(self.interval)
        finally:
            for task in pending:
                task.cancel()

    def stop(self) -> None:
        """Stop the run loop and discard whatever the in-flight cycle returns."""
        self._active = False
        self._generation += 1

    async def close(self) -> None:
        self.stop()
        http_clients = {id(c.http_client): c.http_client for c in self.connectors.values() if c.http_client}
        for http_client in http_clients.values():
            http_client.close()
