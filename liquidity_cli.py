#!/usr/bin/env python3
"""
Perp Liquidity CLI
Interactive slippage snapshots across perpetual futures venues
"""

import asyncio
import logging
from typing import Dict, Optional
from dotenv import load_dotenv

from perp_liquidity.config import EXCHANGE_LABELS, EXCHANGES, NOTIONAL_TIERS, VenueEndpoints
from perp_liquidity.connectors.base_connector import Exchange, ExchangeStatus, SlippageResult
from perp_liquidity.connectors.registry import create_connectors
from perp_liquidity.exchange_symbol_reference import is_tracked_ticker, list_pair_mappings, list_tracked_tickers
from perp_liquidity.liquidity_poller import LiquidityPoller

DEFAULT_TICKER = "BTC"
DEFAULT_WATCH_REFRESHES = 10

# Keep third-party chatter out of the terminal
logging.basicConfig(level=logging.ERROR, format='%(levelname)s %(name)s: %(message)s')
for logger_name in ['urllib3', 'urllib3.connectionpool', 'requests', 'websockets', 'asyncio']:
    logging.getLogger(logger_name).setLevel(logging.ERROR)


def format_notional(notional: float) -> str:
    if notional >= 1_000_000:
        return f"${notional / 1_000_000:g}M"
    if notional >= 1_000:
        return f"${notional / 1_000:g}K"
    return f"${notional:g}"


def format_tier(result: SlippageResult) -> str:
    if result.vwap == 0:
        return "-"
    text = f"{result.slippage_bps:.2f}bp"
    if not result.filled:
        text += f" (partial {format_notional(result.filled_notional)})"
    return text


def format_status(status: ExchangeStatus) -> str:
    label = EXCHANGE_LABELS[status.exchange]
    analysis = status.analysis

    if analysis is None:
        if status.error:
            return f"❌ {label}: {status.error}"
        if status.loading:
            return f"⏳ {label}: loading..."
        return f"➖ {label}: not listed"

    lines = [f"📊 {label}  mid ${analysis.mid_price:,.4f}  spread {analysis.spread_bps:.2f}bp"]
    for i, tier in enumerate(NOTIONAL_TIERS):
        lines.append(
            f"   {format_notional(tier):>6}  buy {format_tier(analysis.asks[i]):<24} "
            f"sell {format_tier(analysis.bids[i])}"
        )

    meta = analysis.meta
    if meta is not None and meta.is_aggregated_estimate:
        lines.append(f"   ⚠️  aggregated estimate (nSigFigs={meta.hyperliquid_n_sig_figs})")
    if meta is not None and meta.lighter_ws_fallback:
        lines.append("   🔌 full book from WebSocket snapshot")
    if status.error:
        lines.append(f"   ⚠️  stale: {status.error}")
    return "\n".join(lines)


def print_snapshot(ticker: str, statuses: Dict[Exchange, ExchangeStatus]):
    print(f"\n💧 {ticker} LIQUIDITY")
    print("=" * 40)
    for exchange in EXCHANGES:
        print(format_status(statuses[exchange]))


def get_user_input(prompt: str) -> Optional[str]:
    """Get user input, None when empty or cancelled"""
    try:
        value = input(f"{prompt}: ").strip()
        return value or None
    except KeyboardInterrupt:
        print("\n❌ Cancelled by user")
        return None


def select_ticker_command(poller: LiquidityPoller):
    """Switch the active ticker"""
    print("\n🔎 SELECT TICKER")
    print("=" * 40)
    print(", ".join(list_tracked_tickers()))

    ticker = get_user_input("Enter ticker (e.g. ETH)")
    if not ticker:
        return
    ticker = ticker.upper()
    if not is_tracked_ticker(ticker):
        print(f"❌ Unknown ticker: {ticker}")
        return

    poller.set_ticker(ticker)
    print(f"✅ Active ticker: {ticker}")


async def snapshot_command(poller: LiquidityPoller):
    """Poll every venue once and print the result"""
    print(f"\n🔄 Polling {poller.ticker}...")
    await poller.poll_once()
    print_snapshot(poller.ticker, poller.snapshot())
    if poller.last_refresh_at is not None:
        print(f"\n🕒 Refreshed at {poller.last_refresh_at}")


async def watch_command(poller: LiquidityPoller):
    """Run the poller and print each applied cycle"""
    raw_count = get_user_input(f"Number of refreshes (default: {DEFAULT_WATCH_REFRESHES})")
    try:
        refreshes = int(raw_count) if raw_count else DEFAULT_WATCH_REFRESHES
    except ValueError:
        print("❌ Please enter a whole number")
        return

    done = asyncio.Event()
    seen = 0

    def on_update(statuses: Dict[Exchange, ExchangeStatus]):
        nonlocal seen
        seen += 1
        print_snapshot(poller.ticker, statuses)
        print(f"\n🕒 Refresh {seen}/{refreshes}")
        if seen >= refreshes:
            done.set()

    poller.add_listener(on_update)
    runner = asyncio.create_task(poller.run())
    try:
        await done.wait()
    finally:
        poller.stop()
        runner.cancel()
        poller.remove_listener(on_update)


def pair_mappings_command():
    """Print the native symbol of every tracked ticker per venue"""
    print("\n🗺️  PAIR MAPPINGS")
    print("=" * 40)
    header = "TICKER".ljust(10) + "".join(EXCHANGE_LABELS[e].ljust(14) for e in EXCHANGES)
    print(header)
    for row in list_pair_mappings(list_tracked_tickers()):
        symbols = row['symbols']
        print(row['ticker'].ljust(10) + "".join(symbols[e].ljust(14) for e in EXCHANGES))


def show_menu(ticker: str):
    """Show main menu"""
    print("\n🚀 PERP LIQUIDITY CLI")
    print("=" * 30)
    print(f"Active ticker: {ticker}")
    print("1. Select ticker")
    print("2. Liquidity snapshot")
    print("3. Watch live")
    print("4. Pair mappings")
    print("5. Exit")
    print()


async def main():
    """Main CLI loop"""
    # Load environment
    load_dotenv('.env.local')

    endpoints = VenueEndpoints.from_env()
    poller = LiquidityPoller(create_connectors(endpoints), ticker=DEFAULT_TICKER)

    print("✅ Liquidity poller initialized")
    if endpoints.proxy_prefix:
        print(f"   Proxy: {endpoints.proxy_prefix}")

    try:
        while True:
            try:
                show_menu(poller.ticker)
                choice = input("Select option (1-5): ").strip()
                if choice == '1':
                    select_ticker_command(poller)
                elif choice == '2':
                    await snapshot_command(poller)
                elif choice == '3':
                    await watch_command(poller)
                elif choice == '4':
                    pair_mappings_command()
                elif choice == '5':
                    print("👋 Goodbye!")
                    break
                else:
                    print("❌ Invalid option. Please select 1-5.")

            except KeyboardInterrupt:
                print("\n👋 Goodbye!")
                break
    finally:
        await poller.close()


def cli():
    asyncio.run(main())


if __name__ == '__main__':
    cli()
