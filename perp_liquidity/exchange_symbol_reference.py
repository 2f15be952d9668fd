#!/usr/bin/env python3
"""
Exchange Symbol Denomination Reference

Documents how each venue formats perpetual symbols and resolves tracked
tickers to native symbols (and back). All symbol knowledge lives here so book
parsers never need to know venue naming rules.

Verified across Hyperliquid, dYdX, Lighter, AsterDEX, Binance and Bybit
on 2026-02-11.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple
import re

from perp_liquidity.connectors.base_connector import Exchange
from perp_liquidity.errors import SymbolFormatError, UnknownTickerError

BASE_ONLY = "base_only"
BASE_DASH_QUOTE = "base_dash_quote"
BASE_QUOTE = "base_quote"

NOT_LISTED = "N/A"

EXCHANGE_SYMBOL_FORMATS = {
    Exchange.HYPERLIQUID: {
        "description": "Uses simple coin symbols",
        "format": "{COIN}",
        "style": BASE_ONLY,
        "default_quote": None,
        "notes": [
            "No quote currency in symbol",
            "Small-price assets listed with a k prefix (kBONK = 1000 BONK)"
        ]
    },

    Exchange.DYDX: {
        "description": "Uses coin-quote format",
        "format": "{COIN}-{QUOTE}",
        "style": BASE_DASH_QUOTE,
        "default_quote": "USD",
        "notes": [
            "Uses hyphens as separators",
            "Quote currency is USD"
        ]
    },

    Exchange.LIGHTER: {
        "description": "Uses simple coin symbols",
        "format": "{COIN}",
        "style": BASE_ONLY,
        "default_quote": None,
        "notes": [
            "Similar to Hyperliquid format",
            "Market ID mapping resolved through the orderBooks listing"
        ]
    },

    Exchange.ASTERDEX: {
        "description": "Uses coin + quote currency format",
        "format": "{COIN}{QUOTE}",
        "style": BASE_QUOTE,
        "default_quote": "USDT",
        "notes": [
            "No separators between coin and quote",
            "Quote currency typically USDT"
        ]
    },

    Exchange.BINANCE: {
        "description": "Uses coin + quote currency format",
        "format": "{COIN}{QUOTE}",
        "style": BASE_QUOTE,
        "default_quote": "USDT",
        "notes": [
            "USD-M futures symbols",
            "Small-price assets listed with a 1000 prefix"
        ]
    },

    Exchange.BYBIT: {
        "description": "Uses coin + quote currency format",
        "format": "{COIN}{QUOTE}",
        "style": BASE_QUOTE,
        "default_quote": "USDT",
        "notes": [
            "Linear perpetual category",
            "Small-price assets listed with a 1000 prefix"
        ]
    },
}

# USDT before USD so "BTCUSDT" is not read as base "BTCUSD" + "T"
QUOTE_SUFFIXES = ("USDT", "USDC", "USD")


@dataclass(frozen=True)
class AssetVariant:
    base_asset: str
    contract_multiplier: int


@dataclass(frozen=True)
class TrackedTickerDefinition:
    base: str
    canonical_quote: str = "USD"
    quote_by_exchange: Dict[Exchange, str] = field(default_factory=dict)
    symbol_by_exchange: Dict[Exchange, str] = field(default_factory=dict)
    excluded_exchanges: FrozenSet[Exchange] = frozenset()


@dataclass(frozen=True)
class ParsedVenueSymbol:
    exchange: Exchange
    original_symbol: str
    normalized_symbol: str
    original_base_token: str
    canonical_base_asset: str
    quote_asset: Optional[str]
    contract_multiplier: int


# Kept explicit so unrelated assets (for example 1INCH) are never rescaled
GLOBAL_ASSET_VARIANT_ALIASES: Dict[str, AssetVariant] = {
    "KBONK": AssetVariant(base_asset="BONK", contract_multiplier=1_000),
    "BONK1000": AssetVariant(base_asset="BONK", contract_multiplier=1_000),
    "1000BONK": AssetVariant(base_asset="BONK", contract_multiplier=1_000),
}

EXCHANGE_ASSET_VARIANT_ALIASES: Dict[Exchange, Dict[str, AssetVariant]] = {}

_PLAIN_USD_TICKERS = (
    "2Z", "AAVE", "ADA", "APT", "ARB", "ASTER", "AVAX", "AVNT", "AXS", "BCH",
    "BERA", "BNB", "BTC", "CRV", "DASH", "DOGE", "DOT", "DYDX", "EIGEN", "ENA",
    "ETH", "ETHFI", "FIL", "GRASS", "HBAR", "HYPE", "ICP", "IP", "JUP", "LDO",
    "LINEA", "LINK", "LIT", "LTC", "MET", "MON", "NEAR", "ONDO", "OP",
    "PENDLE", "PENGU", "POL", "PROVE", "PYTH", "SEI", "SKY", "SOL", "SPX",
    "STRK", "SUI", "TAO", "TIA", "TON", "TRUMP", "TRX", "UNI", "VIRTUAL", "VVV",
    "WLD", "WLFI", "XLM", "XMR", "XPL", "XRP", "ZEC", "ZK", "ZORA", "ZRO",
)

_TICKERS_WITH_OVERRIDES = {
    "BONK": TrackedTickerDefinition(
        base="BONK",
        symbol_by_exchange={
            Exchange.HYPERLIQUID: "kBONK",
            Exchange.DYDX: "BONK-USD",
            Exchange.LIGHTER: "1000BONK",
            Exchange.ASTERDEX: "1000BONKUSDT",
            Exchange.BINANCE: "1000BONKUSDT",
            Exchange.BYBIT: "1000BONKUSDT",
        },
    ),
    "PAXG": TrackedTickerDefinition(
        base="PAXG",
        symbol_by_exchange={
            Exchange.HYPERLIQUID: "PAXG",
            Exchange.DYDX: "PAXG-USD",
            Exchange.LIGHTER: "PAXG",
            Exchange.BINANCE: "PAXGUSDT",
            Exchange.BYBIT: "PAXGUSDT",
        },
        excluded_exchanges=frozenset({Exchange.ASTERDEX}),
    ),
}

# Single source of truth for tracked tickers, alphabetical
TRACKED_TICKER_DEFINITIONS: Dict[str, TrackedTickerDefinition] = dict(sorted(
    [(base, TrackedTickerDefinition(base=base)) for base in _PLAIN_USD_TICKERS]
    + list(_TICKERS_WITH_OVERRIDES.items())
))


def normalize_symbol_token(raw: str) -> str:
    return re.sub(r"[^A-Z0-9]", "", raw.strip().upper())


def split_quote_suffix(symbol: str) -> Tuple[str, Optional[str]]:
    for quote in QUOTE_SUFFIXES:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return symbol[:-len(quote)], quote
    return symbol, None


def resolve_asset_variant(exchange: Exchange, base_token: str) -> AssetVariant:
    token = normalize_symbol_token(base_token)

    exchange_alias = EXCHANGE_ASSET_VARIANT_ALIASES.get(exchange, {}).get(token)
    if exchange_alias:
        return exchange_alias

    global_alias = GLOBAL_ASSET_VARIANT_ALIASES.get(token)
    if global_alias:
        return global_alias

    return AssetVariant(base_asset=token, contract_multiplier=1)


def parse_venue_symbol(exchange: Exchange, symbol: str) -> ParsedVenueSymbol:
    normalized = normalize_symbol_token(symbol)
    base_token, quote = split_quote_suffix(normalized)
    variant = resolve_asset_variant(exchange, base_token)

    return ParsedVenueSymbol(
        exchange=exchange,
        original_symbol=symbol,
        normalized_symbol=normalized,
        original_base_token=base_token,
        canonical_base_asset=variant.base_asset,
        quote_asset=quote,
        contract_multiplier=variant.contract_multiplier
    )


def build_canonical_market_id(parsed: ParsedVenueSymbol) -> str:
    quote = parsed.quote_asset or "NA"
    return f"{parsed.canonical_base_asset}-{quote}-x{parsed.contract_multiplier}"


def format_symbol(base: str, quote: Optional[str], style: str) -> str:
    if style == BASE_ONLY:
        return base
    if style == BASE_DASH_QUOTE:
        if not quote:
            raise SymbolFormatError("quote currency is required for base_dash_quote")
        return f"{base}-{quote}"
    if style == BASE_QUOTE:
        if not quote:
            raise SymbolFormatError("quote currency is required for base_quote")
        return f"{base}{quote}"
    raise SymbolFormatError(f"Unsupported symbol style: {style}")


def get_ticker_definition(ticker: str) -> TrackedTickerDefinition:
    definition = TRACKED_TICKER_DEFINITIONS.get(ticker)
    if definition is None:
        raise UnknownTickerError(f"Unknown ticker: {ticker}")
    return definition


def resolve_exchange_symbol(exchange: Exchange, ticker: str) -> str:
    definition = get_ticker_definition(ticker)

    manual_symbol = definition.symbol_by_exchange.get(exchange)
    if manual_symbol:
        return manual_symbol

    venue_format = EXCHANGE_SYMBOL_FORMATS[exchange]
    quote = (
        definition.quote_by_exchange.get(exchange)
        or venue_format["default_quote"]
        or definition.canonical_quote
    )
    return format_symbol(definition.base, quote, venue_format["style"])


def is_ticker_supported_on_exchange(ticker: str, exchange: Exchange) -> bool:
    definition = TRACKED_TICKER_DEFINITIONS.get(ticker)
    if definition is None:
        return False
    return exchange not in definition.excluded_exchanges


def is_tracked_ticker(value: str) -> bool:
    return value in TRACKED_TICKER_DEFINITIONS


def is_exchange_key(value: str) -> bool:
    return value in {exchange.value for exchange in Exchange}


def list_tracked_tickers() -> List[str]:
    return list(TRACKED_TICKER_DEFINITIONS.keys())


def build_exchange_symbol_record(ticker: str) -> Dict[Exchange, str]:
    return {exchange: resolve_exchange_symbol(exchange, ticker) for exchange in Exchange}


def build_ticker_map(tickers: List[str]) -> Dict[str, Dict[Exchange, str]]:
    return {ticker: build_exchange_symbol_record(ticker) for ticker in tickers}


def list_pair_mappings(tickers: List[str]) -> List[Dict]:
    """Per-ticker symbol rows; venues that do not list the ticker read N/A."""
    rows = []
    for ticker in tickers:
        symbols = build_exchange_symbol_record(ticker)
        for exchange in get_ticker_definition(ticker).excluded_exchanges:
            symbols[exchange] = NOT_LISTED
        rows.append({'ticker': ticker, 'symbols': symbols})
    return rows


def resolve_ticker_from_exchange_symbol(exchange: Exchange, symbol: str) -> Optional[str]:
    """Inverse lookup: native venue symbol -> tracked ticker, or None."""
    parsed_input = parse_venue_symbol(exchange, symbol)

    for ticker in TRACKED_TICKER_DEFINITIONS:
        parsed_mapped = parse_venue_symbol(exchange, resolve_exchange_symbol(exchange, ticker))
        if (parsed_mapped.canonical_base_asset == parsed_input.canonical_base_asset
                and parsed_mapped.quote_asset == parsed_input.quote_asset
                and parsed_mapped.contract_multiplier == parsed_input.contract_multiplier):
            return ticker

    return None
