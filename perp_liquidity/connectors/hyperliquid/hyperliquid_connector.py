from typing import Any
import logging

from ..base_connector import BaseVenueConnector, Exchange, NormalizedBook, build_book, parse_field_levels
from perp_liquidity.errors import MalformedBookError

logger = logging.getLogger(__name__)

# nSigFigs accepted by the l2Book endpoint; mantissa is only allowed at 5
DEFAULT_N_SIG_FIGS = 5


def parse_hyperliquid_book(raw: Any) -> NormalizedBook:
    """
    Parse an l2Book response: {"time": ms, "levels": [[bids...], [asks...]]}
    where every level is {"px": str, "sz": str, "n": int}.
    """
    levels = raw.get('levels') if isinstance(raw, dict) else None
    if not isinstance(levels, list) or len(levels) < 2 \
            or not isinstance(levels[0], list) or not isinstance(levels[1], list):
        raise MalformedBookError("Invalid Hyperliquid order book response")

    return build_book(
        "Hyperliquid",
        parse_field_levels(levels[0], 'px', 'sz'),
        parse_field_levels(levels[1], 'px', 'sz'),
        raw.get('time')
    )


class HyperliquidConnector(BaseVenueConnector):
    exchange = Exchange.HYPERLIQUID
    label = "Hyperliquid"

    async def fetch_raw(self, symbol: str, n_sig_figs: int = DEFAULT_N_SIG_FIGS, **options) -> Any:
        body = {
            "type": "l2Book",
            "coin": symbol,
            "nSigFigs": n_sig_figs,
        }
        if n_sig_figs == DEFAULT_N_SIG_FIGS:
            body["mantissa"] = 1

        logger.debug("Requesting Hyperliquid l2Book for %s at nSigFigs=%s", symbol, n_sig_figs)
        return await self.http_client.post_json(f"{self.base_endpoint}/info", body)

    def parse_book(self, raw: Any) -> NormalizedBook:
        return parse_hyperliquid_book(raw)
