from typing import Any
import asyncio
import json
import logging

import websockets
from websockets.exceptions import WebSocketException

from ..base_connector import NormalizedBook, build_book, parse_field_levels
from perp_liquidity.config import LIGHTER_STREAM_TIMEOUT_SECONDS
from perp_liquidity.errors import EmptyBookError, StreamSnapshotError

logger = logging.getLogger(__name__)


def parse_lighter_stream_book(message: Any) -> NormalizedBook:
    """
    Parse the order_book payload of a stream message. Stream levels are
    already aggregated per price: {"price": str, "size": str}.
    """
    order_book = message.get('order_book') if isinstance(message, dict) else None
    if not isinstance(order_book, dict):
        raise StreamSnapshotError("Lighter stream message has no order book")

    bids = parse_field_levels(order_book.get('bids') or [], 'price', 'size')
    asks = parse_field_levels(order_book.get('asks') or [], 'price', 'size')
    try:
        return build_book("Lighter stream", bids, asks)
    except EmptyBookError as e:
        raise StreamSnapshotError("Lighter WebSocket book snapshot is empty") from e


class LighterStreamClient:
    """
    One-shot streaming snapshot of the full Lighter book.

    The REST endpoint caps each side at a fixed number of individual orders;
    the order_book channel sends every aggregated level in its first message.
    """

    def __init__(self, url: str, timeout: float = LIGHTER_STREAM_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    async def _await_snapshot(self, market_id: int) -> NormalizedBook:
        async with websockets.connect(self.url) as ws:
            await ws.send(json.dumps({
                "type": "subscribe",
                "channel": f"order_book/{market_id}",
            }))
            logger.debug("Subscribed to Lighter order_book/%s", market_id)
            async for raw in ws:
                try:
                    message = json.loads(raw)
                except (TypeError, ValueError):
                    continue
                if isinstance(message, dict) and 'order_book' in message:
                    return parse_lighter_stream_book(message)

        raise StreamSnapshotError("Lighter WebSocket closed before a snapshot arrived")

    async def fetch_snapshot(self, market_id: int) -> NormalizedBook:
        try:
            return await asyncio.wait_for(self._await_snapshot(market_id), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StreamSnapshotError("Lighter WebSocket snapshot timed out") from e
        except StreamSnapshotError:
            raise
        except (OSError, WebSocketException) as e:
            raise StreamSnapshotError(f"Lighter WebSocket connection failed: {e}") from e
