class LiquidityError(Exception):
    """Base class for every failure raised by the liquidity engine."""


class MalformedBookError(LiquidityError):
    """Raw venue payload is missing required fields or has the wrong shape."""


class VenueStatusError(MalformedBookError):
    """Venue answered with a non-success status inside its response envelope."""


class EmptyBookError(LiquidityError):
    """One side of the book has no tradable levels after filtering."""


class UpstreamError(LiquidityError):
    """Non-success HTTP status or transport failure talking to a venue."""

    def __init__(self, message: str, status_code: int = None, url: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class UnknownTickerError(LiquidityError):
    """Ticker is not in the tracked ticker table."""


class UnsupportedTickerError(LiquidityError):
    """Ticker is tracked but not listed on the requested venue."""


class UnknownMarketError(LiquidityError):
    """Venue market list has no entry for the resolved symbol."""


class StreamSnapshotError(LiquidityError):
    """Streaming snapshot timed out, failed to connect, or came back empty."""


class SymbolFormatError(LiquidityError):
    """Venue symbol cannot be built from the ticker definition."""
