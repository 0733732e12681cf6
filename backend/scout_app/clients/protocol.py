"""Market data source protocol consumed by the scanner."""

from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable

from scout_core.models import Candle, Interval, Ticker


@runtime_checkable
class CandleSource(Protocol):
    """Anything that can supply candles and tickers.

    Implementations raise DataSourceFailure for any failed request.
    """

    async def fetch_candles(
        self,
        symbol: str,
        interval: Interval | str,
        limit: int,
    ) -> list[Candle]:
        """Latest ``limit`` candles, oldest first."""
        ...

    async def fetch_tickers(self) -> list[Ticker]:
        """24h statistics for every symbol."""
        ...

    def stream_tickers(self, poll_seconds: float) -> AsyncIterator[Ticker]:
        """Live ticker updates."""
        ...
