"""KuCoin REST API client for candles and tickers."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator

import httpx

from scout_core.errors import DataSourceFailure
from scout_core.models import Candle, Interval, Ticker

logger = logging.getLogger(__name__)

# KuCoin candle "type" for each supported interval
KUCOIN_INTERVALS = {
    Interval.M15: "15min",
    Interval.H1: "1hour",
    Interval.H4: "4hour",
    Interval.D1: "1day",
}

SUCCESS_CODE = "200000"


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 600):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


class KucoinRestClient:
    """KuCoin spot market data client.

    Every transport, HTTP or payload failure is raised as
    DataSourceFailure so callers can skip the affected symbol.
    """

    BASE_URL = "https://api.kucoin.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        calls_per_minute: int = 600,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limiter = RateLimiter(calls_per_minute)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        symbol: str | None = None,
    ) -> Any:
        """Make a GET request with rate limiting and unwrap ``data``."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.get(endpoint, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise DataSourceFailure(f"{endpoint} failed: {e}", symbol=symbol) from e
        except ValueError as e:
            raise DataSourceFailure(f"{endpoint} returned invalid JSON", symbol=symbol) from e

        if not isinstance(payload, dict) or payload.get("code") != SUCCESS_CODE:
            code = payload.get("code") if isinstance(payload, dict) else None
            raise DataSourceFailure(f"{endpoint} returned code {code}", symbol=symbol)
        return payload.get("data")

    async def fetch_candles(
        self,
        symbol: str,
        interval: Interval | str = Interval.M15,
        limit: int = 100,
    ) -> list[Candle]:
        """
        Fetch the latest candles for a symbol.

        KuCoin rows are ``[time, open, close, high, low, volume, turnover]``
        newest first; the result is oldest first.

        Args:
            symbol: Trading pair (e.g., "BTC-USDT")
            interval: Candle interval
            limit: Number of candles wanted

        Returns:
            Up to ``limit`` candles, oldest first

        Raises:
            DataSourceFailure: On any request or payload failure
        """
        interval = Interval(interval)
        end = datetime.now(timezone.utc)
        start = end - timedelta(minutes=interval.minutes * limit)
        params = {
            "symbol": symbol,
            "type": KUCOIN_INTERVALS[interval],
            "startAt": int(start.timestamp()),
            "endAt": int(end.timestamp()),
        }

        data = await self._request("/api/v1/market/candles", params, symbol=symbol)
        if not isinstance(data, list):
            raise DataSourceFailure(f"{symbol}: unexpected candle payload", symbol=symbol)

        candles = []
        try:
            for row in reversed(data):
                candles.append(
                    Candle(
                        symbol=symbol,
                        interval=interval,
                        open_time=datetime.fromtimestamp(int(row[0]), tz=timezone.utc),
                        open=float(row[1]),
                        close=float(row[2]),
                        high=float(row[3]),
                        low=float(row[4]),
                        volume=float(row[5]),
                    )
                )
        except (IndexError, TypeError, ValueError) as e:
            raise DataSourceFailure(f"{symbol}: malformed candle row: {e}", symbol=symbol) from e

        return candles[-limit:]

    async def fetch_tickers(self) -> list[Ticker]:
        """
        Fetch 24h statistics for every symbol.

        Returns:
            Tickers with change in percent and 24h quote volume
        """
        data = await self._request("/api/v1/market/allTickers")
        if not isinstance(data, dict) or not isinstance(data.get("ticker"), list):
            raise DataSourceFailure("allTickers: unexpected payload")

        timestamp = None
        if data.get("time"):
            timestamp = datetime.fromtimestamp(int(data["time"]) / 1000, tz=timezone.utc)

        tickers = []
        for item in data["ticker"]:
            try:
                tickers.append(
                    Ticker(
                        symbol=item["symbol"],
                        last_price=float(item["last"]),
                        change_pct=float(item.get("changeRate") or 0) * 100,
                        volume=float(item.get("volValue") or 0),
                        timestamp=timestamp,
                    )
                )
            except (KeyError, TypeError, ValueError):
                # Delisted pairs report null prices
                logger.debug(f"Skipping ticker without price: {item.get('symbol')}")
        return tickers

    async def stream_tickers(self, poll_seconds: float = 5.0) -> AsyncIterator[Ticker]:
        """
        Poll all tickers at a fixed period and yield each update.

        A failed poll is logged and retried on the next period.
        """
        while True:
            try:
                tickers = await self.fetch_tickers()
            except DataSourceFailure as e:
                logger.warning(f"Ticker poll failed: {e}")
                tickers = []
            for ticker in tickers:
                yield ticker
            await asyncio.sleep(poll_seconds)
