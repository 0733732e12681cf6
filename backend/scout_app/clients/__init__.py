"""Exchange clients."""

from scout_app.clients.kucoin_rest import KucoinRestClient, RateLimiter
from scout_app.clients.protocol import CandleSource

__all__ = [
    "CandleSource",
    "KucoinRestClient",
    "RateLimiter",
]
