"""Business services."""

from scout_app.services.learning_store import LearningModelStore
from scout_app.services.market_scanner import MarketScanner
from scout_app.services.signal_tracker import SignalTracker

__all__ = [
    "LearningModelStore",
    "MarketScanner",
    "SignalTracker",
]
