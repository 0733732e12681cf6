"""Error conditions raised by the signal pipeline.

Only genuine faults are exceptions. Normal negative outcomes of the
generator (no strategy match, low confidence, poor risk/reward) are
reported as ``Rejection`` values, never raised.
"""


class ScoutError(Exception):
    """Base class for all pipeline errors."""


class InsufficientHistory(ScoutError, ValueError):
    """Fewer candles than an indicator's minimum period."""

    def __init__(self, required: int, available: int, what: str = "indicators"):
        self.required = required
        self.available = available
        super().__init__(
            f"Need at least {required} candles for {what}, got {available}"
        )


class MalformedInput(ScoutError, ValueError):
    """Candle data that cannot be analysed (bad ordering, NaN prices...)."""


class DataSourceFailure(ScoutError, RuntimeError):
    """The market data source failed for one request."""

    def __init__(self, message: str, symbol: str | None = None):
        self.symbol = symbol
        super().__init__(message)
