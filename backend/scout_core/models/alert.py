"""Market alert model."""

import hashlib
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AlertType(str, Enum):
    PUMP = "PUMP"
    DUMP = "DUMP"
    BREAKOUT = "BREAKOUT"
    BREAKDOWN = "BREAKDOWN"


class MarketAlert(BaseModel):
    """Unusual market move detected on the ticker feed."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    symbol: str
    type: AlertType
    message: str
    percentage: float
    volume: float
    price: float
    reasons: tuple[str, ...] = Field(default_factory=tuple)
    timestamp: datetime

    def model_post_init(self, __context) -> None:
        if not self.id:
            key = f"{self.symbol}:{self.type.value}:{self.timestamp.isoformat()}"
            object.__setattr__(self, "id", hashlib.sha256(key.encode()).hexdigest()[:32])
