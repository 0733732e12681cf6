"""Strategy table and thresholds loaded from strategies.yaml.

Supports:
- A custom strategy table (priority = file order)
- Generator and tracker threshold overrides
- ``${VAR}`` references, resolved from the environment and the .env file
  next to the YAML file
- No YAML file = built-in strategy table and default thresholds
"""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

from scout_core.models import (
    DEFAULT_STRATEGIES,
    GeneratorConfig,
    Strategy,
    StrategyConditions,
    TrackerConfig,
)

logger = logging.getLogger(__name__)


class StrategyEntry(BaseModel):
    """A single strategy entry in the YAML config."""

    name: str
    enabled: bool = True
    rsi_min: float | None = None
    rsi_max: float | None = None
    adx_min: float | None = None
    volume_multiplier_min: float | None = None
    price_change_min_pct: float | None = None
    volatility_max: float | None = None
    tp_sl_ratio: float
    base_confidence: float
    expected_duration_min: int = 120

    def to_strategy(self) -> Strategy:
        rsi_range = None
        if self.rsi_min is not None or self.rsi_max is not None:
            rsi_range = (self.rsi_min, self.rsi_max)
        return Strategy(
            name=self.name,
            conditions=StrategyConditions(
                rsi_range=rsi_range,
                adx_min=self.adx_min,
                volume_multiplier_min=self.volume_multiplier_min,
                price_change_min_pct=self.price_change_min_pct,
                volatility_max=self.volatility_max,
            ),
            tp_sl_ratio=self.tp_sl_ratio,
            base_confidence=self.base_confidence,
            expected_duration_min=self.expected_duration_min,
        )


class StrategyFileConfig(BaseModel):
    """Top-level strategies.yaml configuration."""

    strategies: list[StrategyEntry] = []
    generator: GeneratorConfig = GeneratorConfig()
    tracker: TrackerConfig = TrackerConfig()

    @model_validator(mode="after")
    def _validate(self):
        names = [s.name for s in self.strategies]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate strategy names: {', '.join(duplicates)}")
        if self.strategies and not any(s.enabled for s in self.strategies):
            raise ValueError("at least one strategy must be enabled")
        return self

    def get_strategies(self) -> tuple[Strategy, ...]:
        """Enabled strategies in priority order (built-in table when none are listed)."""
        if not self.strategies:
            return DEFAULT_STRATEGIES
        return tuple(s.to_strategy() for s in self.strategies if s.enabled)


_DEFAULT_PATH = Path(__file__).parent.parent / "strategies.yaml"


def load_strategy_config(path: Path | None = None) -> StrategyFileConfig:
    """Load strategy config from YAML file.

    Falls back to defaults (built-in strategy table) if file doesn't exist.

    Raises:
        ValueError: If the file content fails validation
    """
    config_path = path or _DEFAULT_PATH

    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info(
            "No strategies.yaml found at %s, using built-in strategies", config_path
        )
        return StrategyFileConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(os.path.expandvars(f.read())) or {}

    config = StrategyFileConfig(**raw)
    logger.info(
        "Loaded strategy config: %d strategies (%s), min confidence %.0f",
        len(config.get_strategies()),
        ", ".join(s.name for s in config.get_strategies()),
        config.generator.min_confidence,
    )
    return config
