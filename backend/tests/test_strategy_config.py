"""Tests for strategy YAML configuration loading."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from scout_core.models import DEFAULT_STRATEGIES
from scout_app.strategy_config import (
    StrategyEntry,
    StrategyFileConfig,
    load_strategy_config,
)

EXAMPLE = Path(__file__).parent.parent / "strategies.yaml.example"


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "strategies.yaml"
    path.write_text(text)
    return path


class TestStrategyEntry:
    def test_to_strategy(self):
        entry = StrategyEntry(
            name="REVERSAL",
            rsi_min=70,
            adx_min=30,
            volatility_max=0.05,
            tp_sl_ratio=3.0,
            base_confidence=80,
        )

        strategy = entry.to_strategy()

        assert strategy.conditions.rsi_range == (70, None)
        assert strategy.conditions.defined_count == 3
        assert strategy.expected_duration_min == 120

    def test_no_rsi_bounds(self):
        entry = StrategyEntry(name="VOL", volume_multiplier_min=2.0, tp_sl_ratio=2.0, base_confidence=70)
        assert entry.to_strategy().conditions.rsi_range is None


class TestStrategyFileConfig:
    def test_empty_uses_builtin_table(self):
        assert StrategyFileConfig().get_strategies() == DEFAULT_STRATEGIES

    def test_disabled_strategies_skipped(self):
        config = StrategyFileConfig(strategies=[
            {"name": "A", "adx_min": 20, "tp_sl_ratio": 2.0, "base_confidence": 70},
            {"name": "B", "enabled": False, "adx_min": 20, "tp_sl_ratio": 2.0, "base_confidence": 70},
        ])
        assert [s.name for s in config.get_strategies()] == ["A"]

    def test_duplicate_names_rejected(self):
        entry = {"name": "A", "tp_sl_ratio": 2.0, "base_confidence": 70}
        with pytest.raises(ValidationError, match="duplicate"):
            StrategyFileConfig(strategies=[entry, entry])

    def test_all_disabled_rejected(self):
        with pytest.raises(ValidationError, match="enabled"):
            StrategyFileConfig(strategies=[
                {"name": "A", "enabled": False, "tp_sl_ratio": 2.0, "base_confidence": 70},
            ])


class TestLoadStrategyConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_strategy_config(tmp_path / "missing.yaml")

        assert config.get_strategies() == DEFAULT_STRATEGIES
        assert config.generator.min_confidence == 65
        assert config.tracker.timeout_minutes == 240

    def test_example_matches_builtin_table(self):
        config = load_strategy_config(EXAMPLE)

        assert [s.model_dump() for s in config.get_strategies()] == [
            s.model_dump() for s in DEFAULT_STRATEGIES
        ]
        assert config.generator.min_candles == 50
        assert config.tracker.tp3_pct == 6.0

    def test_overrides(self, tmp_path):
        path = write(tmp_path, """
strategies:
  - name: SCALP
    rsi_min: 40
    rsi_max: 60
    volume_multiplier_min: 1.2
    tp_sl_ratio: 1.8
    base_confidence: 68
generator:
  min_confidence: 60
  stop_loss_pct: 1.5
tracker:
  sl_pct: -1.5
""")

        config = load_strategy_config(path)

        [strategy] = config.get_strategies()
        assert strategy.name == "SCALP"
        assert strategy.conditions.rsi_range == (40, 60)
        assert config.generator.min_confidence == 60
        assert config.generator.stop_loss_pct == 1.5
        assert config.generator.min_risk_reward == 1.5
        assert config.tracker.sl_pct == -1.5
        assert config.tracker.tp1_pct == 2.0

    def test_env_file_substitution(self, tmp_path):
        (tmp_path / ".env").write_text("SCOUT_TEST_MIN_CONFIDENCE=72\n")
        path = write(tmp_path, "generator:\n  min_confidence: ${SCOUT_TEST_MIN_CONFIDENCE}\n")

        try:
            config = load_strategy_config(path)
        finally:
            os.environ.pop("SCOUT_TEST_MIN_CONFIDENCE", None)

        assert config.generator.min_confidence == 72

    def test_empty_file(self, tmp_path):
        config = load_strategy_config(write(tmp_path, ""))
        assert config.get_strategies() == DEFAULT_STRATEGIES

    def test_invalid_file(self, tmp_path):
        path = write(tmp_path, """
strategies:
  - name: BAD
    rsi_min: 80
    rsi_max: 20
    tp_sl_ratio: 2.0
    base_confidence: 70
""")
        with pytest.raises(ValueError):
            load_strategy_config(path)
