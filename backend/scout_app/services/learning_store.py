"""Per-strategy learning models shared between the tracker and the scanner."""

import asyncio
import logging
from datetime import datetime
from typing import Iterable

from scout_core.models import FeatureWeights, LearningModel

logger = logging.getLogger(__name__)


class LearningModelStore:
    """
    Own the per-strategy LearningModel table.

    Updates are atomic read-modify-write under one lock. Readers always get
    deep copies, so a snapshot handed to a worker thread never changes
    underneath it.
    """

    def __init__(self, strategies: Iterable[str] = ()):
        """
        Args:
            strategies: Strategy names to start with neutral models
        """
        self._models: dict[str, LearningModel] = {
            name: LearningModel(strategy=name) for name in strategies
        }
        self._lock = asyncio.Lock()

    def _get_or_create(self, strategy: str) -> LearningModel:
        if strategy not in self._models:
            self._models[strategy] = LearningModel(strategy=strategy)
        return self._models[strategy]

    async def record_outcome(
        self,
        strategy: str,
        is_profit: bool,
        now: datetime,
    ) -> LearningModel:
        """Fold one closed outcome into a strategy's model.

        Returns:
            Copy of the updated model
        """
        async with self._lock:
            model = self._get_or_create(strategy)
            model.record_outcome(is_profit, now)
            updated = model.model_copy(deep=True)

        logger.info(
            f"Learning update {strategy}: {'win' if is_profit else 'loss'}, "
            f"success_rate={updated.success_rate_ema:.3f}, "
            f"adaptations={updated.adaptation_count}"
        )
        return updated

    async def get_model(self, strategy: str) -> LearningModel:
        """Copy of a strategy's model (neutral when never updated)."""
        async with self._lock:
            model = self._models.get(strategy)
            if model is None:
                return LearningModel(strategy=strategy)
            return model.model_copy(deep=True)

    async def get_models(self) -> dict[str, LearningModel]:
        async with self._lock:
            return {name: m.model_copy(deep=True) for name, m in self._models.items()}

    async def weights_snapshot(self) -> dict[str, FeatureWeights]:
        """Feature weights of every strategy, safe to use outside the event loop."""
        async with self._lock:
            return {
                name: m.weights.model_copy(deep=True) for name, m in self._models.items()
            }
