import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .config import HEALTHY_THRESHOLD, SUBSCORE_WEIGHTS, WATCHLIST_THRESHOLD, Settings, get_settings
from .errors import PipelineHealthError
from .quality import QualityOracle, QualitySignalEstimator
from .schemas import (
    ActionItem, HealthBreakdown, PipelineHealthScore, QualificationNote, Transcript, as_utc
)
from .signals import (
    calculate_framework_coverage, calculate_recency, calculate_task_progress, extract_readiness_flags
)
from .storage import HealthDataSource

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def combine_scores(breakdown: HealthBreakdown) -> int:
    """Weighted sum of the sub-scores on a 0-100 scale"""
    weighted = sum(weight * getattr(breakdown, name) for name, weight in SUBSCORE_WEIGHTS.items())
    return int(_clamp(round_half_up(weighted * 100), 0, 100))


def health_label(score: int) -> str:
    if score >= HEALTHY_THRESHOLD:
        return "Healthy"
    elif score >= WATCHLIST_THRESHOLD:
        return "Watchlist"
    return "At Risk"


class PipelineHealthCalculator:
    """
    Computes pipeline health for sales accounts.

    Record fetch failures are fatal for compute_health and are replaced with a
    degraded score in compute_bulk_health. Quality oracle failures never
    surface; the rule-based estimator takes over.
    """

    def __init__(self, data_source: HealthDataSource, oracle: Optional[QualityOracle] = None,
                 settings: Optional[Settings] = None):
        self.data_source = data_source
        self.settings = settings or get_settings()
        self.quality_estimator = QualitySignalEstimator(
            oracle=oracle,
            timeout=self.settings.oracle_timeout_seconds,
        )

    async def _fetch_records(
        self, account_id: str
    ) -> Tuple[List[QualificationNote], List[Transcript], List[ActionItem]]:
        try:
            records = await self.data_source.get_account_records(account_id)
        except Exception as e:
            raise PipelineHealthError(f"Failed to calculate pipeline health: {e}") from e
        return records.qualification_notes, records.transcripts, records.action_items

    async def compute_health(self, account_id: str, now: Optional[datetime] = None) -> PipelineHealthScore:
        now = as_utc(now) or datetime.now(timezone.utc)

        notes, transcripts, action_items = await self._fetch_records(account_id)

        quality = await self.quality_estimator.estimate(transcripts, notes)

        breakdown = HealthBreakdown(
            coverage=_clamp(calculate_framework_coverage(notes)),
            quality=_clamp(quality.score),
            recency=_clamp(calculate_recency(transcripts, now)),
            task_progress=_clamp(calculate_task_progress(action_items, now)),
        )
        score = combine_scores(breakdown)

        logger.debug("Account %s health %d (quality source: %s)", account_id, score, quality.source)

        return PipelineHealthScore(
            account_id=account_id,
            score=score,
            label=health_label(score),
            breakdown=breakdown,
            # Reported flags come from the MEDDPICC note, not the oracle
            readiness_flags=extract_readiness_flags(notes),
            last_updated_at=now,
        )

    async def _health_or_default(self, account_id: str, now: Optional[datetime]) -> PipelineHealthScore:
        try:
            return await self.compute_health(account_id, now=now)
        except Exception as e:
            logger.error("Error calculating health for account %s: %s", account_id, e)
            return PipelineHealthScore.degraded(account_id, now=now)

    async def compute_bulk_health(self, account_ids: List[str], now: Optional[datetime] = None,
                                  concurrency: Optional[int] = None) -> List[PipelineHealthScore]:
        """Health for each account, in input order; failures become degraded scores"""
        now = as_utc(now)
        concurrency = concurrency or self.settings.bulk_concurrency

        if concurrency <= 1:
            results = []
            for account_id in account_ids:
                results.append(await self._health_or_default(account_id, now))
            return results

        semaphore = asyncio.Semaphore(concurrency)

        async def run(account_id: str) -> PipelineHealthScore:
            async with semaphore:
                return await self._health_or_default(account_id, now)

        # gather keeps results in argument order
        return list(await asyncio.gather(*(run(account_id) for account_id in account_ids)))


def build_calculator(data_source: HealthDataSource, use_llm: Optional[bool] = None,
                     model: Optional[str] = None, settings: Optional[Settings] = None) -> PipelineHealthCalculator:
    """Calculator with the LLM oracle when configured, rule-based quality otherwise"""
    settings = settings or get_settings()
    use_llm = settings.use_llm if use_llm is None else use_llm

    oracle = None
    if use_llm:
        from .llm_scorer import LLMQualityOracle
        try:
            oracle = LLMQualityOracle(model=model, settings=settings)
        except ValueError as e:
            logger.warning("LLM quality oracle unavailable, using rule-based scoring: %s", e)

    return PipelineHealthCalculator(data_source, oracle=oracle, settings=settings)
