"""Score observers — the notification stage of a scoring run.

Observers are called after a score has been persisted.  They only
report; an observer failure is logged and never changes the result.
Delivery to people (mail, chat, dashboards) hangs off this interface
and lives outside the engine.
"""

from __future__ import annotations

import logging
from typing import Sequence

from trader_kpi.core.enums import RecommendedAction
from trader_kpi.core.models import KpiScoreResult, ScoringPeriod, TraderScoreOutcome

from . import metrics

logger = logging.getLogger(__name__)


class LoggingObserver:
    """Logs every score, warning on suspend/retrain verdicts."""

    def on_score(
        self, trader_id: str, period: ScoringPeriod, result: KpiScoreResult
    ) -> None:
        action = result.recommended_action
        if action in (RecommendedAction.SUSPEND, RecommendedAction.RETRAIN):
            logger.warning(
                "KPI %s for %s (%s): total=%.1f drawdown=%.2f%%",
                action.value, trader_id, period,
                result.total_score, result.max_drawdown,
            )
        else:
            logger.info(
                "KPI score calculated for %s (%s): %.1f/100 -> %s",
                trader_id, period, result.total_score, action.value,
            )

    def on_batch_complete(
        self, period: ScoringPeriod, outcomes: Sequence[TraderScoreOutcome]
    ) -> None:
        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(
            "Calculated KPIs for %d/%d traders (%s)",
            succeeded, len(outcomes), period,
        )
        for outcome in outcomes:
            if not outcome.success:
                logger.warning(
                    "KPI calculation failed for %s: %s",
                    outcome.trader_id, outcome.error,
                )


class MetricsObserver:
    """Feeds scores and batch outcomes into Prometheus."""

    def on_score(
        self, trader_id: str, period: ScoringPeriod, result: KpiScoreResult
    ) -> None:
        metrics.record_score(result.recommended_action.value, result.total_score)

    def on_batch_complete(
        self, period: ScoringPeriod, outcomes: Sequence[TraderScoreOutcome]
    ) -> None:
        succeeded = sum(1 for o in outcomes if o.success)
        metrics.record_batch(succeeded, len(outcomes) - succeeded)


class RecordingObserver:
    """Keeps every notification in memory; used for dry runs and tests."""

    def __init__(self) -> None:
        self.scores: list[tuple[str, ScoringPeriod, KpiScoreResult]] = []
        self.batches: list[tuple[ScoringPeriod, list[TraderScoreOutcome]]] = []

    def on_score(
        self, trader_id: str, period: ScoringPeriod, result: KpiScoreResult
    ) -> None:
        self.scores.append((trader_id, period, result))

    def on_batch_complete(
        self, period: ScoringPeriod, outcomes: Sequence[TraderScoreOutcome]
    ) -> None:
        self.batches.append((period, list(outcomes)))
