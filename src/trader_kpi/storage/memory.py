"""In-memory trader store.

Implements both :class:`ITradeSource` and :class:`IScoreSink` on plain
dicts.  Used for dry runs and tests; behaves like the PostgreSQL store
(period filtering on entry date, chronological order, upsert-overwrite).
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from trader_kpi.core.enums import RecommendedAction, TraderClassification
from trader_kpi.core.errors import GovernanceError
from trader_kpi.core.models import (
    RiskLimits,
    ScoringPeriod,
    TradeRecord,
    TraderScoreRecord,
    sort_chronologically,
)
from trader_kpi.governance.promotion import mark_action_taken, promotion_action

logger = logging.getLogger(__name__)


class InMemoryTraderStore:
    """Dict-backed trader, trade, limit and score storage."""

    def __init__(self) -> None:
        self._active: dict[str, bool] = {}
        self._classifications: dict[str, TraderClassification] = {}
        self._trades: dict[str, list[TradeRecord]] = {}
        self._limits: dict[str, RiskLimits] = {}
        self._scores: dict[tuple[str, date, date], TraderScoreRecord] = {}
        self._last_review: dict[str, date] = {}

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_trader(
        self,
        trader_id: str,
        *,
        active: bool = True,
        classification: TraderClassification = TraderClassification.TRAINEE,
    ) -> None:
        self._active[trader_id] = active
        self._classifications[trader_id] = classification
        self._trades.setdefault(trader_id, [])

    def add_trades(self, trader_id: str, trades: list[TradeRecord]) -> None:
        self._trades.setdefault(trader_id, []).extend(trades)

    def set_risk_limits(self, trader_id: str, limits: RiskLimits) -> None:
        self._limits[trader_id] = limits

    # ------------------------------------------------------------------
    # ITradeSource
    # ------------------------------------------------------------------

    async def list_active_traders(self) -> list[str]:
        return [tid for tid, active in self._active.items() if active]

    async def fetch_trades(
        self, trader_id: str, period: ScoringPeriod
    ) -> list[TradeRecord]:
        """Trades whose entry date falls inside the period (inclusive).

        Trades without an entry time cannot be placed in a period and
        are always included.
        """
        selected = [
            t
            for t in self._trades.get(trader_id, [])
            if t.entry_time is None
            or period.period_start <= t.entry_time.date() <= period.period_end
        ]
        return sort_chronologically(selected)

    async def fetch_risk_limits(self, trader_id: str) -> RiskLimits | None:
        return self._limits.get(trader_id)

    # ------------------------------------------------------------------
    # IScoreSink
    # ------------------------------------------------------------------

    async def upsert_score(self, record: TraderScoreRecord) -> None:
        """Overwrite any record with the same key.

        A recompute without a review decision keeps the existing one.
        """
        existing = self._scores.get(record.key)
        if existing is not None:
            logger.debug("Overwriting KPI score for %s (%s)", record.trader_id, record.period)
            if record.action_taken is None and existing.action_taken is not None:
                record = record.model_copy(
                    update={"action_taken": existing.action_taken, "notes": existing.notes}
                )
        self._scores[record.key] = record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_score(self, trader_id: str, period: ScoringPeriod) -> TraderScoreRecord | None:
        return self._scores.get((trader_id, period.period_start, period.period_end))

    async def list_scores(self, *, min_total_score: float = 0.0) -> list[TraderScoreRecord]:
        """Score records at or above a total score, newest period first."""
        records = [
            r for r in self._scores.values() if r.result.total_score >= min_total_score
        ]
        return sorted(records, key=lambda r: r.period.period_end, reverse=True)

    async def trader_classifications(self) -> dict[str, TraderClassification]:
        return dict(self._classifications)

    def last_review_date(self, trader_id: str) -> date | None:
        return self._last_review.get(trader_id)

    # ------------------------------------------------------------------
    # Governance
    # ------------------------------------------------------------------

    async def apply_promotion(
        self,
        trader_id: str,
        classification: TraderClassification,
        *,
        notes: str | None = None,
    ) -> int:
        """Reclassify a trader and settle their open ``promote`` records.

        Returns the number of score records stamped.

        Raises:
            GovernanceError: If the trader is unknown.
        """
        if trader_id not in self._classifications:
            raise GovernanceError(f"Unknown trader {trader_id}")
        self._classifications[trader_id] = classification
        self._last_review[trader_id] = datetime.now(timezone.utc).date()

        action = promotion_action(classification)
        stamped = 0
        for key, record in self._scores.items():
            if (
                record.trader_id == trader_id
                and record.action_taken is None
                and record.result.recommended_action == RecommendedAction.PROMOTE
            ):
                self._scores[key] = mark_action_taken(record, action, notes)
                stamped += 1
        logger.info(
            "Promoted %s to %s (%d KPI records actioned)",
            trader_id, classification.value, stamped,
        )
        return stamped
