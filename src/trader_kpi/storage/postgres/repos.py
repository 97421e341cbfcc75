"""Repository pattern for async database operations.

Each repository encapsulates query logic for a single table and works on
an :class:`AsyncSession` from
:func:`trader_kpi.storage.postgres.connection.session_factory`.

Conversion helpers turn ORM rows into the typed value objects of
:mod:`trader_kpi.core.models` exactly once, here at the boundary.
:class:`PostgresTraderStore` adapts the repositories to the
:class:`ITradeSource` / :class:`IScoreSink` protocols.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trader_kpi.core.enums import (
    RecommendedAction,
    TradeDirection,
    TraderClassification,
    TradeStatus,
)
from trader_kpi.core.errors import DataFetchError, GovernanceError, PersistenceError
from trader_kpi.core.models import (
    KpiScoreResult,
    RiskLimits,
    ScoringPeriod,
    TradeRecord,
    TraderScoreRecord,
)
from trader_kpi.governance.promotion import promotion_action

from .models import KpiScoreRow, RiskLimitsRow, TradeRow, TraderProfileRow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _row_to_trade(row: TradeRow) -> TradeRecord:
    """Convert an ORM :class:`TradeRow` to a core :class:`TradeRecord`."""
    return TradeRecord(
        trade_id=row.id,
        trader_id=row.trader_id,
        strategy_id=row.strategy_id,
        direction=TradeDirection(row.direction),
        status=TradeStatus(row.status),
        entry_price=row.entry_price,
        exit_price=row.exit_price,
        stop_loss=row.stop_loss,
        position_size=row.position_size,
        pnl_amount=row.pnl_amount,
        pnl_percentage=row.pnl_percentage,
        r_multiple=row.r_multiple,
        risk_percentage=row.risk_percentage,
        rules_followed=row.rules_followed,
        rule_violations=row.rule_violations,
        entry_time=row.entry_time,
        exit_time=row.exit_time,
    )


def _row_to_limits(row: RiskLimitsRow) -> RiskLimits:
    return RiskLimits(
        max_risk_per_trade=row.max_risk_per_trade,
        daily_loss_limit=row.daily_loss_limit,
        weekly_loss_limit=row.weekly_loss_limit,
        max_open_trades=row.max_open_trades,
        max_leverage=row.max_leverage,
        max_position_size=row.max_position_size,
    )


def _score_values(record: TraderScoreRecord) -> dict[str, Any]:
    """Column values for a score row, keyed by column name."""
    r = record.result
    return {
        "trader_id": record.trader_id,
        "period_start": record.period.period_start,
        "period_end": record.period.period_end,
        "risk_discipline_score": r.risk_discipline_score,
        "consistency_score": r.consistency_score,
        "strategy_execution_score": r.strategy_execution_score,
        "profitability_score": r.profitability_score,
        "total_score": r.total_score,
        "total_trades": r.total_trades,
        "winning_trades": r.winning_trades,
        "win_rate": r.win_rate,
        "average_r_multiple": r.average_r_multiple,
        "max_drawdown": r.max_drawdown,
        "expectancy": r.expectancy,
        "recommended_action": r.recommended_action.value,
        "action_taken": record.action_taken,
        "notes": record.notes,
        "calculated_by": record.calculated_by,
        "calculated_at": record.calculated_at,
    }


def _row_to_score(row: KpiScoreRow) -> TraderScoreRecord:
    """Convert an ORM :class:`KpiScoreRow` back to a :class:`TraderScoreRecord`."""
    return TraderScoreRecord(
        trader_id=row.trader_id,
        period=ScoringPeriod(period_start=row.period_start, period_end=row.period_end),
        result=KpiScoreResult(
            risk_discipline_score=row.risk_discipline_score,
            consistency_score=row.consistency_score,
            strategy_execution_score=row.strategy_execution_score,
            profitability_score=row.profitability_score,
            total_score=row.total_score,
            total_trades=row.total_trades,
            winning_trades=row.winning_trades,
            win_rate=row.win_rate,
            average_r_multiple=row.average_r_multiple or 0.0,
            max_drawdown=row.max_drawdown or 0.0,
            expectancy=row.expectancy or 0.0,
            recommended_action=RecommendedAction(row.recommended_action),
        ),
        calculated_by=row.calculated_by,
        calculated_at=row.calculated_at,
        action_taken=row.action_taken,
        notes=row.notes,
    )


def period_bounds(period: ScoringPeriod) -> tuple[datetime, datetime]:
    """UTC ``[start, end)`` timestamps covering every day of the period."""
    start = datetime.combine(period.period_start, time.min, tzinfo=timezone.utc)
    end = datetime.combine(
        period.period_end + timedelta(days=1), time.min, tzinfo=timezone.utc
    )
    return start, end


def build_score_upsert(record: TraderScoreRecord):
    """``INSERT ... ON CONFLICT (trader_id, period_start, period_end) DO UPDATE``.

    A second computation for the same key replaces every scored column.
    Review columns (``action_taken``, ``notes``) are only replaced when
    the incoming record carries a decision.
    """
    values = _score_values(record)
    stmt = pg_insert(KpiScoreRow).values(**values)
    keep = {"trader_id", "period_start", "period_end"}
    if record.action_taken is None:
        keep |= {"action_taken", "notes"}
    return stmt.on_conflict_do_update(
        constraint="uq_trader_kpi_scores_trader_period",
        set_={k: stmt.excluded[k] for k in values if k not in keep},
    )


def build_classification_update(
    trader_id: str, classification: TraderClassification, reviewed_on: date
):
    """Set a trader's classification and review date."""
    return (
        update(TraderProfileRow)
        .where(TraderProfileRow.id == trader_id)
        .values(classification=classification.value, last_review_date=reviewed_on)
    )


def build_promotion_stamp(trader_id: str, action: str, notes: str | None):
    """Stamp every unactioned ``promote`` row of a trader with ``action``."""
    return (
        update(KpiScoreRow)
        .where(KpiScoreRow.trader_id == trader_id)
        .where(KpiScoreRow.action_taken.is_(None))
        .where(KpiScoreRow.recommended_action == RecommendedAction.PROMOTE.value)
        .values(action_taken=action, notes=notes)
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

class TraderRepo:
    """Repository for :class:`TraderProfileRow` queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_active_ids(self) -> list[str]:
        stmt = (
            select(TraderProfileRow.id)
            .where(TraderProfileRow.is_active.is_(True))
            .order_by(TraderProfileRow.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def classifications(self) -> dict[str, TraderClassification]:
        result = await self._session.execute(
            select(TraderProfileRow.id, TraderProfileRow.classification)
        )
        return {tid: TraderClassification(c) for tid, c in result.all()}

    async def set_classification(
        self, trader_id: str, classification: TraderClassification, reviewed_on: date
    ) -> bool:
        result = await self._session.execute(
            build_classification_update(trader_id, classification, reviewed_on)
        )
        return result.rowcount > 0


class TradeRepo:
    """Repository for :class:`TradeRow` queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_trades_for_period(
        self, trader_id: str, period: ScoringPeriod
    ) -> list[TradeRecord]:
        """Trades entered during the period, oldest first."""
        start, end = period_bounds(period)
        stmt = (
            select(TradeRow)
            .where(TradeRow.trader_id == trader_id)
            .where(TradeRow.entry_time >= start)
            .where(TradeRow.entry_time < end)
            .order_by(TradeRow.entry_time.asc(), TradeRow.id.asc())
        )
        result = await self._session.execute(stmt)
        rows: Sequence[TradeRow] = result.scalars().all()
        return [_row_to_trade(r) for r in rows]


class RiskLimitsRepo:
    """Repository for :class:`RiskLimitsRow` queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_limits(self, trader_id: str) -> RiskLimits | None:
        stmt = select(RiskLimitsRow).where(RiskLimitsRow.trader_id == trader_id)
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return _row_to_limits(row)


class KpiScoreRepo:
    """Repository for :class:`KpiScoreRow` persistence and retrieval."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, record: TraderScoreRecord) -> None:
        await self._session.execute(build_score_upsert(record))
        logger.debug("Upserted KPI score for %s (%s)", record.trader_id, record.period)

    async def list_scores(self, *, min_total_score: float = 0.0) -> list[TraderScoreRecord]:
        """Score rows at or above a total score, newest period first."""
        stmt = (
            select(KpiScoreRow)
            .where(KpiScoreRow.total_score >= min_total_score)
            .order_by(KpiScoreRow.period_end.desc())
        )
        result = await self._session.execute(stmt)
        return [_row_to_score(r) for r in result.scalars().all()]

    async def stamp_promotion(
        self, trader_id: str, action: str, notes: str | None = None
    ) -> int:
        result = await self._session.execute(
            build_promotion_stamp(trader_id, action, notes)
        )
        return result.rowcount


# ---------------------------------------------------------------------------
# Protocol adapter
# ---------------------------------------------------------------------------

class PostgresTraderStore:
    """:class:`ITradeSource` + :class:`IScoreSink` over PostgreSQL.

    Each call runs in its own short session, so concurrent batch tasks
    never share one.  Driver errors are re-raised as
    :class:`DataFetchError` / :class:`PersistenceError`.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def list_active_traders(self) -> list[str]:
        try:
            async with self._sessions() as session:
                return await TraderRepo(session).list_active_ids()
        except SQLAlchemyError as exc:
            raise DataFetchError(None, str(exc)) from exc

    async def fetch_trades(
        self, trader_id: str, period: ScoringPeriod
    ) -> list[TradeRecord]:
        try:
            async with self._sessions() as session:
                return await TradeRepo(session).get_trades_for_period(trader_id, period)
        except SQLAlchemyError as exc:
            raise DataFetchError(trader_id, str(exc)) from exc

    async def fetch_risk_limits(self, trader_id: str) -> RiskLimits | None:
        try:
            async with self._sessions() as session:
                return await RiskLimitsRepo(session).get_limits(trader_id)
        except SQLAlchemyError as exc:
            raise DataFetchError(trader_id, str(exc)) from exc

    async def list_scores(self, *, min_total_score: float = 0.0) -> list[TraderScoreRecord]:
        try:
            async with self._sessions() as session:
                return await KpiScoreRepo(session).list_scores(min_total_score=min_total_score)
        except SQLAlchemyError as exc:
            raise DataFetchError(None, str(exc)) from exc

    async def trader_classifications(self) -> dict[str, TraderClassification]:
        try:
            async with self._sessions() as session:
                return await TraderRepo(session).classifications()
        except SQLAlchemyError as exc:
            raise DataFetchError(None, str(exc)) from exc

    async def upsert_score(self, record: TraderScoreRecord) -> None:
        try:
            async with self._sessions() as session:
                await KpiScoreRepo(session).upsert(record)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to persist KPI score for {record.trader_id} ({record.period}): {exc}"
            ) from exc

    async def apply_promotion(
        self,
        trader_id: str,
        classification: TraderClassification,
        *,
        notes: str | None = None,
    ) -> int:
        """Reclassify a trader and settle their open ``promote`` rows.

        Both updates commit together.  Returns the number of score rows
        stamped.

        Raises:
            GovernanceError: If the trader has no profile row.
        """
        try:
            async with self._sessions() as session:
                found = await TraderRepo(session).set_classification(
                    trader_id, classification, datetime.now(timezone.utc).date()
                )
                if not found:
                    await session.rollback()
                    raise GovernanceError(f"Unknown trader {trader_id}")
                stamped = await KpiScoreRepo(session).stamp_promotion(
                    trader_id, promotion_action(classification), notes
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to promote {trader_id} to {classification.value}: {exc}"
            ) from exc
        logger.info(
            "Promoted %s to %s (%d KPI records actioned)",
            trader_id, classification.value, stamped,
        )
        return stamped
