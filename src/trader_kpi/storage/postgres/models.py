"""SQLAlchemy ORM models for the trader KPI database.

Tables:
    trader_profiles      1--* trades              (trader_id)
    trader_profiles      1--1 trader_risk_limits  (trader_id, unique)
    trader_profiles      1--* trader_kpi_scores   (unique per trader + period)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# TraderProfileRow
# ---------------------------------------------------------------------------

class TraderProfileRow(Base):
    """A trader on the desk; only active traders are batch-scored."""

    __tablename__ = "trader_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    classification: Mapped[str] = mapped_column(String(16), nullable=False, default="trainee")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    suspended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_review_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )

    __table_args__ = (Index("ix_trader_profiles_is_active", "is_active"),)

    def __repr__(self) -> str:
        return f"<TraderProfileRow(id={self.id!r}, active={self.is_active!r})>"


# ---------------------------------------------------------------------------
# TradeRow
# ---------------------------------------------------------------------------

class TradeRow(Base):
    """One logged trade attempt."""

    __tablename__ = "trades"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    trader_id: Mapped[str] = mapped_column(String(64), nullable=False)
    strategy_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")
    entry_price: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False)
    exit_price: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    stop_loss: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False, default=Decimal("0"))
    position_size: Mapped[Decimal] = mapped_column(Numeric(24, 8), nullable=False, default=Decimal("0"))
    risk_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    pnl_amount: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    pnl_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    r_multiple: Mapped[float | None] = mapped_column(Float, nullable=True)
    rules_followed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    rule_violations: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    entry_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    exit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_trades_trader_entry_time", "trader_id", "entry_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<TradeRow(id={self.id!r}, trader_id={self.trader_id!r}, "
            f"status={self.status!r})>"
        )


# ---------------------------------------------------------------------------
# RiskLimitsRow
# ---------------------------------------------------------------------------

class RiskLimitsRow(Base):
    """Active risk ceilings for one trader, in percent."""

    __tablename__ = "trader_risk_limits"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_new_uuid,
    )
    trader_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    max_risk_per_trade: Mapped[float] = mapped_column(Float, nullable=False, default=2.0)
    daily_loss_limit: Mapped[float] = mapped_column(Float, nullable=False, default=5.0)
    weekly_loss_limit: Mapped[float] = mapped_column(Float, nullable=False, default=10.0)
    max_open_trades: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    max_leverage: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    max_position_size: Mapped[Decimal | None] = mapped_column(Numeric(24, 8), nullable=True)
    set_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    set_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )


# ---------------------------------------------------------------------------
# KpiScoreRow
# ---------------------------------------------------------------------------

class KpiScoreRow(Base):
    """Computed KPI score for one trader and period.

    Recomputing the same (trader, period) overwrites this row in place;
    there is no version history.
    """

    __tablename__ = "trader_kpi_scores"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_new_uuid,
    )
    trader_id: Mapped[str] = mapped_column(String(64), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    risk_discipline_score: Mapped[float] = mapped_column(Float, nullable=False)
    consistency_score: Mapped[float] = mapped_column(Float, nullable=False)
    strategy_execution_score: Mapped[float] = mapped_column(Float, nullable=False)
    profitability_score: Mapped[float] = mapped_column(Float, nullable=False)
    total_score: Mapped[float] = mapped_column(Float, nullable=False)

    total_trades: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    winning_trades: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    win_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    average_r_multiple: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_drawdown: Mapped[float | None] = mapped_column(Float, nullable=True)
    expectancy: Mapped[float | None] = mapped_column(Float, nullable=True)
    recommended_action: Mapped[str] = mapped_column(String(16), nullable=False)

    action_taken: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    calculated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "trader_id", "period_start", "period_end",
            name="uq_trader_kpi_scores_trader_period",
        ),
        Index("ix_trader_kpi_scores_total_score", "total_score"),
    )

    def __repr__(self) -> str:
        return (
            f"<KpiScoreRow(trader_id={self.trader_id!r}, "
            f"period={self.period_start}..{self.period_end}, "
            f"total={self.total_score!r})>"
        )
