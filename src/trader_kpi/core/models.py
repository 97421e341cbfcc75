"""Core value objects used across the scoring engine.

These are the canonical typed records for the system.  Storage adapters
build them once at the I/O boundary; the scoring functions only ever
see these types, never raw database rows.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import RecommendedAction, TradeDirection, TradeStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class TradeRecord(BaseModel):
    """One logged trade attempt."""

    model_config = ConfigDict(frozen=True)

    trade_id: str
    trader_id: str = ""
    strategy_id: str | None = None
    direction: TradeDirection = TradeDirection.LONG
    status: TradeStatus = TradeStatus.CLOSED

    # Prices
    entry_price: Decimal = Decimal("0")
    exit_price: Decimal | None = None
    stop_loss: Decimal = Decimal("0")  # 0 = no stop set
    position_size: Decimal = Decimal("0")

    # Outcome (null until closed)
    pnl_amount: Decimal | None = None
    pnl_percentage: float | None = None
    r_multiple: float | None = None

    # Discipline
    risk_percentage: float = Field(default=0.0, ge=0.0)
    rules_followed: bool | None = None
    rule_violations: list[str] = Field(default_factory=list)

    # Timing
    entry_time: datetime | None = None
    exit_time: datetime | None = None

    @field_validator("rule_violations", mode="before")
    @classmethod
    def _none_to_empty(cls, v: list[str] | None) -> list[str]:
        return [] if v is None else v

    @model_validator(mode="after")
    def _open_trade_has_no_exit(self) -> TradeRecord:
        if self.status == TradeStatus.OPEN and self.exit_price is not None:
            raise ValueError(
                f"open trade {self.trade_id} cannot carry an exit price"
            )
        return self

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED


def entry_sort_key(trade: TradeRecord) -> datetime | None:
    """Entry time as an aware UTC timestamp; naive times are taken as UTC."""
    ts = trade.entry_time
    if ts is not None and ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def sort_chronologically(trades: list[TradeRecord]) -> list[TradeRecord]:
    """Order trades by entry time (stable).

    Trades without an ``entry_time`` keep their positions; the timed
    trades are sorted into the remaining slots.
    """
    slots = [i for i, t in enumerate(trades) if t.entry_time is not None]
    timed = sorted((trades[i] for i in slots), key=entry_sort_key)
    ordered = list(trades)
    for i, trade in zip(slots, timed):
        ordered[i] = trade
    return ordered


class RiskLimits(BaseModel):
    """Per-trader risk ceilings, all in percent.

    ``RiskLimits()`` is the documented default set substituted when a
    trader has no configured limits.
    """

    model_config = ConfigDict(frozen=True)

    max_risk_per_trade: float = Field(default=2.0, gt=0.0)
    daily_loss_limit: float = Field(default=5.0, ge=0.0)
    weekly_loss_limit: float = Field(default=10.0, ge=0.0)
    max_open_trades: int = 3
    max_leverage: float = 1.0
    max_position_size: Decimal | None = None


class ScoringPeriod(BaseModel):
    """Inclusive date range a score is computed for."""

    model_config = ConfigDict(frozen=True)

    period_start: date
    period_end: date

    @model_validator(mode="after")
    def _ordered(self) -> ScoringPeriod:
        if self.period_start > self.period_end:
            raise ValueError(
                f"period_start {self.period_start} is after period_end {self.period_end}"
            )
        return self

    def __str__(self) -> str:
        return f"{self.period_start.isoformat()}..{self.period_end.isoformat()}"


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

class KpiScoreResult(BaseModel):
    """The engine's sole output for one (trader, period)."""

    model_config = ConfigDict(frozen=True)

    risk_discipline_score: float
    consistency_score: float
    strategy_execution_score: float
    profitability_score: float
    total_score: float

    total_trades: int  # closed trades
    winning_trades: int
    win_rate: float  # percent
    average_r_multiple: float
    max_drawdown: float  # percent
    expectancy: float  # R units

    recommended_action: RecommendedAction


class TraderScoreRecord(BaseModel):
    """Persisted KPI row, keyed by (trader_id, period_start, period_end)."""

    model_config = ConfigDict(frozen=True)

    trader_id: str
    period: ScoringPeriod
    result: KpiScoreResult
    calculated_by: str | None = None
    calculated_at: datetime = Field(default_factory=_now)
    action_taken: str | None = None
    notes: str | None = None

    @property
    def key(self) -> tuple[str, date, date]:
        return (self.trader_id, self.period.period_start, self.period.period_end)


class TraderScoreOutcome(BaseModel):
    """One entry of a batch run: either a result or an error marker."""

    model_config = ConfigDict(frozen=True)

    trader_id: str
    success: bool
    result: KpiScoreResult | None = None
    error: str | None = None
