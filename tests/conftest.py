"""Shared fixtures for the trader-kpi test suite."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from itertools import count

import pytest

from trader_kpi.core.enums import TradeDirection, TradeStatus
from trader_kpi.core.models import RiskLimits, ScoringPeriod, TradeRecord

_ids = count(1)

BASE_TIME = datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)


def make_trade(
    *,
    pnl_amount: float | None = 100.0,
    pnl_percentage: float | None = 1.0,
    r_multiple: float | None = 1.0,
    risk_percentage: float = 2.0,
    rules_followed: bool | None = True,
    rule_violations: list[str] | None = None,
    strategy_id: str | None = "breakout",
    stop_loss: float = 95.0,
    entry_price: float = 100.0,
    exit_price: float | None = 105.0,
    direction: TradeDirection = TradeDirection.LONG,
    status: TradeStatus = TradeStatus.CLOSED,
    entry_time: datetime | None = None,
    trader_id: str = "trader-1",
) -> TradeRecord:
    """A well-behaved closed winning trade unless overridden."""
    if status == TradeStatus.OPEN:
        exit_price = None
    return TradeRecord(
        trade_id=f"t{next(_ids)}",
        trader_id=trader_id,
        pnl_amount=None if pnl_amount is None else Decimal(str(pnl_amount)),
        pnl_percentage=pnl_percentage,
        r_multiple=r_multiple,
        risk_percentage=risk_percentage,
        rules_followed=rules_followed,
        rule_violations=rule_violations or [],
        strategy_id=strategy_id,
        stop_loss=Decimal(str(stop_loss)),
        entry_price=Decimal(str(entry_price)),
        exit_price=None if exit_price is None else Decimal(str(exit_price)),
        direction=direction,
        status=status,
        entry_time=entry_time,
    )


def make_loser(**overrides) -> TradeRecord:
    values = dict(pnl_amount=-50.0, pnl_percentage=-0.5, r_multiple=-1.0, exit_price=97.5)
    values.update(overrides)
    return make_trade(**values)


def trades_with_signs(signs: str, **overrides) -> list[TradeRecord]:
    """Build a chronological sequence from a sign string like ``"++--+"``."""
    trades = []
    for i, sign in enumerate(signs):
        values = dict(overrides, entry_time=BASE_TIME + timedelta(hours=i))
        trades.append(make_trade(**values) if sign == "+" else make_loser(**values))
    return trades


@pytest.fixture
def trade_factory():
    return make_trade


@pytest.fixture
def loser_factory():
    return make_loser


@pytest.fixture
def sign_sequence():
    return trades_with_signs


@pytest.fixture
def default_limits() -> RiskLimits:
    return RiskLimits()


@pytest.fixture
def january() -> ScoringPeriod:
    return ScoringPeriod(period_start=date(2024, 1, 1), period_end=date(2024, 1, 31))


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
