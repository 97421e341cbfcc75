"""The four KPI sub-scorers.

Each maps a trade list (plus limits, for risk discipline) to a value in
``[0, 100]``:

- **Risk discipline** (40%): risk taken vs allowed, stop-loss usage,
  rule violations, rule compliance.
- **Consistency** (25%): losing streaks (revenge-trading proxy) and
  position-size stability.
- **Strategy execution** (20%): trades tied to a strategy, and trades
  carried through to close rather than cancelled.
- **Profitability** (15%): average R-multiple of closed trades.

Sparse data never raises: each scorer has a fixed fallback for empty or
insufficient input.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from trader_kpi.core.config import (
    ConsistencyParams,
    ProfitabilityParams,
    RiskDisciplineParams,
    StrategyExecutionParams,
)
from trader_kpi.core.enums import TradeStatus
from trader_kpi.core.models import RiskLimits, TradeRecord

from .metrics import (
    average_risk_ratio,
    position_size_variance,
    rule_violation_count,
    rules_followed_rate,
    scored_closed_trades,
    stop_loss_adherence,
    streaks,
)


def clamp_score(score: float) -> float:
    return max(0.0, min(100.0, score))


def risk_discipline_score(
    trades: Sequence[TradeRecord],
    limits: RiskLimits,
    params: RiskDisciplineParams | None = None,
) -> float:
    """Score risk behaviour; no trades means no demonstrated discipline (0)."""
    if not trades:
        return 0.0
    p = params or RiskDisciplineParams()

    score = 100.0

    ratio = average_risk_ratio(trades, limits)
    if ratio > 1:
        score -= min(p.over_risk_penalty_cap, (ratio - 1) * p.over_risk_penalty_per_unit)
    elif ratio < p.under_utilised_ratio:
        score -= p.under_utilised_penalty

    # Missing stops scale the whole score rather than subtracting from it
    score *= stop_loss_adherence(trades)

    score -= min(p.violation_penalty_cap, rule_violation_count(trades) * p.violation_penalty)

    floor = p.rules_followed_floor
    score *= floor + (1 - floor) * rules_followed_rate(trades)

    return clamp_score(score)


def consistency_score(
    trades: Sequence[TradeRecord],
    params: ConsistencyParams | None = None,
) -> float:
    """Score streak and sizing stability; trades must be chronological."""
    p = params or ConsistencyParams()
    if len(trades) < p.min_trades:
        return p.neutral_score

    score = 100.0

    longest_loss = streaks(trades).longest_loss
    if longest_loss > p.max_tolerated_loss_streak:
        score -= (longest_loss - p.max_tolerated_loss_streak) * p.loss_streak_penalty

    variance = position_size_variance(trades)
    if variance > p.variance_threshold:
        score -= min(p.variance_penalty_cap, variance * p.variance_penalty_per_unit)

    return clamp_score(score)


def strategy_execution_score(
    trades: Sequence[TradeRecord],
    params: StrategyExecutionParams | None = None,
) -> float:
    if not trades:
        return 0.0
    p = params or StrategyExecutionParams()

    score = 100.0

    with_strategy = sum(1 for t in trades if t.strategy_id is not None)
    score *= with_strategy / len(trades)

    closed = sum(1 for t in trades if t.status == TradeStatus.CLOSED)
    cancelled = sum(1 for t in trades if t.status == TradeStatus.CANCELLED)
    # Only open trades: denominator 1, so the execution rate is 0
    proper_execution_rate = closed / ((closed + cancelled) or 1)
    score *= p.execution_floor + (1 - p.execution_floor) * proper_execution_rate

    return clamp_score(score)


def profitability_score(
    trades: Sequence[TradeRecord],
    params: ProfitabilityParams | None = None,
) -> float:
    """Score average R of closed trades; neutral when nothing closed."""
    p = params or ProfitabilityParams()
    scored = scored_closed_trades(trades)
    if not scored:
        return p.neutral_score

    avg_r = float(np.mean([t.r_multiple for t in scored]))

    score = p.neutral_score
    if avg_r > 0:
        score += min(p.max_adjustment, avg_r * p.points_per_r)
    else:
        score += max(-p.max_adjustment, avg_r * p.points_per_r)

    return clamp_score(score)
