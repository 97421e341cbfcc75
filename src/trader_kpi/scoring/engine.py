"""KPI scoring pipeline.

Runs the four sub-scorers, aggregates them with the configured weights,
adds drawdown and expectancy, and applies the recommendation policy.
Pure and deterministic: the same trades and limits always produce an
equal :class:`KpiScoreResult`.

Usage::

    result = calculate_kpi_scores(trades, limits)

    engine = KpiScoringEngine(settings.scoring)
    result = engine.score(trades, limits)
"""

from __future__ import annotations

import logging
from typing import Sequence

from trader_kpi.core.config import ScoringConfig, ScoringWeights
from trader_kpi.core.errors import ScoringError
from trader_kpi.core.models import KpiScoreResult, RiskLimits, TradeRecord, entry_sort_key

from .analyzers import expectancy, max_drawdown
from .metrics import closed_trades, is_winner
from .policy import recommend_action
from .subscores import (
    consistency_score,
    profitability_score,
    risk_discipline_score,
    strategy_execution_score,
)

logger = logging.getLogger(__name__)


def aggregate_score(
    risk_discipline: float,
    consistency: float,
    strategy_execution: float,
    profitability: float,
    weights: ScoringWeights | None = None,
) -> float:
    """Weighted sum of the sub-scores.

    Weights are non-negative and sum to 1, so inputs in ``[0, 100]``
    keep the total in ``[0, 100]``.
    """
    w = weights or ScoringWeights()
    return (
        risk_discipline * w.risk_discipline
        + consistency * w.consistency
        + strategy_execution * w.strategy_execution
        + profitability * w.profitability
    )


def ensure_chronological(trades: Sequence[TradeRecord]) -> None:
    """Reject trade lists whose entry times run backwards.

    Trades without an ``entry_time`` are not checked; naive times count
    as UTC.
    """
    last = None
    for trade in trades:
        entered = entry_sort_key(trade)
        if entered is None:
            continue
        if last is not None and entered < last:
            raise ScoringError(
                f"trades are not in chronological order at {trade.trade_id} "
                f"({entered.isoformat()} < {last.isoformat()})"
            )
        last = entered


def calculate_kpi_scores(
    trades: Sequence[TradeRecord],
    risk_limits: RiskLimits | None = None,
    config: ScoringConfig | None = None,
) -> KpiScoreResult:
    """Score one trader's trades for a period.

    Args:
        trades: Trades in chronological order.
        risk_limits: Trader limits; ``None`` substitutes the defaults.
        config: Scoring constants; ``None`` uses the standard weights.
    """
    cfg = config or ScoringConfig()
    limits = risk_limits or RiskLimits()
    ensure_chronological(trades)

    risk = risk_discipline_score(trades, limits, cfg.risk_discipline)
    consistency = consistency_score(trades, cfg.consistency)
    execution = strategy_execution_score(trades, cfg.strategy_execution)
    profitability = profitability_score(trades, cfg.profitability)
    total = aggregate_score(risk, consistency, execution, profitability, cfg.weights)

    closed = closed_trades(trades)
    winning = sum(1 for t in closed if is_winner(t))
    win_rate = winning / len(closed) * 100 if closed else 0.0
    # Closed trades without an R count as 0R here
    avg_r = sum(t.r_multiple or 0.0 for t in closed) / len(closed) if closed else 0.0

    drawdown = max_drawdown(trades)
    action = recommend_action(total, drawdown, cfg.policy)

    return KpiScoreResult(
        risk_discipline_score=risk,
        consistency_score=consistency,
        strategy_execution_score=execution,
        profitability_score=profitability,
        total_score=total,
        total_trades=len(closed),
        winning_trades=winning,
        win_rate=win_rate,
        average_r_multiple=avg_r,
        max_drawdown=drawdown,
        expectancy=expectancy(trades),
        recommended_action=action,
    )


class KpiScoringEngine:
    """Configured entry point to the scoring pipeline.

    Holds a :class:`ScoringConfig` and nothing else; safe to share across
    concurrent scoring tasks.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self._config = config or ScoringConfig()

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def score(
        self,
        trades: Sequence[TradeRecord],
        risk_limits: RiskLimits | None = None,
    ) -> KpiScoreResult:
        result = calculate_kpi_scores(trades, risk_limits, self._config)
        logger.debug(
            "Scored %d trades: total=%.2f action=%s",
            len(trades),
            result.total_score,
            result.recommended_action.value,
        )
        return result
