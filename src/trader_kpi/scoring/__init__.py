"""Trader performance scoring core.

Pure functions only; no storage, no I/O.

Metric extractors   risk ratios, streaks, sizing variance
Sub-scorers         risk discipline, consistency, strategy execution, profitability
Analyzers           max drawdown, expectancy
Policy              promote / maintain / retrain / suspend
Engine              full pipeline producing a KpiScoreResult
"""

from .analyzers import expectancy, max_drawdown
from .engine import KpiScoringEngine, aggregate_score, calculate_kpi_scores
from .policy import recommend_action
from .subscores import (
    consistency_score,
    profitability_score,
    risk_discipline_score,
    strategy_execution_score,
)

__all__ = [
    "KpiScoringEngine",
    "aggregate_score",
    "calculate_kpi_scores",
    "consistency_score",
    "expectancy",
    "max_drawdown",
    "profitability_score",
    "recommend_action",
    "risk_discipline_score",
    "strategy_execution_score",
]
