"""Metric extractors — pure statistics over a trade list.

Every function here is side-effect free.  Functions that depend on
sequence (``streaks``) require the trades in chronological order; the
storage adapters sort at the boundary before handing trades over.

Empty inputs return 0 rather than raising, so the sub-scorers can apply
their own documented fallbacks.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

import numpy as np

from trader_kpi.core.models import RiskLimits, TradeRecord


@dataclass(frozen=True)
class StreakStats:
    """Longest consecutive winning / losing runs in a trade sequence."""

    longest_win: int = 0
    longest_loss: int = 0


# ---------------------------------------------------------------------------
# Trade selection
# ---------------------------------------------------------------------------

def is_winner(trade: TradeRecord) -> bool:
    """A trade wins when its P&L amount is strictly positive (null = 0)."""
    return (trade.pnl_amount or Decimal("0")) > 0


def closed_trades(trades: Sequence[TradeRecord]) -> list[TradeRecord]:
    return [t for t in trades if t.is_closed]


def scored_closed_trades(trades: Sequence[TradeRecord]) -> list[TradeRecord]:
    """Closed trades that carry an R-multiple."""
    return [t for t in trades if t.is_closed and t.r_multiple is not None]


# ---------------------------------------------------------------------------
# Risk ratios
# ---------------------------------------------------------------------------

def average_risk_ratio(trades: Sequence[TradeRecord], limits: RiskLimits) -> float:
    """Mean risk taken per trade relative to the allowed maximum."""
    if not trades:
        return 0.0
    avg_risk = float(np.mean([t.risk_percentage for t in trades]))
    return avg_risk / limits.max_risk_per_trade


def stop_loss_adherence(trades: Sequence[TradeRecord]) -> float:
    """Fraction of trades entered with a stop-loss set."""
    if not trades:
        return 0.0
    return sum(1 for t in trades if t.stop_loss > 0) / len(trades)


def rule_violation_count(trades: Sequence[TradeRecord]) -> int:
    return sum(len(t.rule_violations) for t in trades)


def rules_followed_rate(trades: Sequence[TradeRecord]) -> float:
    """Fraction of trades explicitly marked as rules-followed.

    Unknown (``None``) counts as not followed.
    """
    if not trades:
        return 0.0
    return sum(1 for t in trades if t.rules_followed is True) / len(trades)


# ---------------------------------------------------------------------------
# Sequence statistics
# ---------------------------------------------------------------------------

def streaks(trades: Sequence[TradeRecord]) -> StreakStats:
    """Longest win and loss streaks, scanning trades in the given order.

    Break-even and null P&L count towards the losing side.  The streak
    still running at the end of the sequence is included.
    """
    longest_win = 0
    longest_loss = 0
    current = 0
    winning = False

    for i, trade in enumerate(trades):
        won = is_winner(trade)
        if i == 0 or won != winning:
            current = 1
            winning = won
        else:
            current += 1

        if winning:
            longest_win = max(longest_win, current)
        else:
            longest_loss = max(longest_loss, current)

    return StreakStats(longest_win=longest_win, longest_loss=longest_loss)


def position_size_variance(trades: Sequence[TradeRecord]) -> float:
    """Population variance of ``risk_percentage`` across trades."""
    if not trades:
        return 0.0
    return float(np.var([t.risk_percentage for t in trades]))
