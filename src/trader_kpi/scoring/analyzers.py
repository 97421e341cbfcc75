"""Drawdown and expectancy analyzers.

Both walk trades in the order given, which must be chronological.
"""

from __future__ import annotations

from typing import Sequence

from trader_kpi.core.models import TradeRecord

from .metrics import is_winner, scored_closed_trades


def max_drawdown(trades: Sequence[TradeRecord]) -> float:
    """Largest peak-to-trough fall of cumulative ``pnl_percentage``.

    The running peak starts at 0 (flat equity), so an opening loss
    already counts as drawdown.  Null percentages contribute 0.
    """
    peak = 0.0
    cumulative = 0.0
    worst = 0.0

    for trade in trades:
        cumulative += trade.pnl_percentage or 0.0
        if cumulative > peak:
            peak = cumulative
        worst = max(worst, peak - cumulative)

    return worst


def expectancy(trades: Sequence[TradeRecord]) -> float:
    """Expected R per trade from win rate and average win / loss size.

    ``win_rate * avg_win_r - (1 - win_rate) * avg_loss_r`` over closed
    trades with an R-multiple, where ``avg_loss_r`` is the mean |R| of the
    losers; 0 when there are none.
    """
    scored = scored_closed_trades(trades)
    if not scored:
        return 0.0

    winners = [t.r_multiple for t in scored if is_winner(t)]
    losers = [t.r_multiple for t in scored if not is_winner(t)]

    win_rate = len(winners) / len(scored)
    avg_win_r = sum(winners) / len(winners) if winners else 0.0
    avg_loss_r = sum(abs(r) for r in losers) / len(losers) if losers else 0.0

    return win_rate * avg_win_r - (1 - win_rate) * avg_loss_r
