"""Trade closing and session summaries.

Closing a trade fixes its P&L, P&L percentage and R-multiple from the
entry, exit, stop and size.  These are the values the scoring engine
later reads back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from trader_kpi.core.enums import TradeDirection, TradeStatus
from trader_kpi.core.errors import InvalidTradeRecord
from trader_kpi.core.models import TradeRecord
from trader_kpi.scoring.metrics import closed_trades, is_winner

logger = logging.getLogger(__name__)


def close_trade(
    trade: TradeRecord,
    exit_price: Decimal,
    *,
    exit_time: datetime | None = None,
    rules_followed: bool = True,
) -> TradeRecord:
    """Return a closed copy of an open trade.

    - P&L: ``(exit - entry) * size`` for longs, ``(entry - exit) * size``
      for shorts.
    - P&L %: P&L over entry notional, 0 when the notional is 0.
    - R-multiple: P&L over ``|entry - stop| * size``, 0 without a risk amount.

    Raises:
        InvalidTradeRecord: If the trade is not open.
    """
    if trade.status != TradeStatus.OPEN:
        raise InvalidTradeRecord(
            f"trade {trade.trade_id} is {trade.status.value}, only open trades can be closed"
        )

    size = trade.position_size
    if trade.direction == TradeDirection.LONG:
        pnl = (exit_price - trade.entry_price) * size
    else:
        pnl = (trade.entry_price - exit_price) * size

    notional = trade.entry_price * size
    pnl_pct = float(pnl / notional * 100) if notional != 0 else 0.0

    risk_amount = abs(trade.entry_price - trade.stop_loss) * size
    r_multiple = float(pnl / risk_amount) if risk_amount > 0 else 0.0

    closed = trade.model_copy(
        update={
            "status": TradeStatus.CLOSED,
            "exit_price": exit_price,
            "exit_time": exit_time or datetime.now(timezone.utc),
            "pnl_amount": pnl,
            "pnl_percentage": pnl_pct,
            "r_multiple": r_multiple,
            "rules_followed": rules_followed,
        }
    )
    logger.debug(
        "Closed trade %s: pnl=%s (%.2f%%) R=%.2f",
        trade.trade_id, pnl, pnl_pct, r_multiple,
    )
    return closed


@dataclass(frozen=True)
class SessionStats:
    """Summary of one trading session (typically a day)."""

    total_trades: int
    open_trades: int
    closed_trades: int
    winning_trades: int
    losing_trades: int
    total_pnl: Decimal
    average_r: float
    win_rate: float  # percent


def session_stats(trades: Sequence[TradeRecord]) -> SessionStats:
    """Counts, P&L and win rate for the trades of one session.

    Break-even trades are neither winners nor losers here.
    """
    closed = closed_trades(trades)
    winning = sum(1 for t in closed if is_winner(t))
    losing = sum(1 for t in closed if (t.pnl_amount or Decimal("0")) < 0)
    total_pnl = sum((t.pnl_amount or Decimal("0") for t in closed), Decimal("0"))
    avg_r = sum(t.r_multiple or 0.0 for t in closed) / len(closed) if closed else 0.0

    return SessionStats(
        total_trades=len(trades),
        open_trades=sum(1 for t in trades if t.status == TradeStatus.OPEN),
        closed_trades=len(closed),
        winning_trades=winning,
        losing_trades=losing,
        total_pnl=total_pnl,
        average_r=avg_r,
        win_rate=winning / len(closed) * 100 if closed else 0.0,
    )
