"""Recommendation policy: (total score, max drawdown) -> governance action."""

from __future__ import annotations

from trader_kpi.core.config import PolicyConfig
from trader_kpi.core.enums import RecommendedAction


def recommend_action(
    total_score: float,
    max_drawdown: float,
    config: PolicyConfig | None = None,
) -> RecommendedAction:
    """Map a composite score and drawdown to an action.

    Rules are checked in order; excessive drawdown suspends regardless
    of score.
    """
    cfg = config or PolicyConfig()

    if max_drawdown > cfg.suspend_drawdown_pct:
        return RecommendedAction.SUSPEND
    if total_score < cfg.retrain_below:
        return RecommendedAction.RETRAIN
    if total_score < cfg.maintain_below:
        return RecommendedAction.MAINTAIN
    if total_score >= cfg.promote_at:
        return RecommendedAction.PROMOTE
    return RecommendedAction.MAINTAIN
