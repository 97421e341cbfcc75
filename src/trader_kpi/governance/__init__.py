"""Governance review over persisted KPI scores.

- **Promotion candidates**: unactioned ``promote`` verdicts above the
  review threshold, paired with the trader's next classification.
- **Review decisions**: recorded once per score record.
- **Promotions**: a new classification settles every open ``promote``
  record of the trader.
"""

from trader_kpi.governance.promotion import (
    PromotionCandidate,
    mark_action_taken,
    promotion_action,
    promotion_candidates,
)

__all__ = [
    "PromotionCandidate",
    "mark_action_taken",
    "promotion_action",
    "promotion_candidates",
]
