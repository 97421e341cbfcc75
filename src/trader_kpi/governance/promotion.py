"""Promotion review over persisted KPI scores.

A trader becomes a promotion candidate when a score record recommends
``promote``, clears the review threshold, and nobody has acted on it
yet.  The reviewer's decision is written back as ``action_taken``;
applying a promotion stamps it on every open ``promote`` record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from trader_kpi.core.config import PromotionConfig
from trader_kpi.core.enums import RecommendedAction, TraderClassification
from trader_kpi.core.errors import GovernanceError
from trader_kpi.core.models import TraderScoreRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionCandidate:
    trader_id: str
    record: TraderScoreRecord
    current: TraderClassification
    recommended: TraderClassification

    @property
    def total_score(self) -> float:
        return self.record.result.total_score

    @property
    def at_top_level(self) -> bool:
        return self.current == self.recommended


def promotion_candidates(
    records: Iterable[TraderScoreRecord],
    classifications: Mapping[str, TraderClassification],
    config: PromotionConfig | None = None,
) -> list[PromotionCandidate]:
    """Unactioned ``promote`` records above the threshold, newest first.

    Traders missing from ``classifications`` are treated as trainees.
    """
    cfg = config or PromotionConfig()
    selected = [
        r
        for r in records
        if r.result.total_score >= cfg.min_total_score
        and r.result.recommended_action == RecommendedAction.PROMOTE
        and r.action_taken is None
    ]
    selected.sort(key=lambda r: r.period.period_end, reverse=True)

    candidates = []
    for record in selected:
        current = classifications.get(record.trader_id, TraderClassification.TRAINEE)
        candidates.append(
            PromotionCandidate(
                trader_id=record.trader_id,
                record=record,
                current=current,
                recommended=current.next(),
            )
        )
    return candidates


def mark_action_taken(
    record: TraderScoreRecord,
    action: str,
    notes: str | None = None,
) -> TraderScoreRecord:
    """Return the record with the reviewer's decision attached.

    Raises:
        GovernanceError: If a decision was already recorded.
    """
    if record.action_taken is not None:
        raise GovernanceError(
            f"KPI record for {record.trader_id} ({record.period}) already "
            f"actioned: {record.action_taken}"
        )
    logger.info(
        "Recorded action %r for %s (%s)", action, record.trader_id, record.period
    )
    return record.model_copy(update={"action_taken": action, "notes": notes})


def promotion_action(classification: TraderClassification) -> str:
    """``action_taken`` text stamped on records settled by a promotion."""
    return f"Promoted to {classification.value}"
