"""Enumerations used across the KPI scoring engine."""

from enum import Enum


class TradeDirection(str, Enum):
    LONG = "long"
    SHORT = "short"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class RecommendedAction(str, Enum):
    """Governance verdict attached to every KPI score."""

    PROMOTE = "promote"
    MAINTAIN = "maintain"
    RETRAIN = "retrain"
    SUSPEND = "suspend"


class TraderClassification(str, Enum):
    """Desk seniority ladder, lowest first."""

    TRAINEE = "trainee"
    JUNIOR = "junior"
    SENIOR = "senior"
    LEAD = "lead"

    @property
    def rank(self) -> int:
        """Numeric rank for comparisons (0–3)."""
        return list(TraderClassification).index(self)

    def next(self) -> "TraderClassification":
        """Next level up the ladder; the top level maps to itself."""
        levels = list(TraderClassification)
        return levels[min(self.rank + 1, len(levels) - 1)]
