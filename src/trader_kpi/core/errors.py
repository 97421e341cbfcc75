"""Custom exception hierarchy for the KPI scoring engine."""


class KpiError(Exception):
    """Base exception for all scoring engine errors."""


# --- Configuration ---
class ConfigError(KpiError):
    """Invalid or missing configuration."""


# --- Data ---
class DataError(KpiError):
    """Trade or risk-limit data could not be used."""


class DataFetchError(DataError):
    """Reading trades, risk limits or traders from storage failed."""

    def __init__(self, trader_id: str | None, reason: str):
        self.trader_id = trader_id
        self.reason = reason
        target = f"trader {trader_id}" if trader_id else "traders"
        super().__init__(f"Failed to fetch {target}: {reason}")


class InvalidTradeRecord(DataError):
    """Trade record violates a lifecycle invariant."""


# --- Persistence ---
class PersistenceError(KpiError):
    """Writing a score record failed."""


# --- Scoring ---
class ScoringError(KpiError):
    """Scoring pipeline failure."""


# --- Governance ---
class GovernanceError(KpiError):
    """Promotion review or classification failure."""
