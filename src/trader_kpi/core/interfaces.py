"""Protocol interfaces for the scoring engine.

The pure scoring core never touches storage.  The orchestrator talks to
storage only through these protocols, so the in-memory and PostgreSQL
adapters can be swapped without changing callers.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from .models import (
    KpiScoreResult,
    RiskLimits,
    ScoringPeriod,
    TradeRecord,
    TraderScoreOutcome,
    TraderScoreRecord,
)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

@runtime_checkable
class ITradeSource(Protocol):
    """Read-only access to traders, their trades and risk limits."""

    async def list_active_traders(self) -> list[str]: ...

    async def fetch_trades(
        self, trader_id: str, period: ScoringPeriod
    ) -> list[TradeRecord]: ...

    async def fetch_risk_limits(self, trader_id: str) -> RiskLimits | None: ...


@runtime_checkable
class IScoreSink(Protocol):
    """Write side: upsert-overwrite of score records."""

    async def upsert_score(self, record: TraderScoreRecord) -> None: ...


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------

@runtime_checkable
class IScoreObserver(Protocol):
    """Receives scoring notifications after results are persisted."""

    def on_score(
        self, trader_id: str, period: ScoringPeriod, result: KpiScoreResult
    ) -> None: ...

    def on_batch_complete(
        self, period: ScoringPeriod, outcomes: Sequence[TraderScoreOutcome]
    ) -> None: ...
