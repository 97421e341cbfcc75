"""Scoring service — fetch, score, persist, notify.

The pipeline has three stages:

1. I/O in (:class:`ITradeSource`): trades for the period, risk limits.
2. The pure scoring core (:mod:`trader_kpi.scoring`).
3. I/O out (:class:`IScoreSink`) followed by observers.

Usage::

    service = KpiScoringService(store, store, engine=KpiScoringEngine(cfg))
    result = await service.score_trader("trader-1", period)
    outcomes = await service.run_batch(period)

``score_trader`` propagates errors to its caller.  ``run_batch`` never
raises for a single trader: each failure becomes an error outcome and the
remaining traders are still scored and persisted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from trader_kpi.core.interfaces import IScoreObserver, IScoreSink, ITradeSource
from trader_kpi.core.models import (
    KpiScoreResult,
    RiskLimits,
    ScoringPeriod,
    TradeRecord,
    TraderScoreOutcome,
    TraderScoreRecord,
    sort_chronologically,
)
from trader_kpi.observability.logger import get_trace_id, new_trace_id, scoring_context
from trader_kpi.scoring.engine import KpiScoringEngine

logger = logging.getLogger(__name__)


class CachingTradeSource:
    """Memoises trade and limit fetches for the lifetime of one run.

    A (trader, period) snapshot must not change mid-computation, so a
    batch reads each trader's data at most once.  Failed fetches are not
    cached.
    """

    def __init__(self, source: ITradeSource) -> None:
        self._source = source
        self._trades: dict[tuple[str, ScoringPeriod], list[TradeRecord]] = {}
        self._limits: dict[str, RiskLimits | None] = {}

    async def list_active_traders(self) -> list[str]:
        return await self._source.list_active_traders()

    async def fetch_trades(
        self, trader_id: str, period: ScoringPeriod
    ) -> list[TradeRecord]:
        key = (trader_id, period)
        if key not in self._trades:
            self._trades[key] = await self._source.fetch_trades(trader_id, period)
        return self._trades[key]

    async def fetch_risk_limits(self, trader_id: str) -> RiskLimits | None:
        if trader_id not in self._limits:
            self._limits[trader_id] = await self._source.fetch_risk_limits(trader_id)
        return self._limits[trader_id]


class KpiScoringService:
    """Runs the scoring pipeline for one trader or every active trader.

    Parameters
    ----------
    source:
        Read side: active traders, trades, risk limits.
    sink:
        Write side: upsert-overwrite keyed by (trader, period).
    engine:
        Configured scoring engine.  Defaults to standard weights.
    observers:
        Notified after each persisted score and after each batch.
    default_limits:
        Substituted when a trader has no risk-limit record.
    max_concurrency:
        Upper bound on traders scored concurrently in a batch.
    """

    def __init__(
        self,
        source: ITradeSource,
        sink: IScoreSink,
        *,
        engine: KpiScoringEngine | None = None,
        observers: Sequence[IScoreObserver] = (),
        default_limits: RiskLimits | None = None,
        max_concurrency: int = 8,
    ) -> None:
        self._source = source
        self._sink = sink
        self._engine = engine or KpiScoringEngine()
        self._observers = list(observers)
        self._default_limits = default_limits or RiskLimits()
        self._max_concurrency = max(1, max_concurrency)

    # ------------------------------------------------------------------
    # Single trader
    # ------------------------------------------------------------------

    async def score_trader(
        self,
        trader_id: str,
        period: ScoringPeriod,
        *,
        calculated_by: str | None = None,
    ) -> KpiScoreResult:
        """Score, persist and announce one trader's KPI for a period.

        Raises whatever the source or sink raises.
        """
        with scoring_context(
            trace_id=get_trace_id() or new_trace_id(),
            period=str(period),
            trader_id=trader_id,
        ):
            return await self._score_one(self._source, trader_id, period, calculated_by)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def run_batch(
        self,
        period: ScoringPeriod,
        *,
        calculated_by: str | None = None,
    ) -> list[TraderScoreOutcome]:
        """Score every active trader, isolating per-trader failures.

        Only a failure to list the active traders propagates.  Outcomes
        follow the order of the active-trader list.  A trace id already
        bound by the caller is reused for the whole batch.
        """
        with scoring_context(
            trace_id=get_trace_id() or new_trace_id(), period=str(period)
        ):
            return await self._run_batch(period, calculated_by)

    async def _run_batch(
        self, period: ScoringPeriod, calculated_by: str | None
    ) -> list[TraderScoreOutcome]:
        t0 = time.monotonic()
        source = CachingTradeSource(self._source)
        trader_ids = await source.list_active_traders()
        semaphore = asyncio.Semaphore(self._max_concurrency)

        logger.info(
            "Batch KPI run for %d active traders (%s, concurrency=%d)",
            len(trader_ids), period, self._max_concurrency,
        )

        async def _guarded(trader_id: str) -> TraderScoreOutcome:
            async with semaphore:
                with scoring_context(trader_id=trader_id):
                    try:
                        result = await self._score_one(
                            source, trader_id, period, calculated_by
                        )
                    except Exception as exc:
                        logger.exception("KPI scoring failed for %s", trader_id)
                        return TraderScoreOutcome(
                            trader_id=trader_id,
                            success=False,
                            error=f"{type(exc).__name__}: {exc}",
                        )
                    return TraderScoreOutcome(
                        trader_id=trader_id, success=True, result=result
                    )

        outcomes = list(await asyncio.gather(*(_guarded(t) for t in trader_ids)))

        elapsed = time.monotonic() - t0
        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(
            "Batch KPI run finished: %d/%d succeeded in %.2fs",
            succeeded, len(outcomes), elapsed,
        )
        try:
            from trader_kpi.observability.metrics import BATCH_DURATION
            BATCH_DURATION.observe(elapsed)
        except Exception:
            logger.debug("Failed to record batch duration", exc_info=True)

        for observer in self._observers:
            try:
                observer.on_batch_complete(period, outcomes)
            except Exception:
                logger.exception(
                    "Observer %s failed on batch completion", type(observer).__name__
                )
        return outcomes

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _score_one(
        self,
        source: ITradeSource,
        trader_id: str,
        period: ScoringPeriod,
        calculated_by: str | None,
    ) -> KpiScoreResult:
        trades = sort_chronologically(await source.fetch_trades(trader_id, period))
        limits = await source.fetch_risk_limits(trader_id)
        if limits is None:
            logger.debug("No risk limits for %s, using defaults", trader_id)
            limits = self._default_limits

        result = self._engine.score(trades, limits)

        await self._sink.upsert_score(
            TraderScoreRecord(
                trader_id=trader_id,
                period=period,
                result=result,
                calculated_by=calculated_by,
            )
        )

        for observer in self._observers:
            try:
                observer.on_score(trader_id, period, result)
            except Exception:
                logger.exception(
                    "Observer %s failed for %s", type(observer).__name__, trader_id
                )
        return result
