"""CLI entry point for the KPI scoring engine."""

from __future__ import annotations

import asyncio
import sys
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncIterator

import click

from .core.config import Settings, load_settings
from .core.enums import TraderClassification
from .core.errors import GovernanceError
from .core.models import KpiScoreResult, ScoringPeriod
from .observability.logger import get_logger, new_trace_id, scoring_context, setup_logging

log = get_logger(__name__)


@asynccontextmanager
async def _open_store(settings: Settings) -> AsyncIterator[Any]:
    """PostgreSQL-backed store for one CLI invocation."""
    from .storage.postgres.connection import dispose, init_engine, session_factory
    from .storage.postgres.repos import PostgresTraderStore

    await init_engine(settings.postgres_url, use_null_pool=True)
    try:
        yield PostgresTraderStore(session_factory())
    finally:
        await dispose()


def _bootstrap(config: str | None) -> Settings:
    settings = load_settings(config)
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )
    if settings.observability.metrics_enabled:
        from .observability.metrics import start_metrics_server

        start_metrics_server(settings.observability.metrics_port)
    return settings


def _build_service(settings: Settings, store: Any):
    from .observability.observers import LoggingObserver, MetricsObserver
    from .orchestrator import KpiScoringService
    from .scoring.engine import KpiScoringEngine

    return KpiScoringService(
        store,
        store,
        engine=KpiScoringEngine(settings.scoring),
        observers=[LoggingObserver(), MetricsObserver()],
        default_limits=settings.risk_defaults.to_limits(),
        max_concurrency=settings.batch.max_concurrency,
    )


def _period(start: str, end: str) -> ScoringPeriod:
    try:
        return ScoringPeriod(
            period_start=date.fromisoformat(start),
            period_end=date.fromisoformat(end),
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _print_result(trader_id: str, result: KpiScoreResult) -> None:
    click.echo(f"\n{'=' * 60}")
    click.echo(f"KPI SCORE: {trader_id}")
    click.echo(f"{'=' * 60}")
    click.echo(f"  Risk Discipline:     {result.risk_discipline_score:6.1f}")
    click.echo(f"  Consistency:         {result.consistency_score:6.1f}")
    click.echo(f"  Strategy Execution:  {result.strategy_execution_score:6.1f}")
    click.echo(f"  Profitability:       {result.profitability_score:6.1f}")
    click.echo(f"  Total:               {result.total_score:6.1f}/100")
    click.echo(f"  Closed Trades:       {result.total_trades} ({result.winning_trades} won, {result.win_rate:.1f}%)")
    click.echo(f"  Avg R:               {result.average_r_multiple:+.2f}")
    click.echo(f"  Expectancy:          {result.expectancy:+.2f}R")
    click.echo(f"  Max Drawdown:        {result.max_drawdown:.2f}%")
    click.echo(f"  Recommendation:      {result.recommended_action.value.upper()}")


@click.group()
def main() -> None:
    """Trader KPI Scoring Engine."""


@main.command()
@click.option("--trader-id", required=True, help="Trader to score")
@click.option("--start", required=True, help="Period start (YYYY-MM-DD)")
@click.option("--end", required=True, help="Period end (YYYY-MM-DD)")
@click.option("--config", default=None, help="Config file path")
def score(trader_id: str, start: str, end: str, config: str | None) -> None:
    """Score one trader for a period and persist the result."""
    period = _period(start, end)
    settings = _bootstrap(config)

    async def _run() -> KpiScoreResult:
        async with _open_store(settings) as store:
            service = _build_service(settings, store)
            return await service.score_trader(
                trader_id, period, calculated_by=settings.calculated_by
            )

    _print_result(trader_id, asyncio.run(_run()))


@main.command()
@click.option("--start", required=True, help="Period start (YYYY-MM-DD)")
@click.option("--end", required=True, help="Period end (YYYY-MM-DD)")
@click.option("--config", default=None, help="Config file path")
def batch(start: str, end: str, config: str | None) -> None:
    """Score every active trader for a period."""
    period = _period(start, end)
    settings = _bootstrap(config)

    async def _run():
        async with _open_store(settings) as store:
            service = _build_service(settings, store)
            return await service.run_batch(period, calculated_by=settings.calculated_by)

    # run_batch reuses the bound trace id
    with scoring_context(trace_id=new_trace_id(), period=str(period)):
        outcomes = asyncio.run(_run())
        succeeded = [o for o in outcomes if o.success]
        failed = [o for o in outcomes if not o.success]
        log.info(
            "batch_complete",
            succeeded=len(succeeded),
            failed=[o.trader_id for o in failed],
        )

    click.echo(f"Calculated KPIs for {len(succeeded)}/{len(outcomes)} traders ({period})")
    for outcome in succeeded:
        r = outcome.result
        click.echo(
            f"  {outcome.trader_id:24s} {r.total_score:6.1f}  {r.recommended_action.value}"
        )
    for outcome in failed:
        click.echo(f"  {outcome.trader_id:24s} FAILED: {outcome.error}", err=True)

    if failed:
        sys.exit(1)


@main.command()
@click.option("--config", default=None, help="Config file path")
def candidates(config: str | None) -> None:
    """List traders awaiting a promotion decision."""
    from .governance.promotion import promotion_candidates

    settings = _bootstrap(config)

    async def _run():
        async with _open_store(settings) as store:
            records = await store.list_scores(
                min_total_score=settings.promotion.min_total_score
            )
            classifications = await store.trader_classifications()
        return promotion_candidates(records, classifications, settings.promotion)

    found = asyncio.run(_run())
    if not found:
        click.echo("No promotion candidates.")
        return
    for c in found:
        click.echo(
            f"  {c.trader_id:24s} {c.total_score:6.1f}  "
            f"{c.current.value} -> {c.recommended.value}  ({c.record.period})"
        )


@main.command()
@click.option("--trader-id", required=True, help="Trader to promote")
@click.option(
    "--to",
    "to_level",
    required=True,
    type=click.Choice([c.value for c in TraderClassification]),
    help="New classification",
)
@click.option("--notes", default=None, help="Reviewer notes stored with the decision")
@click.option("--config", default=None, help="Config file path")
def promote(trader_id: str, to_level: str, notes: str | None, config: str | None) -> None:
    """Reclassify a trader and settle their open promote verdicts."""
    settings = _bootstrap(config)
    classification = TraderClassification(to_level)

    async def _run() -> int:
        async with _open_store(settings) as store:
            return await store.apply_promotion(trader_id, classification, notes=notes)

    try:
        stamped = asyncio.run(_run())
    except GovernanceError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(
        f"Promoted {trader_id} to {classification.value} "
        f"({stamped} KPI record(s) actioned)"
    )


@main.command()
@click.option("--format", "fmt", type=click.Choice(["csv", "json"]), default="csv")
@click.option("--min-score", default=0.0, type=float, help="Only rows at or above this total")
@click.option("--config", default=None, help="Config file path")
def export(fmt: str, min_score: float, config: str | None) -> None:
    """Export persisted KPI scores to stdout."""
    from .reporting.export import ScoreExporter

    settings = _bootstrap(config)

    async def _run():
        async with _open_store(settings) as store:
            return await store.list_scores(min_total_score=min_score)

    records = asyncio.run(_run())
    exporter = ScoreExporter()
    click.echo(exporter.to_csv(records) if fmt == "csv" else exporter.to_json(records))


if __name__ == "__main__":
    main()
