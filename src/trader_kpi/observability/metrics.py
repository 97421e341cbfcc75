"""Prometheus metrics endpoint.

Exposes scoring-run metrics for monitoring via Grafana.
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Scoring metrics
# ---------------------------------------------------------------------------

SCORES_TOTAL = Counter(
    "kpi_scores_total",
    "KPI scores computed and persisted",
    ["action"],
)

SCORE_FAILURES_TOTAL = Counter(
    "kpi_score_failures_total",
    "Traders whose scoring failed during a batch run",
)

TOTAL_SCORE = Histogram(
    "kpi_total_score",
    "Distribution of composite KPI scores",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)

BATCH_DURATION = Histogram(
    "kpi_batch_duration_seconds",
    "Wall-clock duration of batch scoring runs",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)

BATCH_TRADERS = Counter(
    "kpi_batch_traders_total",
    "Traders processed by batch runs",
    ["outcome"],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def record_score(action: str, total_score: float) -> None:
    SCORES_TOTAL.labels(action=action).inc()
    TOTAL_SCORE.observe(total_score)


def record_batch(succeeded: int, failed: int) -> None:
    BATCH_TRADERS.labels(outcome="success").inc(succeeded)
    BATCH_TRADERS.labels(outcome="failure").inc(failed)
    SCORE_FAILURES_TOTAL.inc(failed)


def start_metrics_server(port: int = 9090) -> None:
    """Start the Prometheus HTTP metrics server."""
    start_http_server(port)
    logger.info("Metrics server started on port %d", port)
