"""Run context and structlog setup tests."""

import asyncio
import json
import logging

import pytest
import structlog

from trader_kpi.observability.logger import (
    HANDLER_NAME,
    get_logger,
    get_trace_id,
    new_trace_id,
    scoring_context,
    setup_logging,
)
from trader_kpi.orchestrator import KpiScoringService
from trader_kpi.storage import InMemoryTraderStore


@pytest.fixture
def kpi_handler():
    """Install the JSON handler and remove it afterwards."""
    root = logging.getLogger()
    level = root.level
    setup_logging(level="INFO", format="json")
    handler = next(h for h in root.handlers if h.get_name() == HANDLER_NAME)
    yield handler
    for h in list(root.handlers):
        if h.get_name() == HANDLER_NAME:
            root.removeHandler(h)
    root.setLevel(level)
    structlog.reset_defaults()


def _stdlib_record():
    return logging.LogRecord(
        "trader_kpi.orchestrator", logging.INFO, __file__, 1,
        "KPI scoring failed for %s", ("alice",), None,
    )


def test_no_trace_id_outside_context():
    assert get_trace_id() == ""


def test_context_binds_and_restores():
    with scoring_context(trace_id="run-42", period="2024-01-01..2024-01-31"):
        assert get_trace_id() == "run-42"
        assert structlog.contextvars.get_contextvars()["period"] == "2024-01-01..2024-01-31"
    assert get_trace_id() == ""


def test_none_fields_not_bound():
    with scoring_context(trace_id="abc", trader_id=None):
        assert "trader_id" not in structlog.contextvars.get_contextvars()


def test_new_trace_ids_are_unique():
    assert new_trace_id() != new_trace_id()


@pytest.mark.asyncio
async def test_context_isolated_per_task():
    async def _run(name):
        with scoring_context(trader_id=name):
            await asyncio.sleep(0)
            return structlog.contextvars.get_contextvars()["trader_id"]

    assert await asyncio.gather(_run("a"), _run("b")) == ["a", "b"]


def test_stdlib_records_carry_run_context(kpi_handler):
    with scoring_context(trace_id="run-42", period="2024-01", trader_id="alice"):
        line = json.loads(kpi_handler.formatter.format(_stdlib_record()))
    assert line["event"] == "KPI scoring failed for alice"
    assert line["trace_id"] == "run-42"
    assert line["trader_id"] == "alice"
    assert line["period"] == "2024-01"
    assert line["level"] == "info"
    assert line["logger"] == "trader_kpi.orchestrator"


def test_setup_is_idempotent(kpi_handler):
    setup_logging(level="DEBUG", format="json")
    root = logging.getLogger()
    assert [h.get_name() for h in root.handlers].count(HANDLER_NAME) == 1
    assert root.level == logging.DEBUG


@pytest.mark.asyncio
async def test_batch_logs_share_trace_id(january):
    store = InMemoryTraderStore()
    store.add_trader("alice")
    store.add_trader("bob")
    seen = []

    class _Capture(logging.Handler):
        def emit(self, record):
            seen.append(structlog.contextvars.get_contextvars())

    handler = _Capture()
    logging.getLogger("trader_kpi").addHandler(handler)
    logging.getLogger("trader_kpi").setLevel(logging.DEBUG)
    try:
        with scoring_context(trace_id="nightly-1"):
            await KpiScoringService(store, store).run_batch(january)
    finally:
        logging.getLogger("trader_kpi").removeHandler(handler)
        logging.getLogger("trader_kpi").setLevel(logging.NOTSET)

    assert seen
    assert {ctx["trace_id"] for ctx in seen} == {"nightly-1"}
    assert {ctx["period"] for ctx in seen} == {str(january)}
    per_trader = {ctx.get("trader_id") for ctx in seen} - {None}
    assert per_trader == {"alice", "bob"}


@pytest.mark.parametrize("fmt", ["json", "console"])
def test_setup_logging_configures_structlog(fmt):
    level = logging.getLogger().level
    setup_logging(level="DEBUG", format=fmt)
    try:
        log = get_logger("trader_kpi.test")
        log.info("configured", fmt=fmt)
    finally:
        root = logging.getLogger()
        for h in list(root.handlers):
            if h.get_name() == HANDLER_NAME:
                root.removeHandler(h)
        root.setLevel(level)
        structlog.reset_defaults()
