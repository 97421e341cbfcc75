"""Tests for storage.memory.InMemoryTraderStore."""

from datetime import date, datetime, timedelta, timezone

import pytest

from trader_kpi.core.enums import TraderClassification
from trader_kpi.core.errors import GovernanceError
from trader_kpi.core.interfaces import IScoreSink, ITradeSource
from trader_kpi.core.models import RiskLimits, ScoringPeriod, TraderScoreRecord
from trader_kpi.scoring.engine import calculate_kpi_scores
from trader_kpi.storage import InMemoryTraderStore


@pytest.fixture
def store():
    s = InMemoryTraderStore()
    s.add_trader("alice", classification=TraderClassification.SENIOR)
    s.add_trader("bob")
    s.add_trader("carl", active=False)
    return s


def _at(day, hour=10):
    return datetime(2024, 1, day, hour, 0, tzinfo=timezone.utc)


def test_satisfies_protocols(store):
    assert isinstance(store, ITradeSource)
    assert isinstance(store, IScoreSink)


@pytest.mark.asyncio
async def test_lists_only_active_traders(store):
    assert await store.list_active_traders() == ["alice", "bob"]


@pytest.mark.asyncio
async def test_fetch_filters_by_entry_date_inclusive(store, trade_factory, january):
    store.add_trades(
        "alice",
        [
            trade_factory(entry_time=_at(31, hour=23)),
            trade_factory(entry_time=datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc)),
            trade_factory(entry_time=_at(1, hour=0)),
            trade_factory(entry_time=datetime(2024, 2, 1, 0, 0, tzinfo=timezone.utc)),
        ],
    )
    trades = await store.fetch_trades("alice", january)
    assert [t.entry_time for t in trades] == [_at(1, hour=0), _at(31, hour=23)]


@pytest.mark.asyncio
async def test_fetch_unknown_trader_is_empty(store, january):
    assert await store.fetch_trades("nobody", january) == []


@pytest.mark.asyncio
async def test_risk_limits(store):
    assert await store.fetch_risk_limits("alice") is None
    store.set_risk_limits("alice", RiskLimits(max_risk_per_trade=1.0))
    limits = await store.fetch_risk_limits("alice")
    assert limits.max_risk_per_trade == 1.0


class TestUpsert:
    @staticmethod
    def _record(trader_id, period, trades, **kw):
        return TraderScoreRecord(
            trader_id=trader_id, period=period, result=calculate_kpi_scores(trades), **kw
        )

    @pytest.mark.asyncio
    async def test_overwrites_same_key(self, store, january, sign_sequence):
        await store.upsert_score(self._record("alice", january, sign_sequence("+++++")))
        await store.upsert_score(self._record("alice", january, sign_sequence("-----")))
        stored = store.get_score("alice", january)
        assert stored.result.winning_trades == 0
        assert len(await store.list_scores()) == 1

    @pytest.mark.asyncio
    async def test_keeps_review_decision_on_recompute(self, store, january, sign_sequence):
        await store.upsert_score(
            self._record("alice", january, [], action_taken="promoted", notes="ok")
        )
        await store.upsert_score(self._record("alice", january, sign_sequence("+++")))
        stored = store.get_score("alice", january)
        assert stored.action_taken == "promoted"
        assert stored.notes == "ok"
        assert stored.result.total_trades == 3

    @pytest.mark.asyncio
    async def test_list_scores_filters_and_orders(self, store, sign_sequence):
        jan = ScoringPeriod(period_start=date(2024, 1, 1), period_end=date(2024, 1, 31))
        feb = ScoringPeriod(period_start=date(2024, 2, 1), period_end=date(2024, 2, 29))
        await store.upsert_score(self._record("alice", jan, sign_sequence("+++++")))
        await store.upsert_score(self._record("bob", feb, sign_sequence("+++++")))
        await store.upsert_score(self._record("carl", feb, []))

        records = await store.list_scores(min_total_score=50.0)
        assert [r.trader_id for r in records] == ["bob", "alice"]


@pytest.mark.asyncio
async def test_classifications(store):
    classes = await store.trader_classifications()
    assert classes["alice"] == TraderClassification.SENIOR
    assert classes["bob"] == TraderClassification.TRAINEE


class TestApplyPromotion:
    @staticmethod
    def _record(trader_id, month, trades, **kw):
        period = ScoringPeriod(period_start=date(2024, month, 1), period_end=date(2024, month, 28))
        return TraderScoreRecord(
            trader_id=trader_id, period=period, result=calculate_kpi_scores(trades), **kw
        )

    @pytest.mark.asyncio
    async def test_reclassifies_and_stamps_open_promote_records(self, store, sign_sequence):
        await store.upsert_score(self._record("bob", 1, sign_sequence("+++++")))
        await store.upsert_score(self._record("bob", 2, sign_sequence("++-++")))
        await store.upsert_score(
            self._record("bob", 3, sign_sequence("+++++"), action_taken="deferred")
        )
        await store.upsert_score(self._record("bob", 4, []))  # retrain verdict
        await store.upsert_score(self._record("alice", 1, sign_sequence("+++++")))

        stamped = await store.apply_promotion(
            "bob", TraderClassification.JUNIOR, notes="Q1 review"
        )

        assert stamped == 2
        assert (await store.trader_classifications())["bob"] == TraderClassification.JUNIOR
        assert store.last_review_date("bob") is not None
        by_month = {r.period.period_start.month: r for r in await store.list_scores() if r.trader_id == "bob"}
        assert by_month[1].action_taken == "Promoted to junior"
        assert by_month[1].notes == "Q1 review"
        assert by_month[2].action_taken == "Promoted to junior"
        assert by_month[3].action_taken == "deferred"
        assert by_month[4].action_taken is None
        alice = [r for r in await store.list_scores() if r.trader_id == "alice"]
        assert alice[0].action_taken is None

    @pytest.mark.asyncio
    async def test_no_open_records(self, store):
        assert await store.apply_promotion("alice", TraderClassification.LEAD) == 0
        assert (await store.trader_classifications())["alice"] == TraderClassification.LEAD

    @pytest.mark.asyncio
    async def test_unknown_trader_rejected(self, store):
        with pytest.raises(GovernanceError, match="nobody"):
            await store.apply_promotion("nobody", TraderClassification.JUNIOR)
        assert store.last_review_date("nobody") is None
