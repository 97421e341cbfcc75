"""Property tests for KPI scoring invariants.

Uses hypothesis to verify:
- Every sub-score and the total stay within [0, 100]
- Scoring is deterministic for the same input
- A drawdown above the suspension limit always yields ``suspend``
- Counters never exceed the number of closed trades
"""

from decimal import Decimal

from hypothesis import given, settings, strategies as st

from trader_kpi.core.enums import RecommendedAction, TradeStatus
from trader_kpi.core.models import RiskLimits, TradeRecord
from trader_kpi.scoring.engine import calculate_kpi_scores
from trader_kpi.scoring.policy import recommend_action

_EPS = 1e-9


@st.composite
def trades(draw):
    status = draw(st.sampled_from(list(TradeStatus)))
    pnl = draw(st.none() | st.decimals(min_value=-1000, max_value=1000, places=2))
    return TradeRecord(
        trade_id=draw(st.uuids()).hex,
        status=status,
        strategy_id=draw(st.none() | st.just("breakout")),
        entry_price=Decimal("100"),
        stop_loss=draw(st.sampled_from([Decimal("0"), Decimal("95")])),
        pnl_amount=pnl,
        pnl_percentage=draw(st.none() | st.floats(min_value=-50, max_value=50)),
        r_multiple=draw(st.none() | st.floats(min_value=-10, max_value=10)),
        risk_percentage=draw(st.floats(min_value=0, max_value=20)),
        rules_followed=draw(st.none() | st.booleans()),
        rule_violations=draw(st.lists(st.sampled_from(["oversize", "no_plan", "moved_stop"]), max_size=4)),
    )


trade_lists = st.lists(trades(), max_size=30)
limits = st.builds(RiskLimits, max_risk_per_trade=st.floats(min_value=0.1, max_value=10))


@given(trade_list=trade_lists, risk_limits=limits)
@settings(max_examples=200)
def test_scores_bounded(trade_list, risk_limits):
    """All sub-scores and the total lie in [0, 100]."""
    r = calculate_kpi_scores(trade_list, risk_limits)
    for value in (
        r.risk_discipline_score,
        r.consistency_score,
        r.strategy_execution_score,
        r.profitability_score,
        r.total_score,
    ):
        assert -_EPS <= value <= 100 + _EPS


@given(trade_list=trade_lists, risk_limits=limits)
def test_deterministic(trade_list, risk_limits):
    """The same trades and limits always give an equal result."""
    assert calculate_kpi_scores(trade_list, risk_limits) == calculate_kpi_scores(
        trade_list, risk_limits
    )


@given(trade_list=trade_lists)
def test_counters_consistent(trade_list):
    r = calculate_kpi_scores(trade_list)
    closed = sum(1 for t in trade_list if t.status == TradeStatus.CLOSED)
    assert r.total_trades == closed
    assert 0 <= r.winning_trades <= r.total_trades
    assert 0.0 <= r.win_rate <= 100.0
    assert r.max_drawdown >= 0.0


@given(trade_list=trade_lists)
def test_drawdown_over_limit_suspends(trade_list):
    r = calculate_kpi_scores(trade_list)
    if r.max_drawdown > 20:
        assert r.recommended_action == RecommendedAction.SUSPEND
    else:
        assert r.recommended_action != RecommendedAction.SUSPEND


@given(
    total=st.floats(min_value=0, max_value=100),
    drawdown=st.floats(min_value=20.0001, max_value=1000),
)
def test_suspend_overrides_any_score(total, drawdown):
    assert recommend_action(total, drawdown) == RecommendedAction.SUSPEND
