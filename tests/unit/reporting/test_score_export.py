"""Tests for reporting.export — CSV/JSON score export."""

import csv
import io
import json
from datetime import date, datetime, timezone

from trader_kpi.core.models import ScoringPeriod, TraderScoreRecord
from trader_kpi.reporting.export import ScoreExporter
from trader_kpi.scoring.engine import calculate_kpi_scores


def _record(trades, trader_id="trader-1", **kw):
    return TraderScoreRecord(
        trader_id=trader_id,
        period=ScoringPeriod(period_start=date(2024, 1, 1), period_end=date(2024, 1, 31)),
        result=calculate_kpi_scores(trades),
        calculated_by="nightly",
        calculated_at=datetime(2024, 2, 1, 2, 0, tzinfo=timezone.utc),
        **kw,
    )


class TestToDict:
    def test_flattens_and_rounds(self, sign_sequence):
        row = ScoreExporter(decimal_places=1).to_dict(_record(sign_sequence("++-+-")))
        assert row["trader_id"] == "trader-1"
        assert row["period_start"] == "2024-01-01"
        assert row["period_end"] == "2024-01-31"
        assert row["recommended_action"] == "promote"
        assert row["total_trades"] == 5
        assert row["win_rate"] == 60.0
        assert row["calculated_at"] == "2024-02-01T02:00:00+00:00"
        assert row["action_taken"] is None
        assert row["notes"] is None
        assert row["total_score"] == round(row["total_score"], 1)


class TestCsv:
    def test_header_and_rows(self, sign_sequence):
        trades = sign_sequence("++-+-")
        records = [
            _record(trades, "a"),
            _record(trades, "b", action_taken="promoted", notes="Consistent, low drawdown"),
        ]
        text = ScoreExporter().to_csv(records)
        rows = list(csv.DictReader(io.StringIO(text)))
        assert [r["trader_id"] for r in rows] == ["a", "b"]
        assert rows[0]["action_taken"] == ""
        assert rows[1]["action_taken"] == "promoted"
        assert rows[0]["notes"] == ""
        assert rows[1]["notes"] == "Consistent, low drawdown"
        assert list(rows[0])[:3] == ["trader_id", "period_start", "period_end"]

    def test_empty_has_header_only(self):
        text = ScoreExporter().to_csv([])
        assert text.strip().startswith("trader_id,period_start")
        assert len(text.strip().splitlines()) == 1


class TestJson:
    def test_round_trips_through_json(self, sign_sequence):
        payload = json.loads(ScoreExporter().to_json([_record(sign_sequence("++-+-"))]))
        assert len(payload) == 1
        assert payload[0]["calculated_by"] == "nightly"
        assert payload[0]["recommended_action"] == "promote"
