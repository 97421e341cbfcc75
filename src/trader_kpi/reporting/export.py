"""KPI score export — CSV/JSON output of persisted score records.

Usage::

    exporter = ScoreExporter()
    csv_str = exporter.to_csv(records)
    json_str = exporter.to_json(records)
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Sequence

from trader_kpi.core.models import TraderScoreRecord

_CSV_COLUMNS = [
    "trader_id",
    "period_start",
    "period_end",
    "risk_discipline_score",
    "consistency_score",
    "strategy_execution_score",
    "profitability_score",
    "total_score",
    "total_trades",
    "winning_trades",
    "win_rate",
    "average_r_multiple",
    "max_drawdown",
    "expectancy",
    "recommended_action",
    "action_taken",
    "notes",
    "calculated_by",
    "calculated_at",
]

_FLOAT_COLUMNS = {
    "risk_discipline_score",
    "consistency_score",
    "strategy_execution_score",
    "profitability_score",
    "total_score",
    "win_rate",
    "average_r_multiple",
    "max_drawdown",
    "expectancy",
}


class ScoreExporter:
    """Export score records to CSV or JSON.

    Parameters
    ----------
    decimal_places : int
        Rounding precision for score and ratio fields.  Default 2.
    """

    def __init__(self, *, decimal_places: int = 2) -> None:
        self._dp = decimal_places

    def to_dict(self, record: TraderScoreRecord) -> dict[str, Any]:
        row: dict[str, Any] = {
            "trader_id": record.trader_id,
            "period_start": record.period.period_start.isoformat(),
            "period_end": record.period.period_end.isoformat(),
            "action_taken": record.action_taken,
            "notes": record.notes,
            "calculated_by": record.calculated_by,
            "calculated_at": record.calculated_at.isoformat(),
        }
        result = record.result.model_dump(mode="json")
        for key, value in result.items():
            row[key] = round(value, self._dp) if key in _FLOAT_COLUMNS else value
        return {col: row.get(col) for col in _CSV_COLUMNS}

    def to_csv(self, records: Sequence[TraderScoreRecord]) -> str:
        """Records as CSV text with a header row, in the given order."""
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=_CSV_COLUMNS)
        writer.writeheader()
        for record in records:
            writer.writerow(
                {k: "" if v is None else v for k, v in self.to_dict(record).items()}
            )
        return buf.getvalue()

    def to_json(self, records: Sequence[TraderScoreRecord], *, indent: int = 2) -> str:
        return json.dumps([self.to_dict(r) for r in records], indent=indent)
