"""Trader profiles, trades, risk limits and KPI scores.

Revision ID: 001_kpi_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001_kpi_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "trader_profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("classification", sa.String(16), nullable=False, server_default="trainee"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_review_date", sa.Date, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_trader_profiles_is_active", "trader_profiles", ["is_active"])

    op.create_table(
        "trades",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("trader_id", sa.String(64), nullable=False),
        sa.Column("strategy_id", sa.String(64), nullable=True),
        sa.Column("direction", sa.String(8), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),

        # Prices
        sa.Column("entry_price", sa.Numeric(24, 8), nullable=False),
        sa.Column("exit_price", sa.Numeric(24, 8), nullable=True),
        sa.Column("stop_loss", sa.Numeric(24, 8), nullable=False, server_default="0"),
        sa.Column("position_size", sa.Numeric(24, 8), nullable=False, server_default="0"),

        # Outcome
        sa.Column("risk_percentage", sa.Float, nullable=False, server_default="0"),
        sa.Column("pnl_amount", sa.Numeric(24, 8), nullable=True),
        sa.Column("pnl_percentage", sa.Float, nullable=True),
        sa.Column("r_multiple", sa.Float, nullable=True),

        # Discipline
        sa.Column("rules_followed", sa.Boolean, nullable=True),
        sa.Column("rule_violations", JSONB, nullable=True),

        sa.Column("entry_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("exit_time", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_trades_trader_entry_time", "trades", ["trader_id", "entry_time"])

    op.create_table(
        "trader_risk_limits",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("trader_id", sa.String(64), unique=True, nullable=False),
        sa.Column("max_risk_per_trade", sa.Float, nullable=False, server_default="2"),
        sa.Column("daily_loss_limit", sa.Float, nullable=False, server_default="5"),
        sa.Column("weekly_loss_limit", sa.Float, nullable=False, server_default="10"),
        sa.Column("max_open_trades", sa.Integer, nullable=False, server_default="3"),
        sa.Column("max_leverage", sa.Float, nullable=False, server_default="1"),
        sa.Column("max_position_size", sa.Numeric(24, 8), nullable=True),
        sa.Column("set_by", sa.String(64), nullable=True),
        sa.Column("set_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "trader_kpi_scores",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("trader_id", sa.String(64), nullable=False),
        sa.Column("period_start", sa.Date, nullable=False),
        sa.Column("period_end", sa.Date, nullable=False),

        # Sub-scores
        sa.Column("risk_discipline_score", sa.Float, nullable=False),
        sa.Column("consistency_score", sa.Float, nullable=False),
        sa.Column("strategy_execution_score", sa.Float, nullable=False),
        sa.Column("profitability_score", sa.Float, nullable=False),
        sa.Column("total_score", sa.Float, nullable=False),

        # Statistics
        sa.Column("total_trades", sa.Integer, nullable=False, server_default="0"),
        sa.Column("winning_trades", sa.Integer, nullable=False, server_default="0"),
        sa.Column("win_rate", sa.Float, nullable=False, server_default="0"),
        sa.Column("average_r_multiple", sa.Float, nullable=True),
        sa.Column("max_drawdown", sa.Float, nullable=True),
        sa.Column("expectancy", sa.Float, nullable=True),
        sa.Column("recommended_action", sa.String(16), nullable=False),

        # Review
        sa.Column("action_taken", sa.String(32), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("calculated_by", sa.String(64), nullable=True),
        sa.Column("calculated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),

        sa.UniqueConstraint(
            "trader_id", "period_start", "period_end",
            name="uq_trader_kpi_scores_trader_period",
        ),
    )
    op.create_index(
        "ix_trader_kpi_scores_total_score", "trader_kpi_scores", ["total_score"]
    )


def downgrade() -> None:
    op.drop_index("ix_trader_kpi_scores_total_score", table_name="trader_kpi_scores")
    op.drop_table("trader_kpi_scores")
    op.drop_table("trader_risk_limits")
    op.drop_index("ix_trades_trader_entry_time", table_name="trades")
    op.drop_table("trades")
    op.drop_index("ix_trader_profiles_is_active", table_name="trader_profiles")
    op.drop_table("trader_profiles")
