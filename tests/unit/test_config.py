"""Settings loading and validation tests."""

import pytest
from pydantic import ValidationError

from trader_kpi.core.config import (
    RiskLimitDefaults,
    ScoringWeights,
    Settings,
    load_settings,
)
from trader_kpi.core.errors import ConfigError
from trader_kpi.core.models import RiskLimits


def test_defaults():
    settings = Settings()
    w = settings.scoring.weights
    assert (w.risk_discipline, w.consistency, w.strategy_execution, w.profitability) == (
        0.40, 0.25, 0.20, 0.15,
    )
    assert settings.scoring.policy.suspend_drawdown_pct == 20.0
    assert settings.batch.max_concurrency == 8
    assert settings.promotion.min_total_score == 75.0
    assert settings.risk_defaults.to_limits() == RiskLimits()


def test_weights_must_sum_to_one():
    with pytest.raises(ValidationError, match="sum to 1.0"):
        ScoringWeights(risk_discipline=0.5, consistency=0.5, strategy_execution=0.5, profitability=0.0)


def test_negative_weight_rejected():
    with pytest.raises(ValidationError):
        ScoringWeights(risk_discipline=1.2, consistency=-0.2, strategy_execution=0.0, profitability=0.0)


def test_risk_defaults_to_limits():
    limits = RiskLimitDefaults(max_risk_per_trade=1.0, daily_loss_limit=3.0).to_limits()
    assert limits.max_risk_per_trade == 1.0
    assert limits.daily_loss_limit == 3.0
    assert limits.weekly_loss_limit == 10.0


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.toml")
        assert settings.batch.max_concurrency == 8

    def test_toml_file(self, tmp_path):
        path = tmp_path / "kpi.toml"
        path.write_text(
            'calculated_by = "nightly"\n'
            "\n"
            "[batch]\n"
            "max_concurrency = 2\n"
            "\n"
            "[scoring.policy]\n"
            "suspend_drawdown_pct = 15.0\n"
        )
        settings = load_settings(path)
        assert settings.calculated_by == "nightly"
        assert settings.batch.max_concurrency == 2
        assert settings.scoring.policy.suspend_drawdown_pct == 15.0
        assert settings.scoring.policy.promote_at == 80.0

    def test_overrides_win(self, tmp_path):
        path = tmp_path / "kpi.toml"
        path.write_text('calculated_by = "file"\n')
        settings = load_settings(path, overrides={"calculated_by": "override"})
        assert settings.calculated_by == "override"

    def test_invalid_config_raises_config_error(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text(
            "[scoring.weights]\n"
            "risk_discipline = 0.9\n"
            "consistency = 0.9\n"
        )
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings(path)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("KPI_BATCH__MAX_CONCURRENCY", "3")
        monkeypatch.setenv("KPI_CALCULATED_BY", "env-runner")
        settings = load_settings()
        assert settings.batch.max_concurrency == 3
        assert settings.calculated_by == "env-runner"
