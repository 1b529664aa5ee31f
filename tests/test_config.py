"""Tests for settings loading."""

import pytest

from tests.conftest import make_settings
from weekly_payroll.calculators.reconciler import PunchReconciler
from weekly_payroll.config import LoanOverdrawPolicy, Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for name in ("DATABASE_URL", "CLOCK_SKEW_HOURS", "LOAN_OVERDRAW_POLICY", "AUX_DEVICE_KEYWORDS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.database_url == "sqlite:///weekly_payroll.db"
        assert settings.clock_skew_hours == 0.0
        assert settings.lunch_deduction_minutes == 30
        assert settings.lunch_threshold_minutes == 300
        assert settings.aux_device_keywords == ("bathroom", "break")
        assert settings.loan_overdraw_policy == LoanOverdrawPolicy.WARN

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CLOCK_SKEW_HOURS", "-2")
        monkeypatch.setenv("AUX_DEVICE_KEYWORDS", "Smoke Break, toilet ,")
        monkeypatch.setenv("LOAN_OVERDRAW_POLICY", "REJECT")
        monkeypatch.setenv("PAYSLIP_EDIT_GRACE_DAYS", "1")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = get_settings()

        assert settings.clock_skew_hours == -2.0
        assert settings.aux_device_keywords == ("smoke break", "toilet")
        assert settings.loan_overdraw_policy == LoanOverdrawPolicy.REJECT
        assert settings.payslip_edit_grace_days == 1
        assert settings.log_level == "DEBUG"
        assert get_settings() is settings

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            make_settings(loan_overdraw_policy="ignore")

    def test_negative_grace_days(self):
        with pytest.raises(ValueError):
            make_settings(payslip_edit_grace_days=-1)

    def test_reconciler_follows_settings(self):
        reconciler = PunchReconciler.from_settings(
            make_settings(lunch_deduction_minutes=45, aux_device_keywords=("smoke",))
        )

        assert reconciler.lunch_deduction_minutes == 45
        assert reconciler.aux_device_keywords == ("smoke",)
