"""Configuration management for weekly payroll."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


class LoanOverdrawPolicy:
    """What to do when a loan deduction exceeds the outstanding balance."""

    WARN = "warn"
    REJECT = "reject"

    ALL = (WARN, REJECT)


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    host: str
    port: int
    debug: bool
    log_level: str

    # Punch import / reconciliation
    clock_skew_hours: float = 0.0
    lunch_deduction_minutes: int = 30
    lunch_threshold_minutes: int = 300
    aux_device_keywords: tuple[str, ...] = ("bathroom", "break")
    double_punch_window_seconds: int = 60

    # Payslips
    payslip_edit_grace_days: int = 0

    # Loans
    loan_overdraw_policy: str = LoanOverdrawPolicy.WARN

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.loan_overdraw_policy not in LoanOverdrawPolicy.ALL:
            raise ValueError(
                f"loan_overdraw_policy must be one of {LoanOverdrawPolicy.ALL}"
            )
        if self.lunch_deduction_minutes < 0 or self.lunch_threshold_minutes < 0:
            raise ValueError("lunch settings cannot be negative")
        if self.double_punch_window_seconds < 0:
            raise ValueError("double_punch_window_seconds cannot be negative")
        if self.payslip_edit_grace_days < 0:
            raise ValueError("payslip_edit_grace_days cannot be negative")

    @property
    def HOST(self) -> str:
        """Alias for host."""
        return self.host

    @property
    def PORT(self) -> int:
        """Alias for port."""
        return self.port

    @property
    def DEBUG(self) -> bool:
        """Alias for debug."""
        return self.debug

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        keywords = os.getenv("AUX_DEVICE_KEYWORDS", "bathroom,break")

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///weekly_payroll.db"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            # Device clocks drift by a deployment-specific whole number of
            # hours; measured on site, not derived from a timezone.
            clock_skew_hours=float(os.getenv("CLOCK_SKEW_HOURS", "0")),
            lunch_deduction_minutes=int(os.getenv("LUNCH_DEDUCTION_MINUTES", "30")),
            lunch_threshold_minutes=int(os.getenv("LUNCH_THRESHOLD_MINUTES", "300")),
            aux_device_keywords=tuple(
                k.strip().lower() for k in keywords.split(",") if k.strip()
            ),
            double_punch_window_seconds=int(
                os.getenv("DOUBLE_PUNCH_WINDOW_SECONDS", "60")
            ),
            loan_overdraw_policy=os.getenv("LOAN_OVERDRAW_POLICY", "warn").lower(),
            payslip_edit_grace_days=int(os.getenv("PAYSLIP_EDIT_GRACE_DAYS", "0")),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI and API entry points."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
