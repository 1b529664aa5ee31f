"""Type definitions for the payslip calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from weekly_payroll.calculators.money import ZERO


class DisbursementType(str, Enum):
    """How a new loan interacts with this week's payment."""

    SEPARATE = "Separate"
    WITH_SALARY = "With Salary"
    REPAYMENT = "Repayment"

    @classmethod
    def parse(cls, value: Any) -> DisbursementType | None:
        """Parse stored or CamelCase values; blank means no loan movement."""
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        if not text:
            return None
        squashed = text.replace(" ", "").replace("_", "").lower()
        for member in cls:
            if squashed == member.value.replace(" ", "").lower():
                return member
        raise ValueError(
            f"Invalid loan disbursement type '{value}'. Must be one of: "
            + ", ".join(m.value for m in cls)
        )


class TransactionType(str, Enum):
    """Loan ledger transaction direction."""

    DISBURSEMENT = "Disbursement"
    REPAYMENT = "Repayment"


@dataclass
class PayslipInputs:
    """Everything the engine needs for one payslip.

    Values are taken as given; ``PayrollEngine`` coerces anything
    non-numeric to zero.
    """

    hours: Any = 0
    minutes: Any = 0
    overtime_hours: Any = 0
    overtime_minutes: Any = 0
    hourly_rate: Any = ZERO
    leave_pay: Any = ZERO
    bonus_pay: Any = ZERO
    other_income: Any = ZERO
    other_deductions: Any = ZERO
    employment_status: str = "Permanent"
    loan_deduction_this_week: Any = ZERO
    new_loan_this_week: Any = ZERO
    loan_disbursement_type: DisbursementType | str | None = None
    current_loan_balance: Any = ZERO


@dataclass(frozen=True)
class PayslipAmounts:
    """Monetary results of one payslip calculation, all cent-rounded."""

    standard_time_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    uif: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    paid_to_account: Decimal
    updated_loan_balance: Decimal
    current_loan_balance: Decimal
    warnings: tuple[str, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "standard_time_pay": str(self.standard_time_pay),
            "overtime_pay": str(self.overtime_pay),
            "gross_pay": str(self.gross_pay),
            "uif": str(self.uif),
            "total_deductions": str(self.total_deductions),
            "net_pay": str(self.net_pay),
            "paid_to_account": str(self.paid_to_account),
            "updated_loan_balance": str(self.updated_loan_balance),
            "current_loan_balance": str(self.current_loan_balance),
            "warnings": list(self.warnings),
        }
