"""Payslip calculation engine and supporting arithmetic."""

from weekly_payroll.calculators.engine import PayrollEngine, calculate_payslip
from weekly_payroll.calculators.money import round_cents, to_decimal, to_whole
from weekly_payroll.calculators.types import (
    DisbursementType,
    PayslipAmounts,
    PayslipInputs,
    TransactionType,
)

__all__ = [
    "DisbursementType",
    "PayrollEngine",
    "PayslipAmounts",
    "PayslipInputs",
    "TransactionType",
    "calculate_payslip",
    "round_cents",
    "to_decimal",
    "to_whole",
]
