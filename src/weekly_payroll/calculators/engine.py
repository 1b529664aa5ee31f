"""Payslip calculation engine."""

from __future__ import annotations

from decimal import Decimal

from weekly_payroll.calculators.money import (
    ZERO,
    round_cents,
    to_decimal,
    to_whole,
)
from weekly_payroll.calculators.types import (
    DisbursementType,
    PayslipAmounts,
    PayslipInputs,
)


class PayrollEngine:
    """Maps hours, rate, add-ons and loan movements to payslip amounts.

    Calculation pipeline (fixed order, each result rounded to cents before
    the next step uses it):
    1) standard time = hours * rate + (rate / 60) * minutes
    2) overtime = 1.5 * (overtime hours * rate + (rate / 60) * overtime minutes)
    3) gross = standard + overtime + leave + bonus + other income
    4) UIF = 1% of gross for permanent staff, else 0
    5) total deductions = UIF + other deductions (loan repayment excluded)
    6) net = gross - total deductions
    7) loan added to pay = new loan if disbursed with salary, else 0
    8) paid to account = net - loan deduction + loan added to pay
    9) updated balance = current balance - loan deduction + new loan

    The engine is pure. Non-numeric inputs are treated as zero; validating
    them is the caller's job.
    """

    UIF_RATE = Decimal("0.01")
    OVERTIME_MULTIPLIER = Decimal("1.5")
    MINUTES_PER_HOUR = Decimal("60")
    UIF_STATUS = "Permanent"

    def calculate(self, inputs: PayslipInputs) -> PayslipAmounts:
        hours = to_whole(inputs.hours)
        minutes = to_whole(inputs.minutes)
        overtime_hours = to_whole(inputs.overtime_hours)
        overtime_minutes = to_whole(inputs.overtime_minutes)
        rate = to_decimal(inputs.hourly_rate)

        leave_pay = round_cents(to_decimal(inputs.leave_pay))
        bonus_pay = round_cents(to_decimal(inputs.bonus_pay))
        other_income = round_cents(to_decimal(inputs.other_income))
        other_deductions = round_cents(to_decimal(inputs.other_deductions))

        loan_deduction = round_cents(to_decimal(inputs.loan_deduction_this_week))
        new_loan = round_cents(to_decimal(inputs.new_loan_this_week))
        current_balance = round_cents(to_decimal(inputs.current_loan_balance))
        try:
            disbursement = DisbursementType.parse(inputs.loan_disbursement_type)
        except ValueError:
            disbursement = None

        per_minute = rate / self.MINUTES_PER_HOUR

        # 1
        standard_time_pay = round_cents(hours * rate + per_minute * minutes)
        # 2
        overtime_pay = round_cents(
            self.OVERTIME_MULTIPLIER
            * (overtime_hours * rate + per_minute * overtime_minutes)
        )
        # 3
        gross_pay = round_cents(
            standard_time_pay + overtime_pay + leave_pay + bonus_pay + other_income
        )
        # 4
        if str(inputs.employment_status).strip() == self.UIF_STATUS:
            uif = round_cents(gross_pay * self.UIF_RATE)
        else:
            uif = round_cents(ZERO)
        # 5
        total_deductions = round_cents(uif + other_deductions)
        # 6
        net_pay = round_cents(gross_pay - total_deductions)
        # 7
        new_loan_to_add = new_loan if disbursement == DisbursementType.WITH_SALARY else ZERO
        # 8
        paid_to_account = round_cents(net_pay - loan_deduction + new_loan_to_add)
        # 9
        updated_loan_balance = round_cents(current_balance - loan_deduction + new_loan)

        warnings: list[str] = []
        if loan_deduction > current_balance:
            warnings.append(
                f"Loan deduction {loan_deduction} exceeds current loan balance "
                f"{current_balance}"
            )
        if paid_to_account < ZERO:
            warnings.append(f"Paid to account is negative ({paid_to_account})")

        return PayslipAmounts(
            standard_time_pay=standard_time_pay,
            overtime_pay=overtime_pay,
            gross_pay=gross_pay,
            uif=uif,
            total_deductions=total_deductions,
            net_pay=net_pay,
            paid_to_account=paid_to_account,
            updated_loan_balance=updated_loan_balance,
            current_loan_balance=current_balance,
            warnings=tuple(warnings),
        )


def calculate_payslip(inputs: PayslipInputs) -> PayslipAmounts:
    """Convenience wrapper around ``PayrollEngine().calculate``."""
    return PayrollEngine().calculate(inputs)
