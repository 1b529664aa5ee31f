"""Payslip and loan ledger records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from weekly_payroll.calculators.types import (
    DisbursementType,
    PayslipAmounts,
    PayslipInputs,
    TransactionType,
)
from weekly_payroll.models.base import (
    DATE,
    DATETIME,
    INT,
    MONEY,
    OPT_INT,
    OPT_TEXT,
    TEXT,
    RowRecord,
    enum_codec,
)

_ZERO = Decimal("0.00")


@dataclass
class Payslip(RowRecord):
    """Weekly pay record. One per (employee_id, week_ending)."""

    TABLE = "MASTERSALARY"
    COLUMNS = (
        ("record_number", "RECORDNUMBER", INT),
        ("employee_id", "Employee ID", TEXT),
        ("employee_name", "EMPLOYEE NAME", TEXT),
        ("employer", "EMPLOYER", TEXT),
        ("employment_status", "EMPLOYMENT STATUS", TEXT),
        ("hourly_rate", "HOURLYRATE", MONEY),
        ("week_ending", "WEEKENDING", DATE),
        ("hours", "HOURS", INT),
        ("minutes", "MINUTES", INT),
        ("overtime_hours", "OVERTIMEHOURS", INT),
        ("overtime_minutes", "OVERTIMEMINUTES", INT),
        ("leave_pay", "LEAVE PAY", MONEY),
        ("bonus_pay", "BONUS PAY", MONEY),
        ("other_income", "OTHER INCOME", MONEY),
        ("other_income_text", "OTHER INCOME TEXT", TEXT),
        ("other_deductions", "OTHER DEDUCTIONS", MONEY),
        ("other_deductions_text", "OTHER DEDUCTIONS TEXT", TEXT),
        ("standard_time_pay", "STANDARDTIME", MONEY),
        ("overtime_pay", "OVERTIME", MONEY),
        ("gross_pay", "GROSSSALARY", MONEY),
        ("uif", "UIF", MONEY),
        ("total_deductions", "TOTALDEDUCTIONS", MONEY),
        ("net_pay", "NETTSALARY", MONEY),
        ("loan_deduction_this_week", "LoanDeductionThisWeek", MONEY),
        ("new_loan_this_week", "NewLoanThisWeek", MONEY),
        ("loan_disbursement_type", "LoanDisbursementType", enum_codec(DisbursementType)),
        ("current_loan_balance_at_creation", "CurrentLoanBalance", MONEY),
        ("updated_loan_balance", "UpdatedLoanBalance", MONEY),
        ("paid_to_account", "PaidToAccount", MONEY),
        ("notes", "NOTES", TEXT),
        ("created_by", "USER", OPT_TEXT),
        ("modified_by", "MODIFIED BY", OPT_TEXT),
        ("created_at", "TIMESTAMP", DATETIME),
        ("updated_at", "LAST MODIFIED", DATETIME),
    )

    record_number: int
    employee_id: str
    employee_name: str
    employer: str
    employment_status: str
    hourly_rate: Decimal
    week_ending: date
    hours: int = 0
    minutes: int = 0
    overtime_hours: int = 0
    overtime_minutes: int = 0
    leave_pay: Decimal = _ZERO
    bonus_pay: Decimal = _ZERO
    other_income: Decimal = _ZERO
    other_income_text: str = ""
    other_deductions: Decimal = _ZERO
    other_deductions_text: str = ""
    standard_time_pay: Decimal = _ZERO
    overtime_pay: Decimal = _ZERO
    gross_pay: Decimal = _ZERO
    uif: Decimal = _ZERO
    total_deductions: Decimal = _ZERO
    net_pay: Decimal = _ZERO
    loan_deduction_this_week: Decimal = _ZERO
    new_loan_this_week: Decimal = _ZERO
    loan_disbursement_type: DisbursementType | None = None
    current_loan_balance_at_creation: Decimal = _ZERO
    updated_loan_balance: Decimal = _ZERO
    paid_to_account: Decimal = _ZERO
    notes: str = ""
    created_by: str | None = None
    modified_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_loan_movement(self) -> bool:
        return self.loan_deduction_this_week != 0 or self.new_loan_this_week != 0

    def calculation_inputs(self) -> PayslipInputs:
        return PayslipInputs(
            hours=self.hours,
            minutes=self.minutes,
            overtime_hours=self.overtime_hours,
            overtime_minutes=self.overtime_minutes,
            hourly_rate=self.hourly_rate,
            leave_pay=self.leave_pay,
            bonus_pay=self.bonus_pay,
            other_income=self.other_income,
            other_deductions=self.other_deductions,
            employment_status=self.employment_status,
            loan_deduction_this_week=self.loan_deduction_this_week,
            new_loan_this_week=self.new_loan_this_week,
            loan_disbursement_type=self.loan_disbursement_type,
            current_loan_balance=self.current_loan_balance_at_creation,
        )

    def apply_amounts(self, amounts: PayslipAmounts) -> None:
        self.standard_time_pay = amounts.standard_time_pay
        self.overtime_pay = amounts.overtime_pay
        self.gross_pay = amounts.gross_pay
        self.uif = amounts.uif
        self.total_deductions = amounts.total_deductions
        self.net_pay = amounts.net_pay
        self.paid_to_account = amounts.paid_to_account
        self.updated_loan_balance = amounts.updated_loan_balance
        self.current_loan_balance_at_creation = amounts.current_loan_balance


@dataclass
class LoanLedgerEntry(RowRecord):
    """One signed loan movement. ``balance_after = balance_before + amount``."""

    TABLE = "EmployeeLoans"
    COLUMNS = (
        ("loan_id", "LoanID", INT),
        ("employee_id", "Employee ID", TEXT),
        ("employee_name", "Employee Name", TEXT),
        ("timestamp", "Timestamp", DATETIME),
        ("transaction_date", "TransactionDate", DATE),
        ("amount", "LoanAmount", MONEY),
        ("transaction_type", "LoanType", enum_codec(TransactionType)),
        ("disbursement_mode", "DisbursementMode", TEXT),
        ("payslip_link", "SalaryLink", OPT_INT),
        ("balance_before", "BalanceBefore", MONEY),
        ("balance_after", "BalanceAfter", MONEY),
        ("notes", "Notes", TEXT),
        ("created_by", "User", OPT_TEXT),
    )

    loan_id: int
    employee_id: str
    employee_name: str
    timestamp: datetime | None
    transaction_date: date | None
    amount: Decimal
    transaction_type: TransactionType | None
    disbursement_mode: str = "N/A"
    payslip_link: int | None = None
    balance_before: Decimal = _ZERO
    balance_after: Decimal = _ZERO
    notes: str = ""
    created_by: str | None = None

    def sort_key(self) -> tuple[date, datetime, int]:
        return (
            self.transaction_date or date.min,
            self.timestamp or datetime.min,
            self.loan_id,
        )
