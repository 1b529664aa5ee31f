"""Pydantic schemas for API request/response models."""

from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from weekly_payroll.services.operations import OperationResult


# ============================================================================
# Envelope
# ============================================================================


class OperationResponse(BaseModel):
    """Uniform result envelope returned by every endpoint."""

    success: bool
    data: Any = None
    error: str | None = None
    code: str | None = None
    details: dict[str, Any] | None = None


ERROR_STATUS = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "PUNCH_FILE_ERROR": status.HTTP_400_BAD_REQUEST,
    "UNMATCHED_EMPLOYEES": status.HTTP_409_CONFLICT,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "DUPLICATE": status.HTTP_409_CONFLICT,
    "DUPLICATE_IMPORT": status.HTTP_409_CONFLICT,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "TIMESHEET_LOCKED": status.HTTP_409_CONFLICT,
    "INCOMPLETE_WEEK": status.HTTP_409_CONFLICT,
    "EDIT_WINDOW_EXPIRED": status.HTTP_409_CONFLICT,
    "SYNC_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "LEDGER_SYNC_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "INTERNAL_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_response(result: OperationResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Render an operation result with a status code matching its error code."""
    if result.success:
        return JSONResponse(status_code=success_status, content=result.to_dict())
    code = ERROR_STATUS.get(result.code or "", status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content=result.to_dict())


# ============================================================================
# Timesheet schemas
# ============================================================================


class TimesheetCreate(BaseModel):
    """Manual timesheet entry."""

    employee_id: str
    week_ending: date
    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0, lt=60)
    overtime_hours: int = Field(default=0, ge=0)
    overtime_minutes: int = Field(default=0, ge=0, lt=60)
    notes: str = ""


class TimesheetUpdate(BaseModel):
    """Reviewer edits to a pending timesheet. Omitted fields stay as they are."""

    editable_hours: int | None = Field(default=None, ge=0)
    editable_minutes: int | None = Field(default=None, ge=0, lt=60)
    overtime_hours: int | None = Field(default=None, ge=0)
    overtime_minutes: int | None = Field(default=None, ge=0, lt=60)
    notes: str | None = None


class RejectRequest(BaseModel):
    reason: str | None = None


class ApproveWithLeaveRequest(BaseModel):
    """Leave backfill for the week's missing days, then approval."""

    missing_days: list[date]
    reason: str
    notes: str = ""


# ============================================================================
# Payslip schemas
# ============================================================================


class PayslipCreate(BaseModel):
    """Manual payslip entry."""

    employee_id: str | None = None
    employee_name: str | None = None
    week_ending: date
    hours: int = 0
    minutes: int = 0
    overtime_hours: int = 0
    overtime_minutes: int = 0
    leave_pay: Decimal = Decimal("0")
    bonus_pay: Decimal = Decimal("0")
    other_income: Decimal = Decimal("0")
    other_income_text: str = ""
    other_deductions: Decimal = Decimal("0")
    other_deductions_text: str = ""
    loan_deduction_this_week: Decimal = Decimal("0")
    new_loan_this_week: Decimal = Decimal("0")
    loan_disbursement_type: str | None = None
    notes: str = ""


class PayslipUpdate(BaseModel):
    """Payslip edits. Omitted fields stay as they are."""

    hours: int | None = None
    minutes: int | None = None
    overtime_hours: int | None = None
    overtime_minutes: int | None = None
    leave_pay: Decimal | None = None
    bonus_pay: Decimal | None = None
    other_income: Decimal | None = None
    other_income_text: str | None = None
    other_deductions: Decimal | None = None
    other_deductions_text: str | None = None
    loan_deduction_this_week: Decimal | None = None
    new_loan_this_week: Decimal | None = None
    loan_disbursement_type: str | None = None
    notes: str | None = None


class LoanPaymentUpdate(BaseModel):
    """Loan-only payslip edit."""

    loan_deduction_this_week: Decimal | None = None
    new_loan_this_week: Decimal | None = None
    loan_disbursement_type: str | None = None


# ============================================================================
# Loan schemas
# ============================================================================


class LoanTransactionCreate(BaseModel):
    """Manual disbursement (positive) or repayment (negative)."""

    employee_id: str
    amount: Decimal
    transaction_type: str
    transaction_date: date | None = None
    disbursement_mode: str = "N/A"
    notes: str = ""
