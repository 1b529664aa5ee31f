"""Payslip endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Path, status
from fastapi.responses import JSONResponse

from weekly_payroll.api.dependencies import CurrentUser, Operations
from weekly_payroll.api.schemas import (
    LoanPaymentUpdate,
    OperationResponse,
    PayslipCreate,
    PayslipUpdate,
    to_response,
)

router = APIRouter(prefix="/payslips", tags=["payslips"])

RecordNumber = Annotated[int, Path(ge=1)]


@router.post("", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
def create_payslip(ops: Operations, user: CurrentUser, payload: PayslipCreate) -> JSONResponse:
    """Create a payslip directly (outside timesheet approval)."""
    data = {**payload.model_dump(), "user": user}
    return to_response(ops.create_payslip(data), status.HTTP_201_CREATED)


@router.get("", response_model=OperationResponse)
def list_payslips(
    ops: Operations, employee_id: str | None = None, week_ending: date | None = None
) -> JSONResponse:
    return to_response(ops.list_payslips(employee_id, week_ending))


@router.get("/{record_number}", response_model=OperationResponse)
def get_payslip(ops: Operations, record_number: RecordNumber) -> JSONResponse:
    return to_response(ops.get_payslip(record_number))


@router.patch("/{record_number}", response_model=OperationResponse)
def update_payslip(
    ops: Operations,
    user: CurrentUser,
    record_number: RecordNumber,
    payload: PayslipUpdate,
) -> JSONResponse:
    """Edit a payslip before its week's deadline; the loan ledger follows."""
    data = {**payload.model_dump(exclude_unset=True), "user": user}
    return to_response(ops.update_payslip(record_number, data))


@router.patch("/{record_number}/loan", response_model=OperationResponse)
def update_payslip_loan_payment(
    ops: Operations,
    user: CurrentUser,
    record_number: RecordNumber,
    payload: LoanPaymentUpdate,
) -> JSONResponse:
    data = {**payload.model_dump(exclude_unset=True), "user": user}
    return to_response(ops.update_payslip_loan_payment(record_number, data))


@router.delete("/{record_number}", response_model=OperationResponse)
def delete_payslip(ops: Operations, record_number: RecordNumber) -> JSONResponse:
    """Delete a payslip and its linked loan entry."""
    return to_response(ops.delete_payslip(record_number))
