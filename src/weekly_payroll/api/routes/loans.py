"""Employee loan ledger endpoints."""

from datetime import date

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from weekly_payroll.api.dependencies import CurrentUser, Operations
from weekly_payroll.api.schemas import LoanTransactionCreate, OperationResponse, to_response

router = APIRouter(prefix="/loans", tags=["loans"])


@router.post("/transactions", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
def add_loan_transaction(
    ops: Operations, user: CurrentUser, payload: LoanTransactionCreate
) -> JSONResponse:
    """Record a loan movement that is not tied to a payslip."""
    data = {**payload.model_dump(), "user": user}
    return to_response(ops.add_loan_transaction(data), status.HTTP_201_CREATED)


@router.get("/{employee_id}/balance", response_model=OperationResponse)
def get_current_loan_balance(
    ops: Operations, employee_id: str, as_of: date | None = None
) -> JSONResponse:
    return to_response(ops.get_current_loan_balance(employee_id, as_of))


@router.get("/{employee_id}/history", response_model=OperationResponse)
def get_loan_history(
    ops: Operations,
    employee_id: str,
    start: date | None = None,
    end: date | None = None,
) -> JSONResponse:
    return to_response(ops.get_loan_history(employee_id, start, end))


@router.post("/{employee_id}/recalculate", response_model=OperationResponse)
def recalculate_loan_balances(ops: Operations, employee_id: str) -> JSONResponse:
    """Replay the employee's ledger from zero and rewrite balances."""
    return to_response(ops.recalculate_loan_balances(employee_id))
