"""Pending timesheet review endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Path, Query, status
from fastapi.responses import JSONResponse

from weekly_payroll.api.dependencies import CurrentUser, Operations
from weekly_payroll.api.schemas import (
    ApproveWithLeaveRequest,
    OperationResponse,
    RejectRequest,
    TimesheetCreate,
    TimesheetUpdate,
    to_response,
)

router = APIRouter(prefix="/timesheets", tags=["timesheets"])

TimesheetId = Annotated[int, Path(ge=1)]


@router.get("", response_model=OperationResponse)
def list_timesheets(
    ops: Operations,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    week_ending: date | None = None,
) -> JSONResponse:
    """List timesheets, optionally by status and week."""
    return to_response(ops.list_timesheets(status_filter, week_ending))


@router.post("", response_model=OperationResponse, status_code=status.HTTP_201_CREATED)
def create_manual_timesheet(
    ops: Operations, user: CurrentUser, payload: TimesheetCreate
) -> JSONResponse:
    """Enter a timesheet by hand for an employee-week with no import."""
    data = {**payload.model_dump(), "user": user}
    return to_response(ops.create_manual_timesheet(data), status.HTTP_201_CREATED)


@router.get("/missing-days", response_model=OperationResponse)
def missing_days(
    ops: Operations,
    employee_name: Annotated[str, Query(min_length=1)],
    week_ending: date,
) -> JSONResponse:
    """Workdays with neither a clock-in nor leave."""
    return to_response(ops.missing_days(employee_name, week_ending))


@router.get("/{timesheet_id}", response_model=OperationResponse)
def get_timesheet(ops: Operations, timesheet_id: TimesheetId) -> JSONResponse:
    return to_response(ops.get_timesheet(timesheet_id))


@router.patch("/{timesheet_id}", response_model=OperationResponse)
def update_timesheet(
    ops: Operations,
    user: CurrentUser,
    timesheet_id: TimesheetId,
    payload: TimesheetUpdate,
) -> JSONResponse:
    changes = payload.model_dump(exclude_unset=True)
    return to_response(ops.update_timesheet(timesheet_id, changes, user))


@router.post("/{timesheet_id}/approve", response_model=OperationResponse)
def approve_timesheet(
    ops: Operations, user: CurrentUser, timesheet_id: TimesheetId
) -> JSONResponse:
    """Approve a pending timesheet and create its payslip."""
    return to_response(ops.approve_timesheet(timesheet_id, user))


@router.post("/{timesheet_id}/approve-with-leave", response_model=OperationResponse)
def approve_timesheet_with_leave(
    ops: Operations,
    user: CurrentUser,
    timesheet_id: TimesheetId,
    payload: ApproveWithLeaveRequest,
) -> JSONResponse:
    """Backfill leave for missing days, then approve."""
    return to_response(
        ops.approve_timesheet_with_leave(
            timesheet_id, list(payload.missing_days), payload.reason, payload.notes, user
        )
    )


@router.post("/{timesheet_id}/reject", response_model=OperationResponse)
def reject_timesheet(
    ops: Operations,
    user: CurrentUser,
    timesheet_id: TimesheetId,
    payload: RejectRequest | None = None,
) -> JSONResponse:
    reason = payload.reason if payload else None
    return to_response(ops.reject_timesheet(timesheet_id, reason, user))
