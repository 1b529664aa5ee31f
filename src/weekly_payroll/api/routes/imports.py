"""Punch import endpoint."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, File, Form, UploadFile, status
from fastapi.responses import JSONResponse

from weekly_payroll.api.dependencies import CurrentUser, Operations
from weekly_payroll.api.schemas import OperationResponse, to_response

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post(
    "",
    response_model=OperationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": OperationResponse}, 409: {"model": OperationResponse}},
)
def import_punches(
    ops: Operations,
    user: CurrentUser,
    file: Annotated[UploadFile, File()],
    override: Annotated[bool, Form()] = False,
    week_ending: Annotated[date | None, Form()] = None,
) -> JSONResponse:
    """Upload a clock punch export (CSV or XLSX).

    A 409 with code DUPLICATE_IMPORT or UNMATCHED_EMPLOYEES can be retried
    with ``override=true`` after review.
    """
    content = file.file.read()
    result = ops.import_punches(
        content,
        override,
        file_name=file.filename or "",
        week_ending=week_ending,
        user=user,
    )
    return to_response(result, status.HTTP_201_CREATED)
