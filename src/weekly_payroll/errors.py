"""Error taxonomy for payroll operations.

Every error carries a stable ``code`` and a ``details`` dict so the
operations layer can turn it into a ``{success, error, code, details}``
result without losing the data a caller needs to decide what to do next
(for example the prior import id of a duplicate import).
"""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """Base class for all expected payroll failures."""

    code = "PAYROLL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(PayrollError):
    """Missing, negative or out-of-range input. Nothing was persisted."""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: list[str] | str, **kwargs: Any):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = errors
        super().__init__("; ".join(errors), **kwargs)


class DuplicateError(PayrollError):
    """A record already exists for the same natural key."""

    code = "DUPLICATE"


class NotFoundError(PayrollError):
    """Referenced id or employee does not exist."""

    code = "NOT_FOUND"


class EditWindowExpiredError(PayrollError):
    """Mutation attempted after the Friday-midnight deadline of the week."""

    code = "EDIT_WINDOW_EXPIRED"


class SyncError(PayrollError):
    """Ledger synchronisation failed after the payslip was already persisted.

    This is the one failure that leaves partially applied financial state.
    """

    code = "SYNC_ERROR"


class LedgerSyncError(SyncError):
    """The loan ledger table could not be read or written."""

    code = "LEDGER_SYNC_ERROR"


class InvalidTransitionError(PayrollError):
    """Raised when an invalid timesheet state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(
        self,
        from_status: str,
        to_status: str,
        reason: str | None = None,
        allowed: list[str] | None = None,
    ):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        details: dict[str, Any] = {"from_status": from_status, "to_status": to_status}
        if allowed is not None:
            details["allowed_statuses"] = allowed
        super().__init__(msg, details=details)


class PunchFileError(PayrollError):
    """The punch export could not be parsed. Nothing was persisted."""

    code = "PUNCH_FILE_ERROR"


class UnmatchedEmployeesError(ValidationError):
    """Clock references in the import have no roster entry."""

    code = "UNMATCHED_EMPLOYEES"
