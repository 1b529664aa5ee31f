"""Timesheet state machine with transition validation."""

from __future__ import annotations

from weekly_payroll.errors import InvalidTransitionError
from weekly_payroll.models.timesheet import PendingTimesheet, TimesheetStatus


class TimesheetStateMachine:
    """State machine for pending timesheet status transitions.

    Allowed transitions:
    - pending → approved
    - pending → rejected

    Approved and rejected are terminal. Locking is orthogonal to status:
    a locked timesheet accepts no edits and no transitions.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        TimesheetStatus.PENDING: [TimesheetStatus.APPROVED, TimesheetStatus.REJECTED],
        TimesheetStatus.APPROVED: [],
        TimesheetStatus.REJECTED: [],
    }

    # Statuses where editable hours can be modified
    INPUTS_MUTABLE = {TimesheetStatus.PENDING}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(TimesheetStatus(from_status), [])
        return TimesheetStatus(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                TimesheetStatus(from_status).value,
                TimesheetStatus(to_status).value,
                allowed=cls.get_next_statuses(from_status),
            )

    @classmethod
    def can_modify_inputs(cls, timesheet: PendingTimesheet) -> bool:
        """Check if the reviewer may still edit hours on this timesheet."""
        return timesheet.status in cls.INPUTS_MUTABLE and timesheet.is_editable

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return [s.value for s in cls.VALID_TRANSITIONS.get(TimesheetStatus(current_status), [])]

    @classmethod
    def validate_for_transition(
        cls, timesheet: PendingTimesheet, to_status: str
    ) -> None:
        """Validate a timesheet for a specific transition."""
        if timesheet.is_locked:
            raise InvalidTransitionError(
                timesheet.status.value,
                TimesheetStatus(to_status).value,
                "timesheet is locked",
            )
        cls.validate_transition(timesheet.status, to_status)
