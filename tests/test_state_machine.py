"""Tests for the pending timesheet state machine."""

from datetime import date

import pytest

from weekly_payroll.errors import InvalidTransitionError
from weekly_payroll.models import PendingTimesheet, TimesheetStatus
from weekly_payroll.services.state_machine import TimesheetStateMachine


def timesheet(**overrides) -> PendingTimesheet:
    values = dict(
        id=1,
        employee_id="E001",
        employee_name="Jane Doe",
        clock_ref="101",
        week_ending=date(2024, 3, 15),
    )
    values.update(overrides)
    return PendingTimesheet(**values)


class TestTimesheetStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Pending can be approved or rejected."""
        assert TimesheetStateMachine.can_transition("Pending", "Approved") is True
        assert TimesheetStateMachine.can_transition("Pending", "Rejected") is True

    def test_terminal_statuses(self):
        """Approved and rejected go nowhere."""
        assert TimesheetStateMachine.can_transition("Approved", "Pending") is False
        assert TimesheetStateMachine.can_transition("Approved", "Rejected") is False
        assert TimesheetStateMachine.can_transition("Rejected", "Approved") is False
        assert TimesheetStateMachine.get_next_statuses("Approved") == []
        assert TimesheetStateMachine.get_next_statuses("Rejected") == []

    def test_get_next_statuses(self):
        assert TimesheetStateMachine.get_next_statuses("Pending") == ["Approved", "Rejected"]

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            TimesheetStateMachine.validate_transition("Rejected", "Approved")

        assert exc_info.value.from_status == "Rejected"
        assert exc_info.value.to_status == "Approved"
        assert exc_info.value.code == "INVALID_TRANSITION"
        assert exc_info.value.details["allowed_statuses"] == []

    def test_locked_timesheet_cannot_transition(self):
        """Locking blocks transitions even while Pending."""
        locked = timesheet(is_locked=True)

        with pytest.raises(InvalidTransitionError) as exc_info:
            TimesheetStateMachine.validate_for_transition(locked, TimesheetStatus.APPROVED)

        assert exc_info.value.reason == "timesheet is locked"

    def test_validate_for_transition_accepts_pending(self):
        TimesheetStateMachine.validate_for_transition(timesheet(), TimesheetStatus.REJECTED)

    def test_can_modify_inputs(self):
        """Only pending, unlocked, unlinked timesheets are editable."""
        assert TimesheetStateMachine.can_modify_inputs(timesheet()) is True
        assert TimesheetStateMachine.can_modify_inputs(timesheet(is_locked=True)) is False
        assert TimesheetStateMachine.can_modify_inputs(timesheet(payslip_ref=7)) is False
        assert (
            TimesheetStateMachine.can_modify_inputs(timesheet(status=TimesheetStatus.REJECTED))
            is False
        )
