"""Timesheet review: approve, approve with leave backfill, reject, edit."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping

from weekly_payroll.calculators.weeks import week_ending_for, workdays
from weekly_payroll.errors import (
    DuplicateError,
    NotFoundError,
    PayrollError,
    SyncError,
    ValidationError,
)
from weekly_payroll.models import (
    Employee,
    LeaveReason,
    LeaveRecord,
    PendingTimesheet,
    TimesheetSource,
    TimesheetStatus,
)
from weekly_payroll.services.missing_days import MissingDay, MissingDayDetector
from weekly_payroll.services.payslip_service import PayslipOutcome, PayslipService, parse_date
from weekly_payroll.services.state_machine import TimesheetStateMachine
from weekly_payroll.store.repositories import Repositories

logger = logging.getLogger(__name__)

TIMESHEET_EDIT_FIELDS = (
    "editable_hours",
    "editable_minutes",
    "overtime_hours",
    "overtime_minutes",
)


@dataclass
class ApprovalResult:
    timesheet: PendingTimesheet
    payslip: PayslipOutcome


@dataclass
class BackfillResult:
    """Approval outcome plus the per-day leave backfill report."""

    approval: ApprovalResult
    leave_created: list[date] = field(default_factory=list)
    leave_errors: list[dict[str, str]] = field(default_factory=list)
    still_missing: list[date] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.leave_errors and not self.still_missing


def parse_whole_fields(
    data: Mapping[str, Any], fields: tuple[str, ...]
) -> dict[str, int]:
    """Validate non-negative whole numbers; ``*_minutes`` must be below 60."""
    errors: list[str] = []
    parsed: dict[str, int] = {}
    for name in fields:
        if name not in data:
            continue
        value = data[name]
        if value is None or value == "":
            parsed[name] = 0
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            errors.append(f"{name} must be a whole number")
            continue
        if isinstance(value, bool) or not math.isfinite(number) or number != int(number):
            errors.append(f"{name} must be a whole number")
        elif number < 0:
            errors.append(f"{name} cannot be negative")
        elif name.endswith("minutes") and number >= 60:
            errors.append(f"{name} must be less than 60")
        else:
            parsed[name] = int(number)
    if errors:
        raise ValidationError(errors)
    return parsed


class ApprovalService:
    """Moves pending timesheets through review and into payslips."""

    def __init__(
        self,
        repos: Repositories,
        payslips: PayslipService,
        now: Callable[[], datetime] = datetime.now,
        detector: MissingDayDetector | None = None,
    ):
        self.repos = repos
        self.payslips = payslips
        self._now = now
        self.detector = detector

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_timesheet(self, timesheet_id: int) -> PendingTimesheet:
        return self._get(timesheet_id)[1]

    def list_timesheets(
        self,
        status: TimesheetStatus | str | None = None,
        week_ending: date | None = None,
    ) -> list[PendingTimesheet]:
        try:
            wanted = TimesheetStatus(status) if status else None
        except ValueError:
            raise ValidationError(
                "status must be one of: " + ", ".join(s.value for s in TimesheetStatus)
            ) from None
        return self.repos.timesheets.filter(
            lambda t: (wanted is None or t.status == wanted)
            and (week_ending is None or t.week_ending == week_ending_for(week_ending))
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(
        self,
        timesheet_id: int,
        reviewer: str | None = None,
        *,
        allow_missing_days: bool = False,
    ) -> ApprovalResult:
        """Create the week's payslip from the reviewed hours and lock the timesheet.

        Imported weeks with workdays that have neither a punch nor leave are
        refused with ``INCOMPLETE_WEEK`` unless ``allow_missing_days`` is set.
        Monetary add-ons on the new payslip start at zero and stay editable
        on the payslip until its edit deadline.
        """
        index, timesheet = self._get(timesheet_id)
        TimesheetStateMachine.validate_for_transition(timesheet, TimesheetStatus.APPROVED)
        employee = self._employee(timesheet)
        week_ending = week_ending_for(timesheet.week_ending)

        if not allow_missing_days:
            missing = self._missing_days(timesheet, employee)
            if missing:
                raise ValidationError(
                    f"Timesheet {timesheet_id} for {employee.ref_name} has "
                    f"{len(missing)} missing day(s): "
                    + ", ".join(d.day_name for d in missing)
                    + "; record leave for them before approving",
                    code="INCOMPLETE_WEEK",
                    details={
                        "timesheet_id": timesheet_id,
                        "week_ending": week_ending.isoformat(),
                        "missing_days": [d.to_dict() for d in missing],
                    },
                )

        existing = self.repos.payslips.find_for(employee.id, week_ending)
        if existing is not None:
            raise DuplicateError(
                f"Payslip {existing.record_number} already exists for "
                f"{employee.ref_name} week ending {week_ending.isoformat()}",
                details={
                    "record_number": existing.record_number,
                    "timesheet_id": timesheet_id,
                    "week_ending": week_ending.isoformat(),
                },
            )

        fields = {
            "hours": timesheet.editable_hours,
            "minutes": timesheet.editable_minutes,
            "overtime_hours": timesheet.overtime_hours,
            "overtime_minutes": timesheet.overtime_minutes,
            "notes": f"From timesheet #{timesheet.id}",
        }
        try:
            outcome = self.payslips.create_for_employee(employee, week_ending, fields, reviewer)
        except SyncError:
            # The payslip row is already written: the timesheet is approved.
            created = self.repos.payslips.find_for(employee.id, week_ending)
            if created is not None:
                self._mark_approved(index, timesheet, created.record_number, reviewer)
            raise

        self._mark_approved(index, timesheet, outcome.payslip.record_number, reviewer)
        logger.info(
            "Approved timesheet %s for %s: payslip %s (%d:%02d)",
            timesheet.id,
            employee.ref_name,
            outcome.payslip.record_number,
            timesheet.editable_hours,
            timesheet.editable_minutes,
        )
        return ApprovalResult(timesheet=timesheet, payslip=outcome)

    def approve_with_leave_backfill(
        self,
        timesheet_id: int,
        missing_days: list[date | str],
        reason: LeaveReason | str,
        notes: str = "",
        reviewer: str | None = None,
    ) -> BackfillResult:
        """Record one leave day per missing day, then approve.

        Approval goes ahead even when some days could not be recorded; those
        days and any workdays still uncovered are reported on the result.
        Leave rows already written stay in place if the approval fails;
        the failure carries the dates that were written.
        """
        try:
            leave_reason = LeaveReason.parse(reason)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        _, timesheet = self._get(timesheet_id)
        TimesheetStateMachine.validate_for_transition(timesheet, TimesheetStatus.APPROVED)
        employee = self._employee(timesheet)
        week = set(workdays(week_ending_for(timesheet.week_ending)))
        existing_leave = self.repos.leave.for_employee(employee.ref_name)

        created: list[date] = []
        errors: list[dict[str, str]] = []
        for raw_day in missing_days:
            label = raw_day.isoformat() if isinstance(raw_day, date) else str(raw_day)
            try:
                day = parse_date(raw_day, "missing day")
                if day not in week:
                    raise ValidationError(f"{day.isoformat()} is not a workday of this week")
                if any(record.covers(day) for record in existing_leave):
                    raise DuplicateError(f"{day.isoformat()} is already covered by leave")
                self.repos.leave.append(
                    LeaveRecord(
                        employee_name=employee.ref_name,
                        start_date=day,
                        return_date=day,
                        reason=leave_reason,
                        total_days=LeaveRecord.days_between(day, day),
                        notes=notes,
                        created_by=reviewer,
                        timestamp=self._now(),
                    )
                )
                created.append(day)
            except PayrollError as exc:
                logger.warning("Leave backfill for %s on %s failed: %s", employee.ref_name, label, exc)
                errors.append({"date": label, "error": exc.message, "code": exc.code})

        still_missing = [d.date for d in self._missing_days(timesheet, employee)]
        if still_missing:
            logger.warning(
                "Approving timesheet %s with %d uncovered day(s): %s",
                timesheet_id,
                len(still_missing),
                ", ".join(d.isoformat() for d in still_missing),
            )
        try:
            approval = self.approve(timesheet_id, reviewer, allow_missing_days=True)
        except PayrollError as exc:
            if created:
                logger.warning(
                    "Approval of timesheet %s failed after %d leave record(s) were written",
                    timesheet_id,
                    len(created),
                )
                exc.details.setdefault("leave_created", [d.isoformat() for d in created])
            raise

        return BackfillResult(
            approval=approval,
            leave_created=created,
            leave_errors=errors,
            still_missing=still_missing,
        )

    def reject(
        self, timesheet_id: int, reason: str | None = None, reviewer: str | None = None
    ) -> PendingTimesheet:
        index, timesheet = self._get(timesheet_id)
        TimesheetStateMachine.validate_for_transition(timesheet, TimesheetStatus.REJECTED)
        timesheet.status = TimesheetStatus.REJECTED
        timesheet.reviewed_by = reviewer
        timesheet.reviewed_at = self._now()
        if reason:
            line = f"Rejected: {reason}"
            timesheet.notes = f"{timesheet.notes}\n{line}" if timesheet.notes else line
        self.repos.timesheets.update(index, timesheet)
        logger.info("Rejected timesheet %s for %s", timesheet.id, timesheet.employee_name)
        return timesheet

    def lock(self, timesheet_id: int, payslip_ref: int | None = None) -> PendingTimesheet:
        """Freeze a timesheet once a payslip exists for it."""
        index, timesheet = self._get(timesheet_id)
        timesheet.is_locked = True
        if payslip_ref is not None:
            timesheet.payslip_ref = payslip_ref
        self.repos.timesheets.update(index, timesheet)
        return timesheet

    # ------------------------------------------------------------------
    # Manual entry and reviewer edits
    # ------------------------------------------------------------------

    def create_manual_timesheet(
        self,
        employee_id: str,
        week_ending: date | str,
        hours: Any = 0,
        minutes: Any = 0,
        overtime_hours: Any = 0,
        overtime_minutes: Any = 0,
        notes: str = "",
        user: str | None = None,
    ) -> PendingTimesheet:
        values = parse_whole_fields(
            {
                "editable_hours": hours,
                "editable_minutes": minutes,
                "overtime_hours": overtime_hours,
                "overtime_minutes": overtime_minutes,
            },
            TIMESHEET_EDIT_FIELDS,
        )
        employee = self.repos.employees.get(employee_id)
        if employee is None:
            raise NotFoundError(
                f"Employee not found: {employee_id}", details={"employee_id": employee_id}
            )
        week = week_ending_for(parse_date(week_ending))
        existing = self.repos.timesheets.find_chain(employee.id, week)
        if existing is not None:
            raise DuplicateError(
                f"Timesheet {existing[1].id} already exists for {employee.ref_name} "
                f"week ending {week.isoformat()}",
                details={"timesheet_id": existing[1].id, "week_ending": week.isoformat()},
            )

        timesheet = PendingTimesheet(
            id=self.repos.timesheets.next_id(),
            employee_id=employee.id,
            employee_name=employee.ref_name,
            clock_ref=employee.clock_in_ref,
            week_ending=week,
            computed_hours=values["editable_hours"],
            computed_minutes=values["editable_minutes"],
            source=TimesheetSource.MANUAL,
            notes=notes,
            created_at=self._now(),
            **values,
        )
        self.repos.timesheets.append(timesheet)
        logger.info("Created manual timesheet %s for %s", timesheet.id, employee.ref_name)
        return timesheet

    def update_timesheet(
        self, timesheet_id: int, changes: Mapping[str, Any], user: str | None = None
    ) -> PendingTimesheet:
        """Apply reviewer edits to hours, minutes and overtime."""
        index, timesheet = self._get(timesheet_id)
        if not TimesheetStateMachine.can_modify_inputs(timesheet):
            raise ValidationError(
                f"Timesheet {timesheet_id} is {timesheet.status.value}"
                f"{' and locked' if timesheet.is_locked else ''}; it can no longer be edited",
                code="TIMESHEET_LOCKED",
                details={"timesheet_id": timesheet_id, "status": timesheet.status.value},
            )
        values = parse_whole_fields(changes, TIMESHEET_EDIT_FIELDS)
        for name, value in values.items():
            setattr(timesheet, name, value)
        if "notes" in changes:
            timesheet.notes = str(changes["notes"] or "")
        self.repos.timesheets.update(index, timesheet)
        logger.info(
            "Timesheet %s edited by %s: %s", timesheet_id, user or "unknown", ", ".join(sorted(values))
        )
        return timesheet

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, timesheet_id: int) -> tuple[int, PendingTimesheet]:
        found = self.repos.timesheets.get(timesheet_id)
        if found is None:
            raise NotFoundError(
                f"Timesheet not found: {timesheet_id}", details={"timesheet_id": timesheet_id}
            )
        return found

    def _missing_days(
        self, timesheet: PendingTimesheet, employee: Employee
    ) -> list[MissingDay]:
        # Manual timesheets carry no punches to check.
        if self.detector is None or timesheet.source != TimesheetSource.IMPORT:
            return []
        return self.detector.missing_days(employee.ref_name, timesheet.week_ending)

    def _employee(self, timesheet: PendingTimesheet) -> Employee:
        employee = self.repos.employees.get(timesheet.employee_id)
        if employee is None:
            raise NotFoundError(
                f"Employee {timesheet.employee_id} ({timesheet.employee_name}) "
                "no longer exists",
                details={"employee_id": timesheet.employee_id, "timesheet_id": timesheet.id},
            )
        return employee

    def _mark_approved(
        self,
        index: int,
        timesheet: PendingTimesheet,
        record_number: int,
        reviewer: str | None,
    ) -> None:
        timesheet.status = TimesheetStatus.APPROVED
        timesheet.reviewed_by = reviewer
        timesheet.reviewed_at = self._now()
        timesheet.payslip_ref = record_number
        timesheet.is_locked = True
        self.repos.timesheets.update(index, timesheet)
