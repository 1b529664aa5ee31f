"""Employee roster and leave records (external master data, consumed)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from weekly_payroll.models.base import (
    DATE,
    DATETIME,
    INT,
    MONEY,
    OPT_TEXT,
    TEXT,
    RowRecord,
    enum_codec,
)


class EmploymentStatus(str, Enum):
    """Employment type. Only permanent staff pay UIF."""

    PERMANENT = "Permanent"
    TEMPORARY = "Temporary"
    CONTRACT = "Contract"


class LeaveReason(str, Enum):
    """Allowed leave reasons."""

    SICK_LEAVE_UNPAID = "Sick Leave (Unpaid)"
    SICK_LEAVE_PAID = "Sick Leave (Paid)"
    AWOL = "AWOL"
    PAID_LEAVE = "Paid Leave"
    UNPAID_LEAVE = "Unpaid Leave"
    FAMILY_RESPONSIBILITY = "Family Responsibility"

    @classmethod
    def parse(cls, value: str | LeaveReason) -> LeaveReason:
        """Accept the stored value or the CamelCase name (``SickLeavePaid``)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for reason in cls:
            if text == reason.value:
                return reason
        squashed = text.replace("_", "").replace(" ", "").lower()
        for reason in cls:
            if squashed == reason.name.replace("_", "").lower():
                return reason
        raise ValueError(
            f"Invalid leave reason '{value}'. Must be one of: "
            + ", ".join(r.value for r in cls)
        )


@dataclass
class Employee(RowRecord):
    """Roster entry. ``clock_in_ref`` maps the clock device's person id."""

    TABLE = "EMPLOYEE DETAILS"
    COLUMNS = (
        ("id", "id", TEXT),
        ("ref_name", "REFNAME", TEXT),
        ("employer", "EMPLOYER", TEXT),
        ("employment_status", "EMPLOYMENT STATUS", TEXT),
        ("hourly_rate", "HOURLY RATE", MONEY),
        ("clock_in_ref", "ClockInRef", TEXT),
        ("termination_date", "TERMINATION DATE", DATE),
    )

    id: str
    ref_name: str
    employer: str = ""
    employment_status: str = EmploymentStatus.PERMANENT.value
    hourly_rate: Decimal = Decimal("0.00")
    clock_in_ref: str = ""
    termination_date: date | None = None

    def is_active(self, on: date) -> bool:
        return self.termination_date is None or self.termination_date > on


@dataclass
class LeaveRecord(RowRecord):
    """A leave period. Both ``start_date`` and ``return_date`` are covered."""

    TABLE = "LEAVE"
    COLUMNS = (
        ("employee_name", "EMPLOYEE NAME", TEXT),
        ("start_date", "STARTDATE.LEAVE", DATE),
        ("return_date", "RETURNDATE.LEAVE", DATE),
        ("reason", "REASON", enum_codec(LeaveReason)),
        ("total_days", "TOTALDAYS.LEAVE", INT),
        ("notes", "NOTES", TEXT),
        ("created_by", "USER", OPT_TEXT),
        ("timestamp", "TIMESTAMP", DATETIME),
    )

    employee_name: str
    start_date: date | None
    return_date: date | None
    reason: LeaveReason | None
    total_days: int = 0
    notes: str = ""
    created_by: str | None = None
    timestamp: datetime | None = None

    def covers(self, day: date) -> bool:
        if self.start_date is None:
            return False
        end = self.return_date or self.start_date
        return self.start_date <= day <= end

    @staticmethod
    def days_between(start: date, end: date) -> int:
        return (end - start).days + 1
