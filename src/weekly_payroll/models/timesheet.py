"""Clock punch, import batch and pending timesheet records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from weekly_payroll.models.base import (
    BOOL,
    DATE,
    DATETIME,
    INT,
    JSON_DICT,
    JSON_LIST,
    OPT_INT,
    OPT_TEXT,
    TEXT,
    RowRecord,
    enum_codec,
)


class ImportStatus(str, Enum):
    """Import batch lifecycle."""

    ACTIVE = "Active"
    REPLACED = "Replaced"


class TimesheetStatus(str, Enum):
    """Pending timesheet status values."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TimesheetSource(str, Enum):
    IMPORT = "Import"
    MANUAL = "Manual"


@dataclass
class RawPunch(RowRecord):
    """One clock event as exported by the device. Immutable once stored."""

    TABLE = "RAW_CLOCK_DATA"
    COLUMNS = (
        ("clock_ref", "Person ID", TEXT),
        ("employee_id", "Employee ID", OPT_TEXT),
        ("employee_name", "Person Name", TEXT),
        ("department", "Department", TEXT),
        ("punch_date", "Punch Date", DATE),
        ("punch_timestamp", "Punch Time", DATETIME),
        ("device_label", "Device Name", TEXT),
        ("device_serial", "Device Serial", TEXT),
        ("punch_type", "Punch Type", TEXT),
        ("source", "Source", TEXT),
        ("import_id", "Import ID", TEXT),
    )

    clock_ref: str
    employee_id: str | None
    employee_name: str
    department: str
    punch_date: date
    punch_timestamp: datetime
    device_label: str = ""
    device_serial: str = ""
    punch_type: str = ""
    source: str = ""
    import_id: str = ""

    def canonical(self) -> dict[str, str]:
        """Fields that identify a punch for content hashing."""
        return {
            "clock_ref": self.clock_ref,
            "timestamp": self.punch_timestamp.isoformat(timespec="seconds"),
            "device": self.device_label,
        }


@dataclass
class ImportBatch(RowRecord):
    """One uploaded punch file. ``(file_hash, week_ending)`` is the dedup key."""

    TABLE = "CLOCK_IN_IMPORTS"
    COLUMNS = (
        ("import_id", "ImportID", TEXT),
        ("file_hash", "FileHash", TEXT),
        ("week_ending", "WeekEnding", DATE),
        ("total_records", "TotalRecords", INT),
        ("matched_employee_count", "MatchedEmployees", INT),
        ("unmatched_refs", "UnmatchedRefs", JSON_LIST),
        ("status", "Status", enum_codec(ImportStatus, ImportStatus.ACTIVE)),
        ("replaced_by_import_id", "ReplacedBy", OPT_TEXT),
        ("imported_at", "ImportDate", DATETIME),
        ("imported_by", "ImportedBy", OPT_TEXT),
        ("file_name", "FileName", TEXT),
        ("notes", "Notes", TEXT),
    )

    import_id: str
    file_hash: str
    week_ending: date
    total_records: int = 0
    matched_employee_count: int = 0
    unmatched_refs: list[str] = field(default_factory=list)
    status: ImportStatus = ImportStatus.ACTIVE
    replaced_by_import_id: str | None = None
    imported_at: datetime | None = None
    imported_by: str | None = None
    file_name: str = ""
    notes: str = ""


@dataclass
class PendingTimesheet(RowRecord):
    """A proposed week of worked time awaiting review.

    Mutable only while Pending and unlocked; once linked to a payslip it is
    locked for good.
    """

    TABLE = "PendingTimesheets"
    COLUMNS = (
        ("id", "ID", INT),
        ("employee_id", "Employee ID", TEXT),
        ("employee_name", "Employee Name", TEXT),
        ("clock_ref", "ClockInRef", TEXT),
        ("week_ending", "WeekEnding", DATE),
        ("computed_hours", "CalculatedHours", INT),
        ("computed_minutes", "CalculatedMinutes", INT),
        ("editable_hours", "Hours", INT),
        ("editable_minutes", "Minutes", INT),
        ("overtime_hours", "OvertimeHours", INT),
        ("overtime_minutes", "OvertimeMinutes", INT),
        ("lunch_deduction_minutes", "LunchDeductionMinutes", INT),
        ("aux_deduction_minutes", "BathroomTimeMinutes", INT),
        ("reconciliation_detail", "ReconciliationDetail", JSON_DICT),
        ("warnings", "Warnings", JSON_LIST),
        ("status", "Status", enum_codec(TimesheetStatus, TimesheetStatus.PENDING)),
        ("is_locked", "IsLocked", BOOL),
        ("payslip_ref", "PayslipRef", OPT_INT),
        ("import_id", "ImportID", OPT_TEXT),
        ("source", "Source", enum_codec(TimesheetSource, TimesheetSource.IMPORT)),
        ("reviewed_by", "ReviewedBy", OPT_TEXT),
        ("reviewed_at", "ReviewedAt", DATETIME),
        ("notes", "Notes", TEXT),
        ("created_at", "Timestamp", DATETIME),
    )

    id: int
    employee_id: str
    employee_name: str
    clock_ref: str
    week_ending: date
    computed_hours: int = 0
    computed_minutes: int = 0
    editable_hours: int = 0
    editable_minutes: int = 0
    overtime_hours: int = 0
    overtime_minutes: int = 0
    lunch_deduction_minutes: int = 0
    aux_deduction_minutes: int = 0
    reconciliation_detail: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    status: TimesheetStatus = TimesheetStatus.PENDING
    is_locked: bool = False
    payslip_ref: int | None = None
    import_id: str | None = None
    source: TimesheetSource = TimesheetSource.IMPORT
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    notes: str = ""
    created_at: datetime | None = None

    @property
    def is_editable(self) -> bool:
        return (
            self.status == TimesheetStatus.PENDING
            and not self.is_locked
            and self.payslip_ref is None
        )
