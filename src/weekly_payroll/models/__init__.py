"""Store-backed record types."""

from weekly_payroll.models.base import RowRecord
from weekly_payroll.models.employee import (
    Employee,
    EmploymentStatus,
    LeaveReason,
    LeaveRecord,
)
from weekly_payroll.models.payslip import LoanLedgerEntry, Payslip
from weekly_payroll.models.timesheet import (
    ImportBatch,
    ImportStatus,
    PendingTimesheet,
    RawPunch,
    TimesheetSource,
    TimesheetStatus,
)

ALL_RECORDS: tuple[type[RowRecord], ...] = (
    Employee,
    LeaveRecord,
    RawPunch,
    ImportBatch,
    PendingTimesheet,
    Payslip,
    LoanLedgerEntry,
)

__all__ = [
    "ALL_RECORDS",
    "Employee",
    "EmploymentStatus",
    "ImportBatch",
    "ImportStatus",
    "LeaveReason",
    "LeaveRecord",
    "LoanLedgerEntry",
    "Payslip",
    "PendingTimesheet",
    "RawPunch",
    "RowRecord",
    "TimesheetSource",
    "TimesheetStatus",
]
