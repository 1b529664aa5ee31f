"""Weekly payroll services."""

from weekly_payroll.services.approval_service import ApprovalService
from weekly_payroll.services.loan_ledger import LoanLedgerSynchronizer, SyncResult
from weekly_payroll.services.missing_days import MissingDay, MissingDayDetector
from weekly_payroll.services.operations import OperationResult, PayrollOperations
from weekly_payroll.services.payslip_service import PayslipOutcome, PayslipService
from weekly_payroll.services.punch_importer import ImportResult, PunchImporter
from weekly_payroll.services.state_machine import TimesheetStateMachine

__all__ = [
    "ApprovalService",
    "ImportResult",
    "LoanLedgerSynchronizer",
    "MissingDay",
    "MissingDayDetector",
    "OperationResult",
    "PayrollOperations",
    "PayslipOutcome",
    "PayslipService",
    "PunchImporter",
    "SyncResult",
    "TimesheetStateMachine",
]
