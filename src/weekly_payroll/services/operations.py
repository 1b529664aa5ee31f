"""Caller-facing operations.

Every method returns an ``OperationResult``; payroll errors become failed
results carrying their code and details, and anything unexpected is logged
and reported as ``INTERNAL_ERROR``. Nothing is raised past this layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping

from weekly_payroll.calculators.reconciler import PunchReconciler
from weekly_payroll.config import Settings
from weekly_payroll.errors import PayrollError, SyncError
from weekly_payroll.models.base import jsonable
from weekly_payroll.services.approval_service import ApprovalResult, ApprovalService
from weekly_payroll.services.loan_ledger import LoanLedgerSynchronizer, SyncResult
from weekly_payroll.services.missing_days import MissingDayDetector
from weekly_payroll.services.payslip_service import PayslipOutcome, PayslipService, parse_date
from weekly_payroll.services.punch_importer import PunchImporter, PunchSource, read_source
from weekly_payroll.store.base import TabularStore
from weekly_payroll.store.repositories import Repositories
from weekly_payroll.store.workbook import load_workbook

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Uniform ``{success, data | error}`` envelope."""

    success: bool
    data: Any = None
    error: str | None = None
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: Any = None) -> OperationResult:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, exc: PayrollError) -> OperationResult:
        return cls(
            success=False,
            error=exc.message,
            code=exc.code,
            details=jsonable(exc.details),
        )

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "code": self.code,
            "details": self.details,
        }


def _ledger_dict(result: SyncResult | None) -> dict[str, Any] | None:
    if result is None:
        return None
    return {
        "action": result.action,
        "entry": result.entry.to_dict() if result.entry else None,
    }


def _payslip_dict(outcome: PayslipOutcome) -> dict[str, Any]:
    return {
        "payslip": outcome.payslip.to_dict(),
        "ledger": _ledger_dict(outcome.ledger),
        "warnings": list(outcome.warnings),
    }


def _approval_dict(result: ApprovalResult) -> dict[str, Any]:
    return {"timesheet": result.timesheet.to_dict(), **_payslip_dict(result.payslip)}


def _optional_date(value: date | str | None, name: str) -> date | None:
    if value is None or value == "":
        return None
    return parse_date(value, name)


class PayrollOperations:
    """Wires the services over one store and exposes the public operations."""

    def __init__(
        self,
        store: TabularStore,
        settings: Settings,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings
        self.store = store
        self.repos = Repositories.for_store(store)
        self.reconciler = PunchReconciler.from_settings(settings)
        self.ledger = LoanLedgerSynchronizer(self.repos.loans, self.repos.employees, now=now)
        self.payslips = PayslipService(self.repos, self.ledger, settings, now=now)
        self.importer = PunchImporter(
            self.repos, self.reconciler, settings.clock_skew_hours, now=now
        )
        self.detector = MissingDayDetector(
            self.repos.employees,
            self.repos.punches,
            self.repos.leave,
            self.reconciler,
            imports=self.repos.imports,
        )
        self.approvals = ApprovalService(
            self.repos, self.payslips, now=now, detector=self.detector
        )

    def _run(self, operation: str, func: Callable[[], Any]) -> OperationResult:
        try:
            return OperationResult.ok(func())
        except SyncError as exc:
            # Already logged as a financial inconsistency where it happened.
            return OperationResult.failure(exc)
        except PayrollError as exc:
            logger.info("%s rejected: [%s] %s", operation, exc.code, exc.message)
            return OperationResult.failure(exc)
        except Exception:
            logger.exception("%s failed unexpectedly", operation)
            return OperationResult(
                success=False,
                error="An unexpected error occurred",
                code="INTERNAL_ERROR",
            )

    # ------------------------------------------------------------------
    # Punch import and review
    # ------------------------------------------------------------------

    def import_punches(
        self,
        source: PunchSource,
        override: bool = False,
        *,
        file_name: str | None = None,
        week_ending: date | str | None = None,
        user: str | None = None,
    ) -> OperationResult:
        return self._run(
            "import_punches",
            lambda: self.importer.import_punches(
                source,
                file_name=file_name,
                override=override,
                week_ending=_optional_date(week_ending, "week_ending"),
                imported_by=user,
            ).to_dict(),
        )

    def missing_days(self, employee_name: str, week_ending: date | str) -> OperationResult:
        return self._run(
            "missing_days",
            lambda: [
                d.to_dict()
                for d in self.detector.missing_days(
                    employee_name, parse_date(week_ending, "week_ending")
                )
            ],
        )

    def list_timesheets(
        self, status: str | None = None, week_ending: date | str | None = None
    ) -> OperationResult:
        return self._run(
            "list_timesheets",
            lambda: [
                t.to_dict()
                for t in self.approvals.list_timesheets(
                    status, _optional_date(week_ending, "week_ending")
                )
            ],
        )

    def get_timesheet(self, timesheet_id: int) -> OperationResult:
        return self._run(
            "get_timesheet", lambda: self.approvals.get_timesheet(timesheet_id).to_dict()
        )

    def create_manual_timesheet(self, data: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "create_manual_timesheet",
            lambda: self.approvals.create_manual_timesheet(
                employee_id=str(data.get("employee_id") or ""),
                week_ending=data.get("week_ending") or "",
                hours=data.get("hours", 0),
                minutes=data.get("minutes", 0),
                overtime_hours=data.get("overtime_hours", 0),
                overtime_minutes=data.get("overtime_minutes", 0),
                notes=data.get("notes") or "",
                user=data.get("user"),
            ).to_dict(),
        )

    def update_timesheet(
        self, timesheet_id: int, changes: Mapping[str, Any], user: str | None = None
    ) -> OperationResult:
        return self._run(
            "update_timesheet",
            lambda: self.approvals.update_timesheet(timesheet_id, changes, user).to_dict(),
        )

    def approve_timesheet(self, timesheet_id: int, user: str | None = None) -> OperationResult:
        return self._run(
            "approve_timesheet",
            lambda: _approval_dict(self.approvals.approve(timesheet_id, user)),
        )

    def approve_timesheet_with_leave(
        self,
        timesheet_id: int,
        missing_days: list[date | str],
        reason: str,
        notes: str = "",
        user: str | None = None,
    ) -> OperationResult:
        def run() -> dict[str, Any]:
            result = self.approvals.approve_with_leave_backfill(
                timesheet_id, missing_days, reason, notes, user
            )
            return {
                **_approval_dict(result.approval),
                "leave_created": [d.isoformat() for d in result.leave_created],
                "leave_errors": list(result.leave_errors),
                "still_missing": [d.isoformat() for d in result.still_missing],
            }

        return self._run("approve_timesheet_with_leave", run)

    def reject_timesheet(
        self, timesheet_id: int, reason: str | None = None, user: str | None = None
    ) -> OperationResult:
        return self._run(
            "reject_timesheet",
            lambda: self.approvals.reject(timesheet_id, reason, user).to_dict(),
        )

    # ------------------------------------------------------------------
    # Payslips
    # ------------------------------------------------------------------

    def create_payslip(self, data: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "create_payslip", lambda: _payslip_dict(self.payslips.create_payslip(data))
        )

    def get_payslip(self, record_number: int) -> OperationResult:
        return self._run(
            "get_payslip", lambda: self.payslips.get_payslip(record_number).to_dict()
        )

    def list_payslips(
        self, employee_id: str | None = None, week_ending: date | str | None = None
    ) -> OperationResult:
        return self._run(
            "list_payslips",
            lambda: [
                p.to_dict()
                for p in self.payslips.list_payslips(
                    employee_id, _optional_date(week_ending, "week_ending")
                )
            ],
        )

    def update_payslip(self, record_number: int, data: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "update_payslip",
            lambda: _payslip_dict(self.payslips.update_payslip(record_number, data)),
        )

    def update_payslip_loan_payment(
        self, record_number: int, loan_data: Mapping[str, Any]
    ) -> OperationResult:
        return self._run(
            "update_payslip_loan_payment",
            lambda: _payslip_dict(
                self.payslips.update_payslip_loan_payment(record_number, loan_data)
            ),
        )

    def delete_payslip(self, record_number: int) -> OperationResult:
        return self._run(
            "delete_payslip",
            lambda: self.payslips.delete_payslip(record_number).to_dict(),
        )

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    def get_loan_history(
        self,
        employee_id: str,
        start: date | str | None = None,
        end: date | str | None = None,
    ) -> OperationResult:
        return self._run(
            "get_loan_history",
            lambda: [
                e.to_dict()
                for e in self.ledger.get_loan_history(
                    employee_id,
                    _optional_date(start, "start"),
                    _optional_date(end, "end"),
                )
            ],
        )

    def get_current_loan_balance(
        self, employee_id: str, as_of: date | str | None = None
    ) -> OperationResult:
        return self._run(
            "get_current_loan_balance",
            lambda: {
                "employee_id": employee_id,
                "balance": str(
                    self.ledger.get_current_balance(
                        employee_id, _optional_date(as_of, "as_of")
                    )
                ),
            },
        )

    def add_loan_transaction(self, data: Mapping[str, Any]) -> OperationResult:
        return self._run(
            "add_loan_transaction",
            lambda: self.ledger.add_loan_transaction(
                employee_id=str(data.get("employee_id") or ""),
                amount=data.get("amount", 0),
                transaction_type=data.get("transaction_type") or "",
                transaction_date=_optional_date(data.get("transaction_date"), "transaction_date"),
                disbursement_mode=data.get("disbursement_mode") or "N/A",
                notes=data.get("notes") or "",
                user=data.get("user"),
            ).to_dict(),
        )

    def recalculate_loan_balances(self, employee_id: str) -> OperationResult:
        return self._run(
            "recalculate_loan_balances",
            lambda: {
                "employee_id": employee_id,
                "balance": str(self.ledger.recalculate_balances(employee_id)),
            },
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def load_workbook(self, source: PunchSource, replace: bool = False) -> OperationResult:
        """Copy a spreadsheet export (one sheet per table) into the store."""

        def run() -> dict[str, Any]:
            content, _ = read_source(source, None)
            return load_workbook(self.store, content, replace=replace).to_dict()

        return self._run("load_workbook", run)
