"""Employee loan ledger.

Keeps exactly one ledger row per payslip that carries a loan movement.
Re-editing the payslip rewrites that row in place (same loan id, matched
by the payslip link) instead of appending, so a payslip's loan fields can
change any number of times without duplicating ledger rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable

from weekly_payroll.calculators.money import ZERO, round_cents, to_decimal
from weekly_payroll.calculators.types import DisbursementType, TransactionType
from weekly_payroll.errors import LedgerSyncError, NotFoundError, ValidationError
from weekly_payroll.models import Employee, LoanLedgerEntry, Payslip
from weekly_payroll.store.base import StoreError
from weekly_payroll.store.repositories import EmployeeRepository, LoanLedgerRepository

logger = logging.getLogger(__name__)

NO_MODE = "N/A"


@dataclass(frozen=True)
class SyncResult:
    """Outcome of synchronising one payslip into the ledger."""

    action: str  # noop, created, updated, removed
    entry: LoanLedgerEntry | None = None

    NOOP = "noop"
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"

    @property
    def is_new(self) -> bool:
        return self.action == self.CREATED


class LoanLedgerSynchronizer:
    """Loan ledger reads, manual transactions and payslip synchronisation."""

    def __init__(
        self,
        loans: LoanLedgerRepository,
        employees: EmployeeRepository | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.loans = loans
        self.employees = employees
        self._now = now

    # ------------------------------------------------------------------
    # Payslip synchronisation
    # ------------------------------------------------------------------

    def sync_ledger(self, payslip: Payslip, user: str | None = None) -> SyncResult:
        """Create, update or remove the ledger row linked to ``payslip``.

        Raises:
            LedgerSyncError: the ledger table or its columns are missing, or
                the write failed. The payslip itself is not rolled back.
        """
        try:
            self.loans.require()
            existing = self.loans.find_by_payslip_link(payslip.record_number)

            if not payslip.has_loan_movement:
                if existing is None:
                    return SyncResult(SyncResult.NOOP)
                index, entry = existing
                self.loans.delete(index)
                logger.info(
                    "Removed loan entry %s: payslip %s no longer moves the loan",
                    entry.loan_id,
                    payslip.record_number,
                )
                return SyncResult(SyncResult.REMOVED, entry)

            amount, transaction_type, mode = self._movement(payslip)
            balance_after = payslip.updated_loan_balance
            balance_before = round_cents(balance_after - amount)
            note = f"{transaction_type.value} via payslip #{payslip.record_number}"

            if existing is not None:
                index, entry = existing
                entry.amount = amount
                entry.transaction_type = transaction_type
                entry.disbursement_mode = mode
                entry.balance_before = balance_before
                entry.balance_after = balance_after
                entry.notes = note
                entry.timestamp = self._now()
                self.loans.update(index, entry)
                logger.info(
                    "Updated loan entry %s for payslip %s: amount=%s balance_after=%s",
                    entry.loan_id,
                    payslip.record_number,
                    amount,
                    balance_after,
                )
                return SyncResult(SyncResult.UPDATED, entry)

            entry = LoanLedgerEntry(
                loan_id=self.loans.next_loan_id(),
                employee_id=payslip.employee_id,
                employee_name=payslip.employee_name,
                timestamp=self._now(),
                transaction_date=payslip.week_ending,
                amount=amount,
                transaction_type=transaction_type,
                disbursement_mode=mode,
                payslip_link=payslip.record_number,
                balance_before=balance_before,
                balance_after=balance_after,
                notes=note,
                created_by=user,
            )
            self.loans.append(entry)
            logger.info(
                "Created loan entry %s for payslip %s: amount=%s balance_after=%s",
                entry.loan_id,
                payslip.record_number,
                amount,
                balance_after,
            )
            return SyncResult(SyncResult.CREATED, entry)
        except StoreError as exc:
            raise LedgerSyncError(
                f"Loan ledger sync failed for payslip {payslip.record_number}: {exc}",
                details={
                    "record_number": payslip.record_number,
                    "employee_id": payslip.employee_id,
                    "cause": exc.code,
                },
            ) from exc

    def remove_for_payslip(self, record_number: int) -> LoanLedgerEntry | None:
        """Delete the ledger row linked to a deleted payslip, if any."""
        try:
            existing = self.loans.find_by_payslip_link(record_number)
            if existing is None:
                return None
            index, entry = existing
            self.loans.delete(index)
            return entry
        except StoreError as exc:
            raise LedgerSyncError(
                f"Could not remove loan entry for payslip {record_number}: {exc}",
                details={"record_number": record_number, "cause": exc.code},
            ) from exc

    @staticmethod
    def _movement(payslip: Payslip) -> tuple[Decimal, TransactionType, str]:
        if payslip.new_loan_this_week > 0:
            mode = (payslip.loan_disbursement_type or DisbursementType.SEPARATE).value
            return payslip.new_loan_this_week, TransactionType.DISBURSEMENT, mode
        return -payslip.loan_deduction_this_week, TransactionType.REPAYMENT, NO_MODE

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_current_balance(self, employee_id: str, as_of: date | None = None) -> Decimal:
        """Latest balance after, ordered by transaction date then timestamp."""
        entries = [e for _, e in self.loans.for_employee(employee_id)]
        if as_of is not None:
            entries = [
                e for e in entries if e.transaction_date is None or e.transaction_date <= as_of
            ]
        if not entries:
            return round_cents(ZERO)
        return entries[-1].balance_after

    def get_loan_history(
        self,
        employee_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[LoanLedgerEntry]:
        """Chronological entries within the inclusive date range."""
        entries = [e for _, e in self.loans.for_employee(employee_id)]
        if start is not None:
            entries = [e for e in entries if e.transaction_date and e.transaction_date >= start]
        if end is not None:
            entries = [e for e in entries if e.transaction_date and e.transaction_date <= end]
        return entries

    # ------------------------------------------------------------------
    # Manual transactions and maintenance
    # ------------------------------------------------------------------

    def add_loan_transaction(
        self,
        *,
        employee_id: str,
        amount: Decimal | str | float,
        transaction_type: TransactionType | str,
        transaction_date: date | None = None,
        disbursement_mode: str = NO_MODE,
        notes: str = "",
        user: str | None = None,
    ) -> LoanLedgerEntry:
        """Record a disbursement or repayment not tied to a payslip.

        Disbursements carry a positive amount and repayments a negative one.
        """
        errors: list[str] = []
        if not employee_id:
            errors.append("Employee ID is required")
        value = round_cents(to_decimal(amount))
        if value == 0:
            errors.append("Loan amount cannot be zero")
        try:
            kind = TransactionType(transaction_type)
        except ValueError:
            errors.append(
                "Loan type must be one of: " + ", ".join(t.value for t in TransactionType)
            )
            kind = None
        if kind == TransactionType.DISBURSEMENT and value <= 0:
            errors.append("Disbursement must have positive amount")
        if kind == TransactionType.REPAYMENT and value >= 0:
            errors.append("Repayment must have negative amount")
        if errors:
            raise ValidationError(errors)

        employee = self._employee(employee_id)
        entry_date = transaction_date or self._now().date()
        balance_before = self.get_current_balance(employee_id, as_of=entry_date)
        entry = LoanLedgerEntry(
            loan_id=self.loans.next_loan_id(),
            employee_id=employee_id,
            employee_name=employee.ref_name if employee else "",
            timestamp=self._now(),
            transaction_date=entry_date,
            amount=value,
            transaction_type=kind,
            disbursement_mode=disbursement_mode,
            payslip_link=None,
            balance_before=balance_before,
            balance_after=round_cents(balance_before + value),
            notes=notes,
            created_by=user,
        )
        self.loans.append(entry)
        # Entries dated after this one (usually payslips for the current week)
        # were chained without it.
        if any(
            e.transaction_date is not None and e.transaction_date > entry_date
            for _, e in self.loans.for_employee(employee_id)
        ):
            self.recalculate_balances(employee_id)
        logger.info(
            "Recorded manual loan %s for %s: amount=%s new balance=%s",
            kind.value if kind else "",
            employee_id,
            value,
            entry.balance_after,
        )
        return entry

    def recalculate_balances(self, employee_id: str) -> Decimal:
        """Replay an employee's entries from zero and rewrite their balances.

        Returns the final balance.
        """
        running = round_cents(ZERO)
        rewritten = 0
        for index, entry in self.loans.for_employee(employee_id):
            before, after = running, round_cents(running + entry.amount)
            if entry.balance_before != before or entry.balance_after != after:
                entry.balance_before = before
                entry.balance_after = after
                self.loans.update(index, entry)
                rewritten += 1
            running = after
        logger.info(
            "Recalculated loan balances for %s: %d rows rewritten, final balance %s",
            employee_id,
            rewritten,
            running,
        )
        return running

    def _employee(self, employee_id: str) -> Employee | None:
        if self.employees is None:
            return None
        employee = self.employees.get(employee_id)
        if employee is None:
            raise NotFoundError(
                f"Employee not found: {employee_id}", details={"employee_id": employee_id}
            )
        return employee
