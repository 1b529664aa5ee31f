"""Payslip lifecycle: create, edit, loan edits and delete.

Every persisted change is followed by a loan ledger resync. The store has
no transactions, so a ledger failure after the payslip row is written is
raised as ``SyncError`` and logged as a financial inconsistency; re-running
the same edit converges because the ledger row is matched by record number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from weekly_payroll.calculators.engine import PayrollEngine
from weekly_payroll.calculators.money import ZERO, round_cents
from weekly_payroll.calculators.types import DisbursementType, PayslipAmounts
from weekly_payroll.calculators.weeks import edit_deadline, is_editable, week_ending_for
from weekly_payroll.config import LoanOverdrawPolicy, Settings
from weekly_payroll.errors import (
    DuplicateError,
    EditWindowExpiredError,
    NotFoundError,
    SyncError,
    ValidationError,
)
from weekly_payroll.models import Employee, Payslip
from weekly_payroll.services.loan_ledger import LoanLedgerSynchronizer, SyncResult
from weekly_payroll.store.repositories import Repositories

logger = logging.getLogger(__name__)

TIME_FIELDS = ("hours", "minutes", "overtime_hours", "overtime_minutes")
MONEY_FIELDS = (
    "leave_pay",
    "bonus_pay",
    "other_income",
    "other_deductions",
    "loan_deduction_this_week",
    "new_loan_this_week",
)
TEXT_FIELDS = ("other_income_text", "other_deductions_text", "notes")
LOAN_FIELDS = ("loan_deduction_this_week", "new_loan_this_week", "loan_disbursement_type")
EDITABLE_FIELDS = TIME_FIELDS + MONEY_FIELDS + TEXT_FIELDS + ("loan_disbursement_type",)


@dataclass
class PayslipOutcome:
    """A persisted payslip plus what happened around it."""

    payslip: Payslip
    ledger: SyncResult | None = None
    warnings: list[str] = field(default_factory=list)


def parse_date(value: Any, field_name: str = "week_ending") -> date:
    """Parse an ISO date (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)") from None


def parse_payslip_fields(data: Mapping[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    """Strictly validate the editable payslip fields present in ``data``.

    Raises ValidationError listing every problem found.
    """
    errors: list[str] = []
    parsed: dict[str, Any] = {}

    for name in fields:
        if name not in data:
            continue
        value = data[name]
        if name in TIME_FIELDS:
            number = _number(name, value, errors)
            if number is None:
                continue
            if number != number.to_integral_value():
                errors.append(f"{name} must be a whole number")
                continue
            parsed[name] = int(number)
        elif name in MONEY_FIELDS:
            number = _number(name, value, errors)
            if number is not None:
                parsed[name] = round_cents(number)
        elif name in TEXT_FIELDS:
            parsed[name] = "" if value is None else str(value)
        elif name == "loan_disbursement_type":
            try:
                parsed[name] = DisbursementType.parse(value)
            except ValueError as exc:
                errors.append(str(exc))

    for name in ("minutes", "overtime_minutes"):
        if parsed.get(name, 0) >= 60:
            errors.append(f"{name} must be less than 60")

    if errors:
        raise ValidationError(errors)
    return parsed


def _number(name: str, value: Any, errors: list[str]) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ZERO
    if isinstance(value, bool):
        errors.append(f"{name} must be a number")
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        errors.append(f"{name} must be a number")
        return None
    if not number.is_finite():
        errors.append(f"{name} must be a number")
        return None
    if number < 0:
        errors.append(f"{name} cannot be negative")
        return None
    return number


def check_loan_consistency(payslip: Payslip) -> None:
    """Cross-field loan rules that the engine itself does not enforce."""
    errors: list[str] = []
    kind = payslip.loan_disbursement_type
    if payslip.new_loan_this_week > 0:
        if kind is None:
            errors.append("loan_disbursement_type is required when issuing a new loan")
        elif kind == DisbursementType.REPAYMENT:
            errors.append("A new loan cannot use the Repayment disbursement type")
    if errors:
        raise ValidationError(errors)


class PayslipService:
    """Creates and edits payslips and keeps the loan ledger in step."""

    def __init__(
        self,
        repos: Repositories,
        ledger: LoanLedgerSynchronizer,
        settings: Settings,
        engine: PayrollEngine | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.repos = repos
        self.ledger = ledger
        self.settings = settings
        self.engine = engine or PayrollEngine()
        self._now = now

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_payslip(self, record_number: int) -> Payslip:
        found = self.repos.payslips.get(record_number)
        if found is None:
            raise NotFoundError(
                f"Payslip not found: {record_number}",
                details={"record_number": record_number},
            )
        return found[1]

    def list_payslips(
        self, employee_id: str | None = None, week_ending: date | None = None
    ) -> list[Payslip]:
        return self.repos.payslips.filter(
            lambda p: (employee_id is None or p.employee_id == employee_id)
            and (week_ending is None or p.week_ending == week_ending)
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_payslip(self, data: Mapping[str, Any], user: str | None = None) -> PayslipOutcome:
        """Create a payslip from caller data (manual entry path)."""
        employee = self._resolve_employee(data)
        if data.get("week_ending") in (None, ""):
            raise ValidationError("week_ending is required")
        week_ending = week_ending_for(parse_date(data["week_ending"]))
        fields = parse_payslip_fields(data, EDITABLE_FIELDS)
        return self._create(employee, week_ending, fields, user or data.get("user"))

    def create_for_employee(
        self,
        employee: Employee,
        week_ending: date,
        fields: Mapping[str, Any],
        user: str | None = None,
    ) -> PayslipOutcome:
        """Create a payslip for an already resolved employee (approval path)."""
        parsed = parse_payslip_fields(fields, EDITABLE_FIELDS)
        return self._create(employee, week_ending_for(week_ending), parsed, user)

    def _create(
        self,
        employee: Employee,
        week_ending: date,
        fields: dict[str, Any],
        user: str | None,
    ) -> PayslipOutcome:
        existing = self.repos.payslips.find_for(employee.id, week_ending)
        if existing is not None:
            raise DuplicateError(
                f"Payslip already exists for {employee.ref_name} "
                f"week ending {week_ending.isoformat()}",
                details={
                    "record_number": existing.record_number,
                    "employee_id": employee.id,
                    "week_ending": week_ending.isoformat(),
                },
            )

        now = self._now()
        payslip = Payslip(
            record_number=self.repos.payslips.next_record_number(),
            employee_id=employee.id,
            employee_name=employee.ref_name,
            employer=employee.employer,
            employment_status=employee.employment_status,
            hourly_rate=employee.hourly_rate,
            week_ending=week_ending,
            current_loan_balance_at_creation=self.ledger.get_current_balance(employee.id),
            created_by=user,
            created_at=now,
            updated_at=now,
        )
        for name, value in fields.items():
            setattr(payslip, name, value)

        check_loan_consistency(payslip)
        warnings = self._calculate(payslip)
        self.repos.payslips.append(payslip)
        logger.info(
            "Created payslip %s for %s week ending %s: net=%s paid=%s",
            payslip.record_number,
            payslip.employee_name,
            week_ending,
            payslip.net_pay,
            payslip.paid_to_account,
        )
        ledger = self._sync(payslip, user)
        return PayslipOutcome(payslip=payslip, ledger=ledger, warnings=warnings)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    def update_payslip(
        self, record_number: int, data: Mapping[str, Any], user: str | None = None
    ) -> PayslipOutcome:
        """Merge edits, recalculate and resync the ledger."""
        return self._update(record_number, data, EDITABLE_FIELDS, user or data.get("user"))

    def update_payslip_loan_payment(
        self, record_number: int, loan_data: Mapping[str, Any], user: str | None = None
    ) -> PayslipOutcome:
        """Edit only the loan fields of a payslip."""
        return self._update(record_number, loan_data, LOAN_FIELDS, user or loan_data.get("user"))

    def _update(
        self,
        record_number: int,
        data: Mapping[str, Any],
        allowed: tuple[str, ...],
        user: str | None,
    ) -> PayslipOutcome:
        index, payslip = self._get_for_edit(record_number)
        fields = parse_payslip_fields(data, allowed)
        for name, value in fields.items():
            setattr(payslip, name, value)

        check_loan_consistency(payslip)
        warnings = self._calculate(payslip)
        payslip.modified_by = user
        payslip.updated_at = self._now()
        self.repos.payslips.update(index, payslip)
        logger.info(
            "Updated payslip %s (%s): net=%s paid=%s loan balance=%s",
            record_number,
            ", ".join(sorted(fields)) or "no changes",
            payslip.net_pay,
            payslip.paid_to_account,
            payslip.updated_loan_balance,
        )
        ledger = self._sync(payslip, user)
        return PayslipOutcome(payslip=payslip, ledger=ledger, warnings=warnings)

    def delete_payslip(self, record_number: int) -> Payslip:
        """Delete a payslip and its linked ledger row."""
        index, payslip = self._get_for_edit(record_number)
        removed = self.ledger.remove_for_payslip(record_number)
        self.repos.payslips.delete(index)
        logger.info(
            "Deleted payslip %s%s",
            record_number,
            f" and loan entry {removed.loan_id}" if removed else "",
        )
        return payslip

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_for_edit(self, record_number: int) -> tuple[int, Payslip]:
        found = self.repos.payslips.get(record_number)
        if found is None:
            raise NotFoundError(
                f"Payslip not found: {record_number}",
                details={"record_number": record_number},
            )
        index, payslip = found
        grace = self.settings.payslip_edit_grace_days
        if not is_editable(payslip.week_ending, self._now(), grace):
            deadline = edit_deadline(payslip.week_ending, grace)
            raise EditWindowExpiredError(
                f"Payslip {record_number} can no longer be changed "
                f"(deadline {deadline.isoformat(timespec='minutes')})",
                details={
                    "record_number": record_number,
                    "deadline": deadline.isoformat(),
                },
            )
        return index, payslip

    def _resolve_employee(self, data: Mapping[str, Any]) -> Employee:
        employee_id = data.get("employee_id")
        employee_name = data.get("employee_name")
        if not employee_id and not employee_name:
            raise ValidationError("employee_id or employee_name is required")
        employee = (
            self.repos.employees.get(str(employee_id))
            if employee_id
            else self.repos.employees.find_by_name(str(employee_name))
        )
        if employee is None:
            raise NotFoundError(
                f"Employee not found: {employee_id or employee_name}",
                details={"employee_id": employee_id, "employee_name": employee_name},
            )
        return employee

    def _calculate(self, payslip: Payslip) -> list[str]:
        amounts: PayslipAmounts = self.engine.calculate(payslip.calculation_inputs())
        overdrawn = payslip.loan_deduction_this_week > amounts.current_loan_balance
        if overdrawn and self.settings.loan_overdraw_policy == LoanOverdrawPolicy.REJECT:
            raise ValidationError(
                f"Loan deduction {payslip.loan_deduction_this_week} exceeds current "
                f"loan balance {amounts.current_loan_balance}",
                details={
                    "loan_deduction_this_week": str(payslip.loan_deduction_this_week),
                    "current_loan_balance": str(amounts.current_loan_balance),
                },
            )
        for warning in amounts.warnings:
            logger.warning("Payslip %s: %s", payslip.record_number, warning)
        payslip.apply_amounts(amounts)
        return list(amounts.warnings)

    def _sync(self, payslip: Payslip, user: str | None) -> SyncResult:
        try:
            return self.ledger.sync_ledger(payslip, user)
        except SyncError as exc:
            logger.error(
                "Financial inconsistency: payslip %s saved but loan ledger not synced: %s",
                payslip.record_number,
                exc,
                extra={
                    "financial_inconsistency": True,
                    "record_number": payslip.record_number,
                    "employee_id": payslip.employee_id,
                },
            )
            raise
