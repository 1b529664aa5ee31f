"""Workdays with neither a primary punch nor leave cover."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from weekly_payroll.calculators.reconciler import PunchReconciler
from weekly_payroll.calculators.weeks import week_ending_for, workdays
from weekly_payroll.errors import NotFoundError
from weekly_payroll.store.repositories import (
    EmployeeRepository,
    ImportBatchRepository,
    LeaveRepository,
    RawPunchRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MissingDay:
    date: date
    day_name: str

    def to_dict(self) -> dict[str, str]:
        return {"date": self.date.isoformat(), "day_name": self.day_name}


class MissingDayDetector:
    """Finds Monday to Friday dates an employee neither worked nor had leave."""

    def __init__(
        self,
        employees: EmployeeRepository,
        punches: RawPunchRepository,
        leave: LeaveRepository,
        reconciler: PunchReconciler,
        imports: ImportBatchRepository | None = None,
    ):
        self.employees = employees
        self.punches = punches
        self.leave = leave
        self.reconciler = reconciler
        self.imports = imports

    def missing_days(self, employee_name: str, week_ending: date) -> list[MissingDay]:
        """Ordered workdays lacking a primary punch and not covered by leave.

        Auxiliary (break) punches alone do not count as attendance, nor do
        punches from an import replaced by an override. Leave covers its
        start and return dates inclusively.
        """
        employee = self.employees.find_by_name(employee_name)
        if employee is None:
            raise NotFoundError(
                f"Employee not found: {employee_name}",
                details={"employee_name": employee_name},
            )

        days = workdays(week_ending_for(week_ending))
        punches = self.punches.for_employee_between(
            days[0],
            days[-1],
            employee_id=employee.id,
            employee_name=employee.ref_name,
            exclude_import_ids=self.imports.replaced_ids() if self.imports else None,
        )
        punched = {p.punch_date for p in punches if self.reconciler.is_primary(p)}
        leave = self.leave.for_employee(employee.ref_name)

        missing = [
            MissingDay(date=day, day_name=day.strftime("%A"))
            for day in days
            if day not in punched and not any(record.covers(day) for record in leave)
        ]
        logger.debug(
            "%s week ending %s: %d missing day(s)",
            employee.ref_name,
            days[-1],
            len(missing),
        )
        return missing
