"""Typed repositories over the tabular store.

Each repository wraps one table and speaks in record dataclasses. Every
lookup is a full scan of the table: nothing is cached, so repeated
operations always see what the store currently holds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Generic, Iterable, TypeVar

from weekly_payroll.models import (
    ALL_RECORDS,
    Employee,
    ImportBatch,
    ImportStatus,
    LeaveRecord,
    LoanLedgerEntry,
    Payslip,
    PendingTimesheet,
    RawPunch,
    RowRecord,
    TimesheetStatus,
)
from weekly_payroll.store.base import TabularStore, require_columns

R = TypeVar("R", bound=RowRecord)


class Repository(Generic[R]):
    """Scan-based access to one table of ``record_cls`` rows."""

    record_cls: type[R]

    def __init__(self, store: TabularStore):
        self.store = store

    @property
    def table(self) -> str:
        return self.record_cls.TABLE

    def require(self) -> None:
        """Raise unless the table exists with every mapped column."""
        require_columns(self.store, self.table, self.record_cls.headers())

    def scan(self) -> list[tuple[int, R]]:
        return [
            (index, self.record_cls.from_row(row))
            for index, row in enumerate(self.store.scan_rows(self.table))
        ]

    def all(self) -> list[R]:
        return [record for _, record in self.scan()]

    def find_first(self, predicate: Callable[[R], bool]) -> tuple[int, R] | None:
        for index, record in self.scan():
            if predicate(record):
                return index, record
        return None

    def filter(self, predicate: Callable[[R], bool]) -> list[R]:
        return [record for _, record in self.scan() if predicate(record)]

    def append(self, record: R) -> int:
        return self.store.append_row(self.table, record.to_row())

    def append_many(self, records: Iterable[R]) -> int:
        count = 0
        for record in records:
            self.append(record)
            count += 1
        return count

    def update(self, row_index: int, record: R) -> None:
        self.store.update_row(self.table, row_index, record.to_row())

    def delete(self, row_index: int) -> None:
        self.store.delete_row(self.table, row_index)


class EmployeeRepository(Repository[Employee]):
    record_cls = Employee

    def get(self, employee_id: str) -> Employee | None:
        found = self.find_first(lambda e: e.id == employee_id)
        return found[1] if found else None

    def find_by_name(self, name: str) -> Employee | None:
        wanted = name.strip().lower()
        found = self.find_first(lambda e: e.ref_name.strip().lower() == wanted)
        return found[1] if found else None

    def clock_ref_map(self) -> dict[str, Employee]:
        """Map of clock reference to employee, skipping blank references."""
        return {
            e.clock_in_ref.strip(): e for e in self.all() if e.clock_in_ref.strip()
        }


class LeaveRepository(Repository[LeaveRecord]):
    record_cls = LeaveRecord

    def for_employee(self, employee_name: str) -> list[LeaveRecord]:
        wanted = employee_name.strip().lower()
        return self.filter(lambda r: r.employee_name.strip().lower() == wanted)


class RawPunchRepository(Repository[RawPunch]):
    record_cls = RawPunch

    def for_employee_between(
        self,
        start: date,
        end: date,
        *,
        employee_id: str | None = None,
        employee_name: str | None = None,
        exclude_import_ids: set[str] | None = None,
    ) -> list[RawPunch]:
        """Punches dated within ``[start, end]`` matching id or name."""
        name = (employee_name or "").strip().lower()

        def matches(p: RawPunch) -> bool:
            if not start <= p.punch_date <= end:
                return False
            if exclude_import_ids and p.import_id in exclude_import_ids:
                return False
            if employee_id and p.employee_id == employee_id:
                return True
            return bool(name) and p.employee_name.strip().lower() == name

        return self.filter(matches)


class ImportBatchRepository(Repository[ImportBatch]):
    record_cls = ImportBatch

    def active_for_week(self, week_ending: date) -> list[tuple[int, ImportBatch]]:
        return [
            (index, batch)
            for index, batch in self.scan()
            if batch.week_ending == week_ending and batch.status == ImportStatus.ACTIVE
        ]

    def replaced_ids(self) -> set[str]:
        """Import ids whose punches were superseded by an override."""
        return {b.import_id for _, b in self.scan() if b.status == ImportStatus.REPLACED}


class TimesheetRepository(Repository[PendingTimesheet]):
    record_cls = PendingTimesheet

    def get(self, timesheet_id: int) -> tuple[int, PendingTimesheet] | None:
        return self.find_first(lambda t: t.id == timesheet_id)

    def next_id(self) -> int:
        return max((t.id for t in self.all()), default=0) + 1

    def find_chain(
        self, employee_id: str, week_ending: date
    ) -> tuple[int, PendingTimesheet] | None:
        """The Pending or Approved timesheet for an employee-week, if any."""
        return self.find_first(
            lambda t: t.employee_id == employee_id
            and t.week_ending == week_ending
            and t.status in (TimesheetStatus.PENDING, TimesheetStatus.APPROVED)
        )


class PayslipRepository(Repository[Payslip]):
    record_cls = Payslip

    def get(self, record_number: int) -> tuple[int, Payslip] | None:
        return self.find_first(lambda p: p.record_number == record_number)

    def find_for(self, employee_id: str, week_ending: date) -> Payslip | None:
        found = self.find_first(
            lambda p: p.employee_id == employee_id and p.week_ending == week_ending
        )
        return found[1] if found else None

    def next_record_number(self) -> int:
        return max((p.record_number for p in self.all()), default=0) + 1


class LoanLedgerRepository(Repository[LoanLedgerEntry]):
    record_cls = LoanLedgerEntry

    def find_by_payslip_link(
        self, record_number: int
    ) -> tuple[int, LoanLedgerEntry] | None:
        return self.find_first(lambda e: e.payslip_link == record_number)

    def next_loan_id(self) -> int:
        return max((e.loan_id for e in self.all()), default=0) + 1

    def for_employee(self, employee_id: str) -> list[tuple[int, LoanLedgerEntry]]:
        entries = [(i, e) for i, e in self.scan() if e.employee_id == employee_id]
        entries.sort(key=lambda pair: pair[1].sort_key())
        return entries


@dataclass
class Repositories:
    """All repositories bound to one store."""

    employees: EmployeeRepository
    leave: LeaveRepository
    punches: RawPunchRepository
    imports: ImportBatchRepository
    timesheets: TimesheetRepository
    payslips: PayslipRepository
    loans: LoanLedgerRepository

    @classmethod
    def for_store(cls, store: TabularStore) -> Repositories:
        return cls(
            employees=EmployeeRepository(store),
            leave=LeaveRepository(store),
            punches=RawPunchRepository(store),
            imports=ImportBatchRepository(store),
            timesheets=TimesheetRepository(store),
            payslips=PayslipRepository(store),
            loans=LoanLedgerRepository(store),
        )


def bootstrap_tables(store: TabularStore) -> None:
    """Create every table the application uses, if the store supports it."""
    create = getattr(store, "create_table", None)
    if create is None:
        return
    for record_cls in ALL_RECORDS:
        create(record_cls.TABLE, record_cls.headers())
