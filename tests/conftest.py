"""Pytest fixtures for weekly payroll tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable

import pytest

from weekly_payroll.config import Settings
from weekly_payroll.models import Employee, EmploymentStatus
from weekly_payroll.services.operations import PayrollOperations
from weekly_payroll.store import InMemoryTabularStore, Repositories, bootstrap_tables

# Payroll week Monday 2024-03-11 .. Friday 2024-03-15
WEEK_ENDING = date(2024, 3, 15)
MONDAY = date(2024, 3, 11)
NOW = datetime(2024, 3, 14, 9, 0)

PUNCH_HEADER = "Person ID,Person Name,Department,Punch Time,Device Name,Device Serial,Punch Type,Source"


class Clock:
    """Controllable ``now`` for services."""

    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def make_employees() -> list[Employee]:
    return [
        Employee(
            id="E001",
            ref_name="Jane Doe",
            employer="Acme Farms",
            employment_status=EmploymentStatus.PERMANENT.value,
            hourly_rate=Decimal("33.96"),
            clock_in_ref="101",
        ),
        Employee(
            id="E002",
            ref_name="John Smith",
            employer="Acme Farms",
            employment_status=EmploymentStatus.PERMANENT.value,
            hourly_rate=Decimal("40.00"),
            clock_in_ref="102",
        ),
        Employee(
            id="E003",
            ref_name="Sipho Ndlovu",
            employer="Acme Packhouse",
            employment_status=EmploymentStatus.TEMPORARY.value,
            hourly_rate=Decimal("35.00"),
            clock_in_ref="103",
        ),
    ]


def make_settings(**overrides) -> Settings:
    values = dict(
        database_url="sqlite://",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


def punch_csv(rows: list[tuple[str, str, str, str]], title: bool = True) -> bytes:
    """Build a punch export from ``(person_id, name, "YYYY-MM-DD HH:MM:SS", device)`` rows."""
    lines = ["Attendance Transactions Report"] if title else []
    lines.append(PUNCH_HEADER)
    for person_id, name, stamp, device in rows:
        lines.append(f"{person_id},{name},Operations,{stamp},{device},SN-0001,Check,Device")
    return ("\n".join(lines) + "\n").encode("utf-8")


def full_week_rows(person_id: str, name: str, start: str = "08:00", end: str = "16:30") -> list:
    """Mon..Fri in/out punches on the main door."""
    rows = []
    for offset in range(5):
        day = (MONDAY + timedelta(days=offset)).isoformat()
        rows.append((person_id, name, f"{day} {start}:00", "Main Door"))
        rows.append((person_id, name, f"{day} {end}:00", "Main Door"))
    return rows


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> InMemoryTabularStore:
    """Bootstrapped in-memory store with the employee roster seeded."""
    store = InMemoryTabularStore()
    bootstrap_tables(store)
    repos = Repositories.for_store(store)
    for employee in make_employees():
        repos.employees.append(employee)
    return store


@pytest.fixture
def repos(store: InMemoryTabularStore) -> Repositories:
    return Repositories.for_store(store)


@pytest.fixture
def ops(store: InMemoryTabularStore, settings: Settings, clock: Clock) -> PayrollOperations:
    return PayrollOperations(store, settings, now=clock)


@pytest.fixture
def ops_factory(store: InMemoryTabularStore, clock: Clock) -> Callable[..., PayrollOperations]:
    """Operations over the shared store with custom settings."""

    def factory(**overrides) -> PayrollOperations:
        return PayrollOperations(store, make_settings(**overrides), now=clock)

    return factory
