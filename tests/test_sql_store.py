"""Tests for the SQLAlchemy tabular store."""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from tests.conftest import WEEK_ENDING, make_employees, make_settings
from weekly_payroll.models import LoanLedgerEntry
from weekly_payroll.services.operations import PayrollOperations
from weekly_payroll.store import (
    MissingColumnsError,
    Repositories,
    SqlTabularStore,
    TableNotFoundError,
    bootstrap_tables,
)
from weekly_payroll.store.base import RowIndexError


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(engine) -> SqlTabularStore:
    store = SqlTabularStore(engine)
    store.create_table("Sheet", ["Name", "Amount"])
    return store


class TestSqlTabularStore:
    """Row semantics of the SQL-backed store."""

    def test_append_returns_row_index(self, sql_store):
        assert sql_store.append_row("Sheet", {"Name": "a", "Amount": "1"}) == 0
        assert sql_store.append_row("Sheet", {"Name": "b"}) == 1

        assert sql_store.scan_rows("Sheet") == [
            {"Name": "a", "Amount": "1"},
            {"Name": "b", "Amount": ""},
        ]

    def test_update_by_index(self, sql_store):
        for name in ("a", "b", "c"):
            sql_store.append_row("Sheet", {"Name": name, "Amount": "0"})

        sql_store.update_row("Sheet", 1, {"Name": "b", "Amount": "9.50"})

        assert [r["Amount"] for r in sql_store.scan_rows("Sheet")] == ["0", "9.50", "0"]

    def test_delete_shifts_later_rows(self, sql_store):
        for name in ("a", "b", "c"):
            sql_store.append_row("Sheet", {"Name": name})

        sql_store.delete_row("Sheet", 0)
        sql_store.update_row("Sheet", 1, {"Name": "c2"})

        assert [r["Name"] for r in sql_store.scan_rows("Sheet")] == ["b", "c2"]

    def test_row_index_out_of_range(self, sql_store):
        sql_store.append_row("Sheet", {"Name": "a"})

        with pytest.raises(RowIndexError):
            sql_store.update_row("Sheet", 5, {"Name": "x"})
        with pytest.raises(RowIndexError):
            sql_store.delete_row("Sheet", -1)

    def test_unknown_table(self, sql_store):
        with pytest.raises(TableNotFoundError):
            sql_store.scan_rows("Missing")

    def test_unknown_column(self, sql_store):
        with pytest.raises(MissingColumnsError):
            sql_store.append_row("Sheet", {"Name": "a", "Colour": "red"})

    def test_existing_tables_are_reflected(self, engine, sql_store):
        sql_store.append_row("Sheet", {"Name": "a", "Amount": "1"})

        reopened = SqlTabularStore(engine)
        reopened.create_table("Sheet", ["Name", "Amount"])

        assert reopened.headers("Sheet") == ["Name", "Amount"]
        assert reopened.scan_rows("Sheet") == [{"Name": "a", "Amount": "1"}]

    def test_headers_with_spaces_and_dots(self, engine):
        store = SqlTabularStore(engine)
        bootstrap_tables(store)

        assert store.headers(LoanLedgerEntry.TABLE) == LoanLedgerEntry.headers()
        assert "STARTDATE.LEAVE" in store.headers("LEAVE")


def test_payslip_and_ledger_round_trip_through_sql(engine):
    """Payslip creation and ledger sync work unchanged over SQL."""
    store = SqlTabularStore(engine)
    bootstrap_tables(store)
    repos = Repositories.for_store(store)
    for employee in make_employees():
        repos.employees.append(employee)
    ops = PayrollOperations(store, make_settings())

    ops.add_loan_transaction(
        {"employee_id": "E001", "amount": "150", "transaction_type": "Disbursement",
         "transaction_date": "2024-03-01"}
    )
    created = ops.create_payslip(
        {
            "employee_id": "E001",
            "week_ending": WEEK_ENDING.isoformat(),
            "hours": 39,
            "minutes": 30,
            "loan_deduction_this_week": "150",
        }
    )

    assert created.success is True
    assert created.data["payslip"]["paid_to_account"] == "1178.01"
    payslip = repos.payslips.get(1)[1]
    assert payslip.updated_loan_balance == Decimal("0.00")
    history = ops.get_loan_history("E001").data
    assert [e["amount"] for e in history] == ["150.00", "-150.00"]
    assert [e["payslip_link"] for e in history] == [None, 1]
