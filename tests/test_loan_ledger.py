"""Tests for the loan ledger synchronizer."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from tests.conftest import WEEK_ENDING
from weekly_payroll.calculators.types import DisbursementType, TransactionType
from weekly_payroll.errors import LedgerSyncError, NotFoundError, ValidationError
from weekly_payroll.models import LoanLedgerEntry, Payslip
from weekly_payroll.services.loan_ledger import LoanLedgerSynchronizer, SyncResult


def payslip(
    record_number: int = 1,
    deduction: str = "0",
    new_loan: str = "0",
    kind: DisbursementType | None = None,
    balance_at_creation: str = "0",
) -> Payslip:
    slip = Payslip(
        record_number=record_number,
        employee_id="E001",
        employee_name="Jane Doe",
        employer="Acme Farms",
        employment_status="Permanent",
        hourly_rate=Decimal("33.96"),
        week_ending=WEEK_ENDING,
        loan_deduction_this_week=Decimal(deduction),
        new_loan_this_week=Decimal(new_loan),
        loan_disbursement_type=kind,
        current_loan_balance_at_creation=Decimal(balance_at_creation),
    )
    slip.updated_loan_balance = (
        slip.current_loan_balance_at_creation
        - slip.loan_deduction_this_week
        + slip.new_loan_this_week
    )
    return slip


@pytest.fixture
def ledger(repos, clock) -> LoanLedgerSynchronizer:
    return LoanLedgerSynchronizer(repos.loans, repos.employees, now=clock)


class TestPayslipSync:
    """One ledger row per payslip with loan movement."""

    def test_disbursement_creates_entry(self, repos, ledger):
        result = ledger.sync_ledger(payslip(new_loan="500", kind=DisbursementType.WITH_SALARY))

        assert result.action == SyncResult.CREATED
        assert result.is_new
        entries = repos.loans.all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.amount == Decimal("500.00")
        assert entry.transaction_type == TransactionType.DISBURSEMENT
        assert entry.disbursement_mode == "With Salary"
        assert entry.payslip_link == 1
        assert entry.balance_before == Decimal("0.00")
        assert entry.balance_after == Decimal("500.00")
        assert entry.transaction_date == WEEK_ENDING

    def test_repayment_is_negative(self, repos, ledger):
        ledger.sync_ledger(payslip(deduction="150", balance_at_creation="150"))

        entry = repos.loans.all()[0]
        assert entry.amount == Decimal("-150.00")
        assert entry.transaction_type == TransactionType.REPAYMENT
        assert entry.disbursement_mode == "N/A"
        assert entry.balance_before == Decimal("150.00")
        assert entry.balance_after == Decimal("0.00")

    def test_repeated_edits_update_the_same_entry(self, repos, ledger, clock):
        ledger.sync_ledger(payslip(deduction="50", balance_at_creation="300"))
        first_id = repos.loans.all()[0].loan_id

        clock.advance(minutes=5)
        ledger.sync_ledger(payslip(deduction="80", balance_at_creation="300"))
        result = ledger.sync_ledger(payslip(deduction="100", balance_at_creation="300"))

        assert result.action == SyncResult.UPDATED
        entries = repos.loans.all()
        assert len(entries) == 1
        assert entries[0].loan_id == first_id
        assert entries[0].amount == Decimal("-100.00")
        assert entries[0].balance_after == Decimal("200.00")
        assert entries[0].timestamp == clock()

    def test_sync_is_idempotent(self, repos, ledger):
        slip = payslip(new_loan="200", kind=DisbursementType.SEPARATE)

        ledger.sync_ledger(slip)
        ledger.sync_ledger(slip)

        assert len(repos.loans.all()) == 1

    def test_no_movement_is_a_noop(self, repos, ledger):
        result = ledger.sync_ledger(payslip())

        assert result.action == SyncResult.NOOP
        assert repos.loans.all() == []

    def test_movement_removed_deletes_entry(self, repos, ledger):
        ledger.sync_ledger(payslip(deduction="50", balance_at_creation="300"))

        result = ledger.sync_ledger(payslip(balance_at_creation="300"))

        assert result.action == SyncResult.REMOVED
        assert repos.loans.all() == []

    def test_entries_for_other_payslips_untouched(self, repos, ledger):
        ledger.sync_ledger(payslip(record_number=1, new_loan="100", kind=DisbursementType.SEPARATE))
        ledger.sync_ledger(payslip(record_number=2, deduction="40", balance_at_creation="100"))
        ledger.sync_ledger(payslip(record_number=1, new_loan="120", kind=DisbursementType.SEPARATE))

        links = sorted(e.payslip_link for e in repos.loans.all())
        assert links == [1, 2]

    def test_missing_ledger_table(self, store, ledger):
        store.drop_table(LoanLedgerEntry.TABLE)

        with pytest.raises(LedgerSyncError) as exc_info:
            ledger.sync_ledger(payslip(deduction="10", balance_at_creation="10"))

        assert exc_info.value.details["record_number"] == 1
        assert exc_info.value.details["cause"] == "TABLE_NOT_FOUND"

    def test_missing_ledger_column(self, store, ledger):
        store.drop_table(LoanLedgerEntry.TABLE)
        headers = [h for h in LoanLedgerEntry.headers() if h != "SalaryLink"]
        store.create_table(LoanLedgerEntry.TABLE, headers)

        with pytest.raises(LedgerSyncError) as exc_info:
            ledger.sync_ledger(payslip(deduction="10", balance_at_creation="10"))

        assert exc_info.value.details["cause"] == "MISSING_COLUMNS"

    def test_remove_for_payslip(self, repos, ledger):
        ledger.sync_ledger(payslip(new_loan="100", kind=DisbursementType.SEPARATE))

        removed = ledger.remove_for_payslip(1)

        assert removed is not None and removed.payslip_link == 1
        assert repos.loans.all() == []
        assert ledger.remove_for_payslip(1) is None


class TestBalancesAndHistory:
    """Balance and history reads."""

    def test_balance_is_zero_without_entries(self, ledger):
        assert ledger.get_current_balance("E001") == Decimal("0.00")

    def test_manual_transactions_chain_balances(self, ledger):
        ledger.add_loan_transaction(
            employee_id="E001",
            amount="500",
            transaction_type="Disbursement",
            transaction_date=date(2024, 3, 1),
        )
        entry = ledger.add_loan_transaction(
            employee_id="E001",
            amount="-120.50",
            transaction_type=TransactionType.REPAYMENT,
            transaction_date=date(2024, 3, 8),
        )

        assert entry.loan_id == 2
        assert entry.employee_name == "Jane Doe"
        assert entry.balance_before == Decimal("500.00")
        assert entry.balance_after == Decimal("379.50")
        assert ledger.get_current_balance("E001") == Decimal("379.50")
        assert ledger.get_current_balance("E001", as_of=date(2024, 3, 5)) == Decimal("500.00")
        assert ledger.get_current_balance("E002") == Decimal("0.00")

    def test_mid_week_transaction_before_payslip_entry(self, repos, ledger):
        ledger.sync_ledger(payslip(new_loan="500", kind=DisbursementType.SEPARATE))

        entry = ledger.add_loan_transaction(
            employee_id="E001",
            amount="200",
            transaction_type="Disbursement",
            transaction_date=date(2024, 3, 14),
        )

        assert entry.balance_before == Decimal("0.00")
        assert entry.balance_after == Decimal("200.00")
        assert ledger.get_current_balance("E001") == Decimal("700.00")
        payslip_entry = repos.loans.find_by_payslip_link(1)[1]
        assert payslip_entry.balance_before == Decimal("200.00")
        assert payslip_entry.balance_after == Decimal("700.00")

    def test_history_is_chronological_and_filtered(self, ledger):
        for day, amount in ((date(2024, 3, 8), "-50"), (date(2024, 2, 2), "300"), (date(2024, 3, 1), "100")):
            ledger.add_loan_transaction(
                employee_id="E001",
                amount=amount,
                transaction_type="Repayment" if amount.startswith("-") else "Disbursement",
                transaction_date=day,
            )

        history = ledger.get_loan_history("E001")
        assert [e.transaction_date for e in history] == [
            date(2024, 2, 2),
            date(2024, 3, 1),
            date(2024, 3, 8),
        ]

        march = ledger.get_loan_history("E001", start=date(2024, 3, 1), end=date(2024, 3, 8))
        assert [e.amount for e in march] == [Decimal("100.00"), Decimal("-50.00")]

    @pytest.mark.parametrize(
        "amount, kind, message",
        [
            ("0", "Disbursement", "cannot be zero"),
            ("-10", "Disbursement", "positive amount"),
            ("10", "Repayment", "negative amount"),
            ("10", "Gift", "Loan type must be one of"),
        ],
    )
    def test_manual_transaction_validation(self, ledger, amount, kind, message):
        with pytest.raises(ValidationError) as exc_info:
            ledger.add_loan_transaction(employee_id="E001", amount=amount, transaction_type=kind)

        assert message in str(exc_info.value)

    def test_manual_transaction_unknown_employee(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.add_loan_transaction(
                employee_id="E999", amount="10", transaction_type="Disbursement"
            )

    def test_recalculate_rewrites_drifted_balances(self, repos, ledger):
        ledger.add_loan_transaction(
            employee_id="E001", amount="300", transaction_type="Disbursement",
            transaction_date=date(2024, 3, 1),
        )
        ledger.add_loan_transaction(
            employee_id="E001", amount="-100", transaction_type="Repayment",
            transaction_date=date(2024, 3, 8),
        )
        index, entry = repos.loans.for_employee("E001")[1]
        entry.balance_before = Decimal("999.00")
        entry.balance_after = Decimal("899.00")
        repos.loans.update(index, entry)

        final = ledger.recalculate_balances("E001")

        assert final == Decimal("200.00")
        fixed = repos.loans.for_employee("E001")[1][1]
        assert fixed.balance_before == Decimal("300.00")
        assert fixed.balance_after == Decimal("200.00")


def test_entry_sort_key_orders_by_date_then_time():
    early = LoanLedgerEntry(
        loan_id=9, employee_id="E001", employee_name="", timestamp=datetime(2024, 3, 9),
        transaction_date=date(2024, 3, 1), amount=Decimal("1"), transaction_type=None,
    )
    late = LoanLedgerEntry(
        loan_id=1, employee_id="E001", employee_name="", timestamp=datetime(2024, 3, 1),
        transaction_date=date(2024, 3, 8), amount=Decimal("1"), transaction_type=None,
    )

    assert sorted([late, early], key=LoanLedgerEntry.sort_key) == [early, late]
