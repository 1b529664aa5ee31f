"""Tests for the payslip calculation engine."""

from decimal import Decimal

from hypothesis import given, settings, strategies as st

from weekly_payroll.calculators import (
    DisbursementType,
    PayrollEngine,
    PayslipInputs,
    calculate_payslip,
    round_cents,
    to_decimal,
    to_whole,
)


def inputs(**overrides) -> PayslipInputs:
    values = dict(
        hours=40,
        minutes=0,
        hourly_rate=Decimal("40.00"),
        employment_status="Permanent",
    )
    values.update(overrides)
    return PayslipInputs(**values)


class TestEndToEndScenarios:
    """Reference payslips that must be reproduced to the cent."""

    def test_scenario_a_repayment_clears_balance(self):
        """39h30 at 33.96, permanent, repaying the whole 150 balance."""
        result = calculate_payslip(
            inputs(
                hours=39,
                minutes=30,
                hourly_rate=Decimal("33.96"),
                loan_deduction_this_week=Decimal("150"),
                loan_disbursement_type=DisbursementType.REPAYMENT,
                current_loan_balance=Decimal("150"),
            )
        )

        assert result.standard_time_pay == Decimal("1341.42")
        assert result.gross_pay == Decimal("1341.42")
        assert result.uif == Decimal("13.41")
        assert result.net_pay == Decimal("1328.01")
        assert result.paid_to_account == Decimal("1178.01")
        assert result.updated_loan_balance == Decimal("0.00")
        assert result.warnings == ()

    def test_scenario_b_loan_paid_with_salary(self):
        """A new loan disbursed with salary is added to the payment."""
        result = calculate_payslip(
            inputs(
                new_loan_this_week=Decimal("500"),
                loan_disbursement_type=DisbursementType.WITH_SALARY,
            )
        )

        assert result.standard_time_pay == Decimal("1600.00")
        assert result.uif == Decimal("16.00")
        assert result.net_pay == Decimal("1584.00")
        assert result.paid_to_account == Decimal("2084.00")
        assert result.updated_loan_balance == Decimal("500.00")

    def test_scenario_c_temporary_pays_no_uif(self):
        result = calculate_payslip(
            inputs(hourly_rate=Decimal("35.00"), employment_status="Temporary")
        )

        assert result.uif == Decimal("0.00")
        assert result.net_pay == Decimal("1400.00")
        assert result.paid_to_account == Decimal("1400.00")


class TestPayrollEngine:
    """Individual pipeline steps."""

    def test_overtime_at_time_and_a_half(self):
        result = calculate_payslip(
            inputs(hours=0, overtime_hours=2, overtime_minutes=30, hourly_rate=Decimal("40"))
        )

        # 1.5 * (2 * 40 + 40/60 * 30) = 1.5 * 100
        assert result.overtime_pay == Decimal("150.00")
        assert result.gross_pay == Decimal("150.00")

    def test_add_ons_are_part_of_gross(self):
        result = calculate_payslip(
            inputs(
                leave_pay=Decimal("100"),
                bonus_pay=Decimal("50.50"),
                other_income=Decimal("9.50"),
            )
        )

        assert result.gross_pay == Decimal("1760.00")
        assert result.uif == Decimal("17.60")

    def test_loan_repayment_is_not_a_deduction(self):
        """Total deductions cover UIF and other deductions only."""
        result = calculate_payslip(
            inputs(
                other_deductions=Decimal("20"),
                loan_deduction_this_week=Decimal("100"),
                current_loan_balance=Decimal("300"),
            )
        )

        assert result.total_deductions == Decimal("36.00")
        assert result.net_pay == Decimal("1564.00")
        assert result.paid_to_account == Decimal("1464.00")
        assert result.updated_loan_balance == Decimal("200.00")

    def test_separate_disbursement_not_added_to_pay(self):
        result = calculate_payslip(
            inputs(
                new_loan_this_week=Decimal("500"),
                loan_disbursement_type=DisbursementType.SEPARATE,
            )
        )

        assert result.paid_to_account == result.net_pay
        assert result.updated_loan_balance == Decimal("500.00")

    def test_disbursement_type_accepts_camel_case(self):
        result = calculate_payslip(
            inputs(new_loan_this_week="500", loan_disbursement_type="WithSalary")
        )

        assert result.paid_to_account == Decimal("2084.00")

    def test_non_numeric_inputs_count_as_zero(self):
        result = calculate_payslip(
            inputs(
                hours="abc",
                minutes=None,
                hourly_rate="40",
                bonus_pay="n/a",
                loan_disbursement_type="bogus",
            )
        )

        assert result.standard_time_pay == Decimal("0.00")
        assert result.gross_pay == Decimal("0.00")
        assert result.paid_to_account == Decimal("0.00")

    def test_warns_when_deduction_exceeds_balance(self):
        result = calculate_payslip(
            inputs(loan_deduction_this_week=Decimal("200"), current_loan_balance=Decimal("50"))
        )

        assert result.updated_loan_balance == Decimal("-150.00")
        assert any("exceeds current loan balance" in w for w in result.warnings)

    def test_warns_on_negative_payment(self):
        result = calculate_payslip(
            inputs(hours=1, loan_deduction_this_week=Decimal("100"), current_loan_balance=Decimal("100"))
        )

        assert result.paid_to_account == Decimal("-60.40")
        assert any("negative" in w for w in result.warnings)

    def test_amounts_serialise_as_strings(self):
        data = PayrollEngine().calculate(inputs()).to_dict()

        assert data["gross_pay"] == "1600.00"
        assert data["warnings"] == []


class TestMoney:
    """Rounding and coercion helpers."""

    def test_round_half_up(self):
        assert round_cents(Decimal("0.125")) == Decimal("0.13")
        assert round_cents(Decimal("13.4142")) == Decimal("13.41")
        assert round_cents(Decimal("-0.125")) == Decimal("-0.13")

    def test_to_decimal_is_lenient(self):
        assert to_decimal("1,234.50") == Decimal("1234.50")
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal("abc") == Decimal("0")
        assert to_decimal(None) == Decimal("0")
        assert to_decimal(True) == Decimal("0")
        assert to_decimal("NaN") == Decimal("0")

    def test_to_whole_truncates(self):
        assert to_whole("39.5") == 39
        assert to_whole(7) == 7
        assert to_whole("") == 0


cents = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("5000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestEngineProperties:
    """Property-based checks over generated payslips."""

    @given(
        hours=st.integers(min_value=0, max_value=80),
        minutes=st.integers(min_value=0, max_value=59),
        rate=cents,
        deduction=cents,
        new_loan=cents,
        balance=cents,
        disbursement=st.sampled_from([None, *DisbursementType]),
        status=st.sampled_from(["Permanent", "Temporary", "Contract"]),
    )
    @settings(max_examples=200)
    def test_paid_to_account_identity(
        self, hours, minutes, rate, deduction, new_loan, balance, disbursement, status
    ):
        """paid = net - deduction + (new loan if disbursed with salary)."""
        payslip = inputs(
            hours=hours,
            minutes=minutes,
            hourly_rate=rate,
            employment_status=status,
            loan_deduction_this_week=deduction,
            new_loan_this_week=new_loan,
            loan_disbursement_type=disbursement,
            current_loan_balance=balance,
        )

        first = calculate_payslip(payslip)
        second = calculate_payslip(payslip)

        added = new_loan if disbursement == DisbursementType.WITH_SALARY else Decimal("0")
        assert first == second
        assert first.paid_to_account == first.net_pay - deduction + added
        assert first.updated_loan_balance == balance - deduction + new_loan
        assert first.net_pay == first.gross_pay - first.total_deductions
        if status == "Permanent":
            assert first.uif == round_cents(first.gross_pay * Decimal("0.01"))
        else:
            assert first.uif == Decimal("0")

    @given(rate=cents, hours=st.integers(min_value=0, max_value=80))
    @settings(max_examples=100)
    def test_every_amount_is_whole_cents(self, rate, hours):
        result = calculate_payslip(inputs(hours=hours, minutes=17, hourly_rate=rate))

        for amount in (
            result.standard_time_pay,
            result.gross_pay,
            result.uif,
            result.net_pay,
            result.paid_to_account,
        ):
            assert amount == amount.quantize(Decimal("0.01"))
