"""
Tests for the reconciliation matcher

Month/year matching, the 99% paid threshold, overdue detection and the
overpayment guard.
"""

import pytest
from datetime import date
from decimal import Decimal

from lending_desk.exceptions import ValidationError
from lending_desk.models import Cadence, Installment, PaymentRecord, SettlementStatus
from lending_desk.reconciliation import (
    matching_payments, reconcile, settlement_status, validate_payment_amount,
)


def make_installment(gross="1000.00", due=date(2025, 3, 10), loan_id="loan-1"):
    gross = Decimal(gross)
    return Installment(
        loan_id=loan_id,
        debtor_name="João Silva",
        due_date=due,
        cadence=Cadence.MONTHLY,
        accumulation_months=1,
        gross_yield=gross,
        intermediary_yield=Decimal("0.00"),
        investor_pool_yield=gross,
        investor_shares={"inv-1": gross},
        investor_names={"inv-1": "Ana Souza"},
    )


def make_payment(amount, due=date(2025, 3, 10), loan_id="loan-1", payment_id="p-1"):
    return PaymentRecord(
        id=payment_id,
        loan_id=loan_id,
        due_date=due,
        received_amount=Decimal(amount),
    )


class TestMatchingPayments:
    """Test which payment records count toward an installment"""

    def test_day_of_month_is_ignored(self):
        installment = make_installment()
        payments = [make_payment("100", due=date(2025, 3, 28))]
        assert matching_payments(installment, payments) == payments

    def test_other_month_year_or_loan_do_not_match(self):
        installment = make_installment()
        payments = [
            make_payment("100", due=date(2025, 4, 10), payment_id="p-1"),
            make_payment("100", due=date(2024, 3, 10), payment_id="p-2"),
            make_payment("100", loan_id="loan-2", payment_id="p-3"),
        ]
        assert matching_payments(installment, payments) == []


class TestReconcile:
    """Test settlement status derivation"""

    def setup_method(self):
        self.installment = make_installment()
        self.as_of = date(2025, 4, 1)

    def test_ninety_nine_percent_counts_as_paid(self):
        result = reconcile(self.installment, [make_payment("990.00")], self.as_of)
        assert result.status == SettlementStatus.PAID
        assert result.received_amount == Decimal("990.00")

    def test_below_threshold_is_partial(self):
        result = reconcile(self.installment, [make_payment("500.00")], self.as_of)
        assert result.status == SettlementStatus.PARTIALLY_RECEIVED

        result = reconcile(self.installment, [make_payment("989.99")], self.as_of)
        assert result.status == SettlementStatus.PARTIALLY_RECEIVED

    def test_partial_payments_are_summed(self):
        payments = [
            make_payment("600.00", payment_id="p-1"),
            make_payment("400.00", due=date(2025, 3, 25), payment_id="p-2"),
        ]
        result = reconcile(self.installment, payments, self.as_of)
        assert result.status == SettlementStatus.PAID
        assert result.received_amount == Decimal("1000.00")

    def test_nothing_received_in_the_past_is_overdue(self):
        result = reconcile(self.installment, [], self.as_of)
        assert result.status == SettlementStatus.OVERDUE
        assert result.received_amount == Decimal("0")

    def test_nothing_received_on_or_before_due_date_is_pending(self):
        assert reconcile(self.installment, [], date(2025, 3, 10)).status == SettlementStatus.PENDING
        assert reconcile(self.installment, [], date(2025, 3, 1)).status == SettlementStatus.PENDING

    def test_partial_stays_partial_after_due_date(self):
        result = reconcile(self.installment, [make_payment("10.00")], date(2026, 1, 1))
        assert result.status == SettlementStatus.PARTIALLY_RECEIVED

    def test_custom_threshold(self):
        status = settlement_status(
            Decimal("1000.00"), Decimal("990.00"), date(2025, 3, 10), self.as_of,
            paid_threshold=Decimal("1")
        )
        assert status == SettlementStatus.PARTIALLY_RECEIVED


class TestValidatePaymentAmount:
    """Test the write-time payment guard"""

    def setup_method(self):
        self.installment = make_installment()

    @pytest.mark.parametrize("amount", ["0", "-10.00"])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValidationError, match="must be positive"):
            validate_payment_amount(self.installment, [], Decimal(amount))

    def test_within_tolerance_accepted(self):
        payments = [make_payment("900.00")]
        validate_payment_amount(self.installment, payments, Decimal("100.10"))

    def test_overpayment_rejected(self):
        payments = [make_payment("900.00")]
        with pytest.raises(ValidationError, match="exceeds the installment") as exc_info:
            validate_payment_amount(self.installment, payments, Decimal("100.11"))
        assert exc_info.value.field == "amount"
        assert exc_info.value.details["already_received"] == "900.00"

    def test_payments_of_other_months_do_not_count(self):
        payments = [make_payment("1000.00", due=date(2025, 2, 10))]
        validate_payment_amount(self.installment, payments, Decimal("1000.00"))
