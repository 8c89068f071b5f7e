"""
Tests for stored-row normalization, including two-party legacy loans
"""

import pytest
from datetime import date
from decimal import Decimal

from lending_desk.exceptions import ValidationError
from lending_desk.models import Cadence, LoanStatus, SettlementStatus
from lending_desk.records import (
    LEGACY_OWNER_ID, LEGACY_PARTNER_ID, LegacyTwoPartyLoan, MultiInvestorLoan,
    loan_from_rows, normalize_loan, parse_loan_row, payment_from_row,
)


LEGACY_ROW = {
    "id": "L1",
    "debtor_name": "Maria Costa",
    "principal": "10000",
    "monthly_rate": "3",
    "origination_date": "2024-05-01",
    "cadence": "monthly",
    "status": "active",
    "your_amount": "6000",
    "partner_amount": "4000",
    "partner_name": "Pedro",
}

MULTI_ROW = {
    "id": "L2",
    "debtor_name": "João Silva",
    "principal": "100000",
    "total_rate": "3",
    "intermediary_rate": "0.8",
    "intermediary_name": "Marcos",
    "origination_date": "2025-01-15",
    "maturity_date": None,
    "cadence": "quarterly",
    "status": "active",
}


class TestParseLoanRow:
    """Test the stored-shape tagged union"""

    def test_legacy_row(self):
        record = parse_loan_row(LEGACY_ROW)
        assert isinstance(record, LegacyTwoPartyLoan)
        assert record.kind == "legacy_two_party"
        assert record.owner_amount == Decimal("6000")
        assert record.owner_percentage is None

    def test_multi_investor_row(self):
        participation_rows = [
            {"loan_id": "L2", "investor_id": "p-2", "investor_name": "Bruno",
             "invested_amount": "50000", "percentage": "50", "position": 1},
            {"loan_id": "L2", "investor_name": "Ana Souza",
             "invested_amount": "50000", "percentage": "50", "position": 0},
        ]
        record = parse_loan_row(MULTI_ROW, participation_rows)
        assert isinstance(record, MultiInvestorLoan)

        loan = record.loan
        assert loan.cadence == Cadence.QUARTERLY
        assert loan.intermediary_rate == Decimal("0.8")
        assert [p.investor_name for p in loan.participations] == ["Ana Souza", "Bruno"]
        # stored without an id: keyed by its name
        assert loan.participations[0].investor_id == "name:ana souza"

    def test_unknown_cadence(self):
        with pytest.raises(ValidationError, match="Unknown cadence"):
            parse_loan_row(dict(MULTI_ROW, cadence="weekly"))


class TestNormalizeLegacyLoan:
    """Test normalization of two-party loans"""

    def test_percentages_derived_from_amounts(self):
        loan = loan_from_rows(LEGACY_ROW)
        assert loan.total_rate == Decimal("3")
        assert loan.intermediary_rate == Decimal("0")
        assert loan.status == LoanStatus.ACTIVE
        assert loan.origination_date == date(2024, 5, 1)

        owner, partner = loan.participations
        assert owner.investor_id == LEGACY_OWNER_ID
        assert owner.investor_name == "Owner"
        assert owner.percentage == Decimal("60.00")
        assert partner.investor_id == LEGACY_PARTNER_ID
        assert partner.investor_name == "Pedro"
        assert partner.percentage == Decimal("40.00")

    def test_stored_percentages_win(self):
        row = dict(LEGACY_ROW, your_share_percentage="70", partner_share_percentage="30")
        owner, partner = loan_from_rows(row).participations
        assert owner.percentage == Decimal("70")
        assert partner.percentage == Decimal("30")

    def test_labels(self):
        row = dict(LEGACY_ROW, partner_name="")
        loan = normalize_loan(parse_loan_row(row), owner_label="Eu", partner_label="Sócio")
        assert [p.investor_name for p in loan.participations] == ["Eu", "Sócio"]

    def test_owner_only(self):
        row = dict(LEGACY_ROW, your_amount="10000", partner_amount="0")
        loan = loan_from_rows(row)
        assert len(loan.participations) == 1
        assert loan.participations[0].percentage == Decimal("100")

    def test_no_stakes_means_no_participations(self):
        row = dict(LEGACY_ROW, your_amount="0", partner_amount="0")
        assert loan_from_rows(row).participations == ()


class TestPaymentFromRow:
    """Test payment rows, including two-party payments"""

    def test_two_party_split_kept_when_it_adds_up(self):
        payment = payment_from_row({
            "id": "P1", "loan_id": "L1", "due_date": "2024-06-01",
            "expected_amount": "300", "received_amount": "300",
            "your_amount": "180", "partner_amount": "120", "status": "paid",
        })
        assert payment.has_split
        assert payment.intermediary_amount == Decimal("0")
        assert payment.investor_amounts == {
            LEGACY_OWNER_ID: Decimal("180"),
            LEGACY_PARTNER_ID: Decimal("120"),
        }

    def test_two_party_split_dropped_when_it_does_not(self):
        payment = payment_from_row({
            "id": "P2", "loan_id": "L1", "due_date": "2024-07-01",
            "expected_amount": "300", "received_amount": "100",
            "your_amount": "180", "partner_amount": "120", "status": "pending",
        })
        assert not payment.has_split
        assert payment.received_amount == Decimal("100")

    def test_paid_without_received_amount_uses_expected(self):
        payment = payment_from_row({
            "id": "P3", "loan_id": "L1", "due_date": "2024-08-01",
            "expected_amount": "300", "received_amount": None, "status": "paid",
        })
        assert payment.received_amount == Decimal("300")
        assert payment.status == SettlementStatus.PAID
