"""
Tests for the month overview and the plain-text distribution report
"""

import calendar
from dataclasses import replace
from datetime import date
from decimal import Decimal

from lending_desk.installments import installments_for_month
from lending_desk.models import (
    Cadence, Installment, Loan, Participation, PaymentRecord, SettlementStatus,
)
from lending_desk.reports import distribution_report, month_overview


def make_loans():
    loan = Loan(
        id="loan-a",
        debtor_name="João Silva",
        principal=Decimal("10000"),
        total_rate=Decimal("3"),
        intermediary_rate=Decimal("1"),
        intermediary_name="Marcos",
        origination_date=date(2025, 1, 10),
        participations=(
            Participation("inv-ana", "Ana Souza", Decimal("6000"), Decimal("60"), 0),
            Participation("inv-bruno", "Bruno Lima", Decimal("4000"), Decimal("40"), 1),
        ),
    )
    quarterly = Loan(
        id="loan-q",
        debtor_name="Pedro Alves",
        principal=Decimal("20000"),
        total_rate=Decimal("2.5"),
        intermediary_rate=Decimal("0"),
        origination_date=date(2024, 12, 5),
        cadence=Cadence.QUARTERLY,
        participations=(
            Participation("inv-ana", "Ana Souza", Decimal("20000"), Decimal("100"), 0),
        ),
    )
    return [loan, quarterly]


def march_installments():
    payments = [
        PaymentRecord(id="p-1", loan_id="loan-a", due_date=date(2025, 3, 10),
                      received_amount=Decimal("150.00")),
    ]
    return installments_for_month(make_loans(), payments, 2025, 3, date(2025, 3, 20))


class TestMonthOverview:
    """Test month totals"""

    def test_totals(self):
        overview = month_overview(march_installments())
        # 300.00 from the monthly loan, 1500.00 from the quarterly one
        assert overview.installment_count == 2
        assert overview.expected_total == Decimal("1800.00")
        assert overview.received_total == Decimal("150.00")
        assert overview.to_receive == Decimal("1650.00")
        assert overview.progress == Decimal("8.33")
        assert overview.intermediary_total == Decimal("100.00")
        assert overview.investors_total == Decimal("1700.00")
        assert overview.overdue_count == 1
        assert overview.paid_count == 0

    def test_progress_capped_at_hundred(self):
        installment = replace(
            march_installments()[1],
            received_amount=Decimal("300.03"),
            status=SettlementStatus.PAID,
        )
        overview = month_overview([installment])
        assert overview.progress == Decimal("100")
        assert overview.to_receive == Decimal("0")

    def test_empty_month(self):
        overview = month_overview([])
        assert overview.expected_total == Decimal("0")
        assert overview.progress == Decimal("0")


class TestDistributionReport:
    """Test the copy-out text summary"""

    def test_layout(self):
        report = distribution_report(march_installments(), 2025, 3)
        lines = report.splitlines()

        assert lines[0] == "Distribution summary - March 2025"
        assert "Ana Souza" in lines
        assert "  João Silva (monthly): R$ 120,00 - Partially received" in lines
        assert "  Pedro Alves (quarterly): R$ 1.500,00 - Overdue" in lines
        assert "  Total: R$ 1.620,00" in lines
        assert "  João Silva (monthly): R$ 80,00 - Partially received" in lines
        assert "  Intermediary: R$ 100,00" in lines
        assert "  Investors: R$ 1.700,00" in lines
        assert "  Expected: R$ 1.800,00" in lines
        assert "  Received: R$ 150,00" in lines

    def test_investors_in_name_order(self):
        report = distribution_report(march_installments(), 2025, 3)
        assert report.index("Ana Souza") < report.index("Bruno Lima") < report.index("Totals")

    def test_month_name_ignores_locale(self, monkeypatch):
        monkeypatch.setattr(calendar, "month_name", [""] + ["Marzo"] * 12)
        report = distribution_report(march_installments(), 2025, 3)
        assert report.startswith("Distribution summary - March 2025\n")

    def test_empty_month(self):
        report = distribution_report([], 2026, 10)
        assert report.startswith("Distribution summary - October 2026")
        assert "No installments due this month." in report
