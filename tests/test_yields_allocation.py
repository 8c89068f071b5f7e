"""
Tests for the yield calculator and the allocation splitter
"""

import pytest
from datetime import date
from decimal import Decimal

from lending_desk.allocation import split_among, scale_allocation
from lending_desk.models import (
    Cadence, Loan, Participation, YieldBreakdown, UNASSIGNED_INVESTOR_ID
)
from lending_desk.yields import compute_yield, installment_yield


def three_investors(percentages=("33.3", "33.3", "33.4")):
    names = ["Ana Souza", "Bruno Lima", "Carla Reis"]
    return tuple(
        Participation(
            investor_id=f"inv-{position}",
            investor_name=name,
            invested_amount=Decimal("100000") * Decimal(pct) / 100,
            percentage=Decimal(pct),
            position=position,
        )
        for position, (name, pct) in enumerate(zip(names, percentages))
    )


def make_loan(cadence=Cadence.QUARTERLY, principal="100000", total="3", intermediary="0.8"):
    return Loan(
        id="loan-1",
        debtor_name="João Silva",
        principal=Decimal(principal),
        total_rate=Decimal(total),
        intermediary_rate=Decimal(intermediary),
        intermediary_name="Marcos" if Decimal(intermediary) > 0 else "",
        origination_date=date(2025, 1, 15),
        cadence=cadence,
        participations=three_investors(),
    )


class TestComputeYield:
    """Test simple interest per installment"""

    def test_quarterly_example(self):
        breakdown = compute_yield(make_loan(), 3)
        assert breakdown.gross == Decimal("9000.00")
        assert breakdown.intermediary == Decimal("2400.00")
        assert breakdown.investor_pool == Decimal("6600.00")

    def test_cadence_sets_accumulation(self):
        assert installment_yield(make_loan(Cadence.MONTHLY)).gross == Decimal("3000.00")
        assert installment_yield(make_loan(Cadence.QUARTERLY)).gross == Decimal("9000.00")
        assert installment_yield(make_loan(Cadence.ANNUAL)).gross == Decimal("36000.00")

    def test_rounds_to_cents_half_up(self):
        loan = make_loan(Cadence.MONTHLY, principal="1234.56", total="3.5", intermediary="0")
        breakdown = installment_yield(loan)
        assert breakdown.gross == Decimal("43.21")
        assert breakdown.intermediary == Decimal("0.00")
        assert breakdown.investor_pool == Decimal("43.21")

    @pytest.mark.parametrize("principal,total,intermediary", [
        ("1000", "2.7", "0.35"),
        ("15750.33", "4.15", "1.05"),
        ("999.99", "1.11", "0.37"),
    ])
    def test_gross_is_intermediary_plus_pool(self, principal, total, intermediary):
        loan = make_loan(Cadence.QUARTERLY, principal, total, intermediary)
        breakdown = installment_yield(loan)
        assert breakdown.gross == breakdown.intermediary + breakdown.investor_pool
        assert loan.investor_rate == Decimal(total) - Decimal(intermediary)


class TestSplitAmong:
    """Test remainder absorption by the last participation"""

    def test_example_split(self):
        shares = split_among(Decimal("6600.00"), three_investors())
        assert list(shares) == ["inv-0", "inv-1", "inv-2"]
        assert shares["inv-0"] == Decimal("2197.80")
        assert shares["inv-1"] == Decimal("2197.80")
        assert shares["inv-2"] == Decimal("2204.40")
        assert sum(shares.values()) == Decimal("6600.00")

    def test_last_absorbs_rounding(self):
        shares = split_among(Decimal("10.00"), three_investors(("33.33", "33.33", "33.34")))
        assert list(shares.values()) == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]

    def test_uses_stored_position_order(self):
        investors = three_investors()
        shares = split_among(Decimal("6600.00"), tuple(reversed(investors)))
        assert list(shares) == ["inv-0", "inv-1", "inv-2"]
        assert shares["inv-2"] == Decimal("2204.40")

    def test_no_participations_go_to_unassigned(self):
        shares = split_among(Decimal("2200.00"), ())
        assert shares == {UNASSIGNED_INVESTOR_ID: Decimal("2200.00")}

    @pytest.mark.parametrize("pool", ["0.01", "1.00", "99.99", "12345.67"])
    def test_shares_sum_to_pool(self, pool):
        shares = split_among(Decimal(pool), three_investors(("12.5", "50", "37.5")))
        assert sum(shares.values()) == Decimal(pool)


class TestScaleAllocation:
    """Test partial payment splits"""

    def setup_method(self):
        self.breakdown = YieldBreakdown(
            gross=Decimal("9000.00"),
            intermediary=Decimal("2400.00"),
            investor_pool=Decimal("6600.00"),
        )
        self.shares = split_among(self.breakdown.investor_pool, three_investors())

    def test_half_payment(self):
        split = scale_allocation(self.breakdown, self.shares, Decimal("4500"))
        assert split.total == Decimal("4500.00")
        assert split.intermediary == Decimal("1200.00")
        assert split.investors == {
            "inv-0": Decimal("1098.90"),
            "inv-1": Decimal("1098.90"),
            "inv-2": Decimal("1102.20"),
        }
        assert split.intermediary + split.investor_total == Decimal("4500.00")

    def test_full_payment_matches_installment(self):
        split = scale_allocation(self.breakdown, self.shares, Decimal("9000.00"))
        assert split.intermediary == Decimal("2400.00")
        assert split.investors == dict(self.shares)

    def test_proportion_capped_at_one(self):
        split = scale_allocation(self.breakdown, self.shares, Decimal("9000.90"))
        assert split.intermediary == Decimal("2400.00")
        assert split.intermediary + split.investor_total == Decimal("9000.90")

    @pytest.mark.parametrize("paid", ["0.01", "1234.57", "8999.99", "3333.33"])
    def test_parts_sum_to_paid(self, paid):
        split = scale_allocation(self.breakdown, self.shares, Decimal(paid))
        assert split.intermediary + split.investor_total == Decimal(paid)

    def test_unassigned_pool_is_scaled(self):
        shares = split_among(self.breakdown.investor_pool, ())
        split = scale_allocation(self.breakdown, shares, Decimal("900"))
        assert split.intermediary == Decimal("240.00")
        assert split.investors == {UNASSIGNED_INVESTOR_ID: Decimal("660.00")}
