"""
Yield Calculator

Simple (non-compounded) interest for one installment: a quarterly
installment accrues three months of the monthly rate, an annual one twelve.
"""

from .models import Loan, YieldBreakdown
from .money import percent_of, round_money


def compute_yield(loan: Loan, accumulation_months: int) -> YieldBreakdown:
    """
    Compute the gross, intermediary and investor-pool yield of one installment

    Args:
        loan: Loan whose principal and monthly rates apply
        accumulation_months: 1, 3 or 12 months of interest in the installment

    Returns:
        YieldBreakdown where gross == intermediary + investor_pool exactly
    """
    gross = round_money(percent_of(loan.principal, loan.total_rate) * accumulation_months)
    intermediary = round_money(
        percent_of(loan.principal, loan.intermediary_rate) * accumulation_months
    )
    return YieldBreakdown(
        gross=gross,
        intermediary=intermediary,
        investor_pool=gross - intermediary,
    )


def installment_yield(loan: Loan) -> YieldBreakdown:
    """Yield of one installment at the loan's own cadence"""
    return compute_yield(loan, loan.cadence.months)
