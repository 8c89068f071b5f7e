"""
Installment Assembly

Runs the schedule, yield, allocation and reconciliation stages for a set of
loans and returns one Installment per (loan, due date).
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .allocation import split_among
from .models import Installment, Loan, PaymentRecord, UNASSIGNED_INVESTOR_ID
from .reconciliation import PAID_THRESHOLD, reconcile
from .schedule import DEFAULT_SAFETY_CAP, indexed_due_dates_within, month_bounds
from .yields import installment_yield


UNASSIGNED_INVESTOR_LABEL = "Unassigned investors"


def build_installment(
    loan: Loan,
    due_date: date,
    payments: Iterable[PaymentRecord],
    as_of: date,
    installment_index: Optional[int] = None,
    paid_threshold: Decimal = PAID_THRESHOLD,
    unassigned_label: str = UNASSIGNED_INVESTOR_LABEL
) -> Installment:
    """
    Build the installment of a loan due on a given date

    Args:
        loan: Loan with its participations
        due_date: Scheduled due date
        payments: Payment records to reconcile against
        as_of: Reference date for overdue detection
        installment_index: 1-based position in the schedule, when known

    Returns:
        Installment with yield, investor breakdown and settlement status
    """
    breakdown = installment_yield(loan)
    shares = split_among(breakdown.investor_pool, loan.participations)

    names = loan.investor_names()
    if UNASSIGNED_INVESTOR_ID in shares and UNASSIGNED_INVESTOR_ID not in names:
        names[UNASSIGNED_INVESTOR_ID] = unassigned_label

    installment = Installment(
        loan_id=loan.id,
        debtor_name=loan.debtor_name,
        due_date=due_date,
        cadence=loan.cadence,
        accumulation_months=loan.cadence.months,
        gross_yield=breakdown.gross,
        intermediary_yield=breakdown.intermediary,
        investor_pool_yield=breakdown.investor_pool,
        investor_shares=dict(shares),
        investor_names=names,
        installment_index=installment_index,
        intermediary_name=loan.intermediary_name,
        debtor_key=loan.debtor_key,
    )

    result = reconcile(installment, payments, as_of, paid_threshold)
    return replace(installment, status=result.status, received_amount=result.received_amount)


def _sort_key(installment: Installment):
    return (installment.due_date, installment.debtor_name.casefold(), installment.loan_id)


def installments_within(
    loans: Iterable[Loan],
    payments: Sequence[PaymentRecord],
    start: date,
    end: date,
    as_of: date,
    safety_cap: int = DEFAULT_SAFETY_CAP,
    paid_threshold: Decimal = PAID_THRESHOLD,
    unassigned_label: str = UNASSIGNED_INVESTOR_LABEL
) -> List[Installment]:
    """All installments of active loans due inside the inclusive window"""
    installments = []
    for loan in loans:
        loan_payments = [p for p in payments if p.loan_id == loan.id]
        for index, due in indexed_due_dates_within(loan, start, end, safety_cap):
            installments.append(build_installment(
                loan, due, loan_payments, as_of,
                installment_index=index,
                paid_threshold=paid_threshold,
                unassigned_label=unassigned_label,
            ))
    installments.sort(key=_sort_key)
    return installments


def installments_for_month(
    loans: Iterable[Loan],
    payments: Sequence[PaymentRecord],
    year: int,
    month: int,
    as_of: date,
    safety_cap: int = DEFAULT_SAFETY_CAP,
    paid_threshold: Decimal = PAID_THRESHOLD,
    unassigned_label: str = UNASSIGNED_INVESTOR_LABEL
) -> List[Installment]:
    """All installments due in one calendar month"""
    first_day, last_day = month_bounds(year, month)
    return installments_within(
        loans, payments, first_day, last_day, as_of,
        safety_cap=safety_cap,
        paid_threshold=paid_threshold,
        unassigned_label=unassigned_label,
    )
