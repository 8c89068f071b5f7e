"""
Aggregator

Folds installments and payment records across a loan set into per-investor,
per-debtor and portfolio-wide summaries. Everything here is a pure function
of its inputs: rollups are built fresh on every call, keyed by investor id
and debtor key, and emitted in key order so identical inputs always produce
identical summaries.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .allocation import scale_allocation, split_among
from .installments import UNASSIGNED_INVESTOR_LABEL, build_installment, installments_within
from .models import (
    Loan, PaymentRecord, PaymentSplit, SettlementStatus, UNASSIGNED_INVESTOR_ID
)
from .money import HUNDRED, ZERO, round_money
from .reconciliation import PAID_THRESHOLD
from .schedule import DEFAULT_SAFETY_CAP, add_months, iter_due_dates
from .yields import compute_yield, installment_yield


logger = logging.getLogger(__name__)

PROJECTION_HORIZON_MONTHS = 6
OVERDUE_PENALTY_POINTS = 10


@dataclass(frozen=True)
class Arrears:
    """Past-due installments of one loan that are not fully paid"""
    loan_id: str
    overdue_count: int
    overdue_amount: Decimal

    @property
    def is_overdue(self) -> bool:
        return self.overdue_count > 0


@dataclass(frozen=True)
class InvestorSummary:
    investor_id: str
    investor_name: str
    capital_committed: Decimal
    realized: Decimal
    projected: Decimal
    roi: Decimal
    loan_count: int


@dataclass(frozen=True)
class DebtorSummary:
    debtor_key: str
    debtor_name: str
    principal: Decimal
    active_loans: int
    monthly_yield: Decimal
    amount_paid: Decimal
    overdue_count: int
    overdue_amount: Decimal
    payment_history: Decimal
    status: str  # "overdue" or "current"


@dataclass(frozen=True)
class PortfolioSummary:
    """Portfolio-wide figures as of one reference date"""
    as_of: date
    principal_outstanding: Decimal
    active_loans: int
    monthly_yield: Decimal
    realized_yield: Decimal
    realized_intermediary: Decimal
    realized_investors: Decimal
    projected_yield: Decimal
    projected_intermediary: Decimal
    projected_investors: Decimal
    projection_end: date
    overdue_count: int
    overdue_amount: Decimal
    roi: Decimal
    investors: Tuple[InvestorSummary, ...]
    debtors: Tuple[DebtorSummary, ...]


def ratio_percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100 rounded to 2 places, 0 when undefined"""
    if denominator <= ZERO:
        return ZERO
    return round_money(numerator / denominator * HUNDRED)


def payment_history_score(overdue_count: int) -> Decimal:
    """Rough indicator: 100 minus 10 points per overdue installment, floored at 0"""
    return Decimal(max(0, 100 - OVERDUE_PENALTY_POINTS * overdue_count))


def payment_split(loan: Loan, payment: PaymentRecord) -> PaymentSplit:
    """
    Intermediary/investor split of a received payment

    Uses the split recorded with the payment. Older records without one get
    it re-derived from the loan's current participations.
    """
    if payment.has_split:
        return PaymentSplit(
            total=payment.received_amount,
            intermediary=payment.intermediary_amount,
            investors=dict(payment.investor_amounts),
        )
    breakdown = installment_yield(loan)
    shares = split_among(breakdown.investor_pool, loan.participations)
    return scale_allocation(breakdown, shares, payment.received_amount)


def detect_arrears(
    loan: Loan,
    payments: Iterable[PaymentRecord],
    as_of: date,
    safety_cap: int = DEFAULT_SAFETY_CAP,
    paid_threshold: Decimal = PAID_THRESHOLD
) -> Arrears:
    """
    Count the loan's installments due before as_of that are not paid

    Walks the schedule from the first installment; each past-due installment
    without a qualifying payment adds one to the count and its outstanding
    amount to the arrears.
    """
    loan_payments = [p for p in payments if p.loan_id == loan.id]
    count = 0
    amount = ZERO
    for index, due in iter_due_dates(loan, safety_cap):
        if due >= as_of:
            break
        installment = build_installment(
            loan, due, loan_payments, as_of,
            installment_index=index, paid_threshold=paid_threshold
        )
        if installment.status != SettlementStatus.PAID:
            count += 1
            amount += installment.outstanding_amount
    return Arrears(loan_id=loan.id, overdue_count=count, overdue_amount=amount)


def _investor_rollups(
    loans: Sequence[Loan],
    splits: List[Tuple[Loan, PaymentSplit]],
    projected_shares: Dict[str, Decimal],
    unassigned_label: str
) -> Tuple[InvestorSummary, ...]:
    names: Dict[str, str] = {}
    capital: Dict[str, Decimal] = {}
    realized: Dict[str, Decimal] = {}
    loan_ids: Dict[str, set] = {}

    for loan in loans:
        if loan.participations:
            for participation in loan.participations:
                key = participation.investor_id
                names.setdefault(key, participation.investor_name)
                loan_ids.setdefault(key, set()).add(loan.id)
                if loan.is_active:
                    capital[key] = capital.get(key, ZERO) + participation.invested_amount
        else:
            names.setdefault(UNASSIGNED_INVESTOR_ID, unassigned_label)
            loan_ids.setdefault(UNASSIGNED_INVESTOR_ID, set()).add(loan.id)
            if loan.is_active:
                capital[UNASSIGNED_INVESTOR_ID] = (
                    capital.get(UNASSIGNED_INVESTOR_ID, ZERO) + loan.principal
                )

    for loan, split in splits:
        loan_names = loan.investor_names()
        for key, amount in split.investors.items():
            names.setdefault(key, loan_names.get(key, unassigned_label))
            loan_ids.setdefault(key, set()).add(loan.id)
            realized[key] = realized.get(key, ZERO) + amount

    keys = sorted(set(names) | set(projected_shares))
    summaries = []
    for key in keys:
        committed = capital.get(key, ZERO)
        earned = realized.get(key, ZERO)
        summaries.append(InvestorSummary(
            investor_id=key,
            investor_name=names.get(key, unassigned_label),
            capital_committed=committed,
            realized=earned,
            projected=projected_shares.get(key, ZERO),
            roi=ratio_percent(earned, committed),
            loan_count=len(loan_ids.get(key, ())),
        ))
    return tuple(summaries)


def _debtor_rollups(
    loans: Sequence[Loan],
    payments_by_loan: Dict[str, List[PaymentRecord]],
    arrears: Dict[str, Arrears]
) -> Tuple[DebtorSummary, ...]:
    grouped: Dict[str, List[Loan]] = {}
    for loan in loans:
        grouped.setdefault(loan.debtor_key, []).append(loan)

    summaries = []
    for key in sorted(grouped):
        debtor_loans = grouped[key]
        active = [loan for loan in debtor_loans if loan.is_active]
        paid = sum(
            (p.received_amount for loan in debtor_loans for p in payments_by_loan.get(loan.id, [])),
            ZERO
        )
        overdue_count = sum(arrears[loan.id].overdue_count for loan in debtor_loans)
        overdue_amount = sum((arrears[loan.id].overdue_amount for loan in debtor_loans), ZERO)
        summaries.append(DebtorSummary(
            debtor_key=key,
            debtor_name=debtor_loans[0].debtor_name,
            principal=sum((loan.principal for loan in debtor_loans), ZERO),
            active_loans=len(active),
            monthly_yield=sum((compute_yield(loan, 1).gross for loan in active), ZERO),
            amount_paid=paid,
            overdue_count=overdue_count,
            overdue_amount=overdue_amount,
            payment_history=payment_history_score(overdue_count),
            status="overdue" if overdue_count > 0 else "current",
        ))
    return tuple(summaries)


def aggregate(
    loans: Iterable[Loan],
    payments: Iterable[PaymentRecord],
    as_of: date,
    horizon_months: int = PROJECTION_HORIZON_MONTHS,
    safety_cap: int = DEFAULT_SAFETY_CAP,
    paid_threshold: Decimal = PAID_THRESHOLD,
    unassigned_label: Optional[str] = None
) -> PortfolioSummary:
    """
    Build the portfolio summary as of a reference date

    Args:
        loans: Loans with their participations
        payments: Payment records of any of the loans
        as_of: Reference date for arrears and projection
        horizon_months: Length of the projection window starting at as_of

    Returns:
        PortfolioSummary with investors and debtors sorted by key
    """
    loans = sorted(loans, key=lambda loan: loan.id)
    payments = list(payments)
    unassigned_label = unassigned_label or UNASSIGNED_INVESTOR_LABEL
    loans_by_id = {loan.id: loan for loan in loans}

    payments_by_loan: Dict[str, List[PaymentRecord]] = {}
    for payment in payments:
        if payment.loan_id not in loans_by_id:
            logger.debug("Ignoring payment %s of unknown loan %s", payment.id, payment.loan_id)
            continue
        payments_by_loan.setdefault(payment.loan_id, []).append(payment)

    active = [loan for loan in loans if loan.is_active]

    # realized
    splits: List[Tuple[Loan, PaymentSplit]] = []
    for loan_id in sorted(payments_by_loan):
        loan = loans_by_id[loan_id]
        for payment in payments_by_loan[loan_id]:
            splits.append((loan, payment_split(loan, payment)))
    realized_total = sum((split.total for _, split in splits), ZERO)
    realized_intermediary = sum((split.intermediary for _, split in splits), ZERO)

    # projected
    projection_end = add_months(as_of, horizon_months)
    upcoming = installments_within(
        active, [], as_of, projection_end, as_of,
        safety_cap=safety_cap, paid_threshold=paid_threshold,
        unassigned_label=unassigned_label,
    )
    projected_shares: Dict[str, Decimal] = {}
    for installment in upcoming:
        for key, amount in installment.investor_shares.items():
            projected_shares[key] = projected_shares.get(key, ZERO) + amount

    arrears = {
        loan.id: detect_arrears(
            loan, payments_by_loan.get(loan.id, []), as_of, safety_cap, paid_threshold
        )
        for loan in loans
    }

    principal_outstanding = sum((loan.principal for loan in active), ZERO)
    return PortfolioSummary(
        as_of=as_of,
        principal_outstanding=principal_outstanding,
        active_loans=len(active),
        monthly_yield=sum((compute_yield(loan, 1).gross for loan in active), ZERO),
        realized_yield=realized_total,
        realized_intermediary=realized_intermediary,
        realized_investors=realized_total - realized_intermediary,
        projected_yield=sum((i.gross_yield for i in upcoming), ZERO),
        projected_intermediary=sum((i.intermediary_yield for i in upcoming), ZERO),
        projected_investors=sum((i.investor_pool_yield for i in upcoming), ZERO),
        projection_end=projection_end,
        overdue_count=sum(a.overdue_count for a in arrears.values()),
        overdue_amount=sum((a.overdue_amount for a in arrears.values()), ZERO),
        roi=ratio_percent(realized_total, principal_outstanding),
        investors=_investor_rollups(loans, splits, projected_shares, unassigned_label),
        debtors=_debtor_rollups(loans, payments_by_loan, arrears),
    )
