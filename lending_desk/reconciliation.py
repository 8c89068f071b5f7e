"""
Reconciliation Matcher

Decides the settlement status of an installment from the payment records
registered against it. A payment satisfies an installment when it belongs to
the same loan and its due date falls in the same calendar month and year;
the day of the month is ignored. Several partial payments are summed.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List

from .exceptions import ValidationError
from .models import Installment, PaymentRecord, SettlementStatus
from .money import ZERO, round_money


PAID_THRESHOLD = Decimal("0.99")
OVERPAYMENT_TOLERANCE = Decimal("1.0001")


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of matching an installment against its payments"""
    status: SettlementStatus
    received_amount: Decimal


def same_period(first: date, second: date) -> bool:
    return first.year == second.year and first.month == second.month


def matching_payments(
    installment: Installment,
    payments: Iterable[PaymentRecord]
) -> List[PaymentRecord]:
    """Payments registered for the installment's loan in its due month and year"""
    return [
        payment for payment in payments
        if payment.loan_id == installment.loan_id
        and same_period(payment.due_date, installment.due_date)
    ]


def received_total(installment: Installment, payments: Iterable[PaymentRecord]) -> Decimal:
    return sum((p.received_amount for p in matching_payments(installment, payments)), ZERO)


def settlement_status(
    gross: Decimal,
    received: Decimal,
    due_date: date,
    as_of: date,
    paid_threshold: Decimal = PAID_THRESHOLD
) -> SettlementStatus:
    """
    Status of an installment given what was received against it

    A received sum within 1% of the gross yield counts as paid, which absorbs
    cent-level rounding in what the debtor transferred.
    """
    if received > ZERO and received >= gross * paid_threshold:
        return SettlementStatus.PAID
    if received > ZERO:
        return SettlementStatus.PARTIALLY_RECEIVED
    if due_date < as_of:
        return SettlementStatus.OVERDUE
    return SettlementStatus.PENDING


def reconcile(
    installment: Installment,
    payments: Iterable[PaymentRecord],
    as_of: date,
    paid_threshold: Decimal = PAID_THRESHOLD
) -> Reconciliation:
    """
    Reconcile one installment against the payment records

    Args:
        installment: Installment with its gross yield and due date
        payments: Any payment records; only matching ones are counted
        as_of: Reference date for overdue detection
        paid_threshold: Fraction of gross that counts as fully paid

    Returns:
        Reconciliation with the settlement status and summed amount
    """
    received = received_total(installment, payments)
    return Reconciliation(
        status=settlement_status(
            installment.gross_yield, received, installment.due_date, as_of, paid_threshold
        ),
        received_amount=received,
    )


def validate_payment_amount(
    installment: Installment,
    payments: Iterable[PaymentRecord],
    amount: Decimal,
    tolerance: Decimal = OVERPAYMENT_TOLERANCE
) -> None:
    """
    Reject a payment that is not positive or would overpay the installment

    Raises:
        ValidationError: If amount <= 0 or the cumulative total would exceed
            gross * tolerance
    """
    if amount <= ZERO:
        raise ValidationError("Payment amount must be positive", field='amount',
                              amount=str(amount))

    already_received = received_total(installment, payments)
    gross = installment.gross_yield
    if already_received + amount > gross * tolerance:
        remaining = round_money(max(gross - already_received, ZERO))
        raise ValidationError(
            f"Payment exceeds the installment: {remaining} still due",
            field='amount',
            gross=str(gross),
            already_received=str(already_received),
            amount=str(amount),
        )
