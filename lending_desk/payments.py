"""
Payment Management Module

Registers money received against a loan's scheduled installments. A payment
is matched to the installment due in the same month and year, checked
against what was already received, and stored together with its
intermediary/investor split so later reports never need to recompute it.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from .allocation import scale_allocation
from .audit import AuditTrail, AuditEventType
from .exceptions import InstallmentNotFoundError
from .installments import build_installment
from .loans import LoanManager
from .models import PaymentRecord, YieldBreakdown
from .money import round_money
from .reconciliation import (
    OVERPAYMENT_TOLERANCE, PAID_THRESHOLD, received_total, settlement_status,
    validate_payment_amount,
)
from .records import PAYMENTS_TABLE, payment_from_row, payment_to_row
from .schedule import DEFAULT_SAFETY_CAP, due_dates_in_month
from .storage import StorageInterface


logger = logging.getLogger(__name__)


class PaymentManager:
    """
    Manages payment records
    """

    def __init__(
        self,
        storage: StorageInterface,
        loan_manager: LoanManager,
        audit_trail: Optional[AuditTrail] = None,
        paid_threshold: Decimal = PAID_THRESHOLD,
        overpayment_tolerance: Decimal = OVERPAYMENT_TOLERANCE,
        safety_cap: int = DEFAULT_SAFETY_CAP
    ):
        self.storage = storage
        self.loan_manager = loan_manager
        self.audit_trail = audit_trail
        self.paid_threshold = paid_threshold
        self.overpayment_tolerance = overpayment_tolerance
        self.safety_cap = safety_cap

    def register_payment(
        self,
        loan_id: str,
        due_date: date,
        amount: Decimal,
        received_on: Optional[date] = None,
        notes: str = "",
        as_of: Optional[date] = None
    ) -> PaymentRecord:
        """
        Record money received for one installment

        Args:
            loan_id: Loan being paid
            due_date: Any date in the month of the installment being paid
            amount: Amount received
            received_on: When the money arrived (defaults to today)
            notes: Free text
            as_of: Reference date for the resulting status (defaults to
                received_on)

        Returns:
            Stored PaymentRecord with its split and settlement status

        Raises:
            LoanNotFoundError: If the loan does not exist
            InstallmentNotFoundError: If the loan has nothing due that month
            ValidationError: If the amount is not positive or overpays the
                installment
        """
        loan = self.loan_manager.require_loan(loan_id)
        scheduled = due_dates_in_month(loan, due_date.year, due_date.month, self.safety_cap)
        if not scheduled:
            raise InstallmentNotFoundError(loan_id, due_date.year, due_date.month)

        received_on = received_on or date.today()
        as_of = as_of or received_on
        amount = round_money(amount)

        existing = self.payments_for_loan(loan_id)
        installment = build_installment(
            loan, scheduled[0], existing, as_of, paid_threshold=self.paid_threshold
        )
        validate_payment_amount(installment, existing, amount, self.overpayment_tolerance)

        breakdown = YieldBreakdown(
            gross=installment.gross_yield,
            intermediary=installment.intermediary_yield,
            investor_pool=installment.investor_pool_yield,
        )
        split = scale_allocation(breakdown, installment.investor_shares, amount)
        status = settlement_status(
            installment.gross_yield,
            received_total(installment, existing) + amount,
            installment.due_date,
            as_of,
            self.paid_threshold,
        )

        payment = PaymentRecord(
            id=str(uuid.uuid4()),
            loan_id=loan_id,
            due_date=installment.due_date,
            received_amount=amount,
            expected_amount=installment.gross_yield,
            received_on=received_on,
            status=status,
            intermediary_amount=split.intermediary,
            investor_amounts=split.investors,
            notes=notes,
            created_at=datetime.now(timezone.utc),
        )
        with self.storage.atomic():
            self.storage.save(PAYMENTS_TABLE, payment.id, payment_to_row(payment))
            if self.audit_trail is not None:
                self.audit_trail.log_event(
                    event_type=AuditEventType.PAYMENT_REGISTERED,
                    entity_type="payment",
                    entity_id=payment.id,
                    metadata={
                        "loan_id": loan_id,
                        "due_date": payment.due_date,
                        "amount": amount,
                        "intermediary_amount": split.intermediary,
                        "investor_amounts": split.investors,
                        "status": status.value,
                    },
                )
        logger.info("Registered payment %s of %s for loan %s due %s (%s)",
                    payment.id, amount, loan_id, payment.due_date, status.value)
        return payment

    def get_payment(self, payment_id: str) -> Optional[PaymentRecord]:
        row = self.storage.load(PAYMENTS_TABLE, payment_id)
        if row:
            return payment_from_row(row)
        return None

    def payments_for_loan(self, loan_id: str) -> List[PaymentRecord]:
        return [
            payment_from_row(row)
            for row in self.storage.find(PAYMENTS_TABLE, {"loan_id": loan_id})
        ]

    def load_all_payments(self) -> List[PaymentRecord]:
        return [payment_from_row(row) for row in self.storage.load_all(PAYMENTS_TABLE)]

    def list_payments(
        self,
        loan_id: Optional[str] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
        search: Optional[str] = None
    ) -> List[PaymentRecord]:
        """
        Payments filtered by loan, due month/year and debtor name substring,
        latest due date first
        """
        if loan_id:
            payments = self.payments_for_loan(loan_id)
        else:
            payments = self.load_all_payments()

        if year is not None:
            payments = [p for p in payments if p.due_date.year == year]
        if month is not None:
            payments = [p for p in payments if p.due_date.month == month]

        if search:
            needle = search.strip().casefold()
            debtors: Dict[str, str] = {
                loan.id: loan.debtor_name for loan in self.loan_manager.load_all_loans()
            }
            payments = [
                p for p in payments
                if needle in debtors.get(p.loan_id, "").casefold()
            ]

        payments.sort(key=lambda p: (p.due_date, p.received_on or p.due_date), reverse=True)
        return payments
