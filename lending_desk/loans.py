"""
Loan Management Module

Storage-backed CRUD for loans and their investor participations. A loan's
participations are always replaced as a batch: saving a loan deletes its
stored participations and inserts the new list inside one atomic block.
"""

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from .audit import AuditTrail, AuditEventType
from .exceptions import LoanNotFoundError
from .models import Cadence, Loan, LoanStatus, Participation
from .money import ZERO
from .records import (
    LOANS_TABLE, PARTICIPATIONS_TABLE, PAYMENTS_TABLE,
    loan_from_rows, loan_to_row, participation_to_row,
)
from .storage import StorageInterface
from .validation import ALLOCATION_TOLERANCE, derive_percentages, validate_loan


logger = logging.getLogger(__name__)

_UNSET = object()


class LoanManager:
    """
    Manages loans and their participations
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: Optional[AuditTrail] = None,
        allocation_tolerance: Decimal = ALLOCATION_TOLERANCE,
        owner_label: str = "Owner",
        partner_label: str = "Partner"
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.allocation_tolerance = allocation_tolerance
        self.owner_label = owner_label
        self.partner_label = partner_label

    def create_loan(
        self,
        debtor_name: str,
        principal: Decimal,
        total_rate: Decimal,
        origination_date: date,
        participations: Sequence[Participation] = (),
        intermediary_rate: Decimal = ZERO,
        intermediary_name: str = "",
        cadence: Cadence = Cadence.MONTHLY,
        status: LoanStatus = LoanStatus.ACTIVE,
        maturity_date: Optional[date] = None,
        debtor_id: Optional[str] = None,
        notes: str = ""
    ) -> Loan:
        """
        Create a loan with its participations

        Args:
            debtor_name: Who borrowed the money
            principal: Amount lent
            total_rate: Monthly rate in percent charged to the debtor
            origination_date: Date the money was lent
            participations: Investor stakes; percentages left at zero are
                derived from the invested amounts
            intermediary_rate: Part of total_rate kept by the intermediary
            intermediary_name: Required when intermediary_rate > 0

        Returns:
            Created Loan

        Raises:
            ValidationError: If the loan or its participations are invalid
        """
        loan_id = str(uuid.uuid4())
        loan = Loan(
            id=loan_id,
            debtor_name=debtor_name.strip(),
            principal=principal,
            total_rate=total_rate,
            intermediary_rate=intermediary_rate,
            intermediary_name=intermediary_name.strip(),
            origination_date=origination_date,
            cadence=cadence,
            status=status,
            maturity_date=maturity_date,
            debtor_id=debtor_id,
            notes=notes,
            participations=self._prepare_participations(loan_id, participations),
            created_at=datetime.now(timezone.utc),
        )
        validate_loan(loan, self.allocation_tolerance)

        with self.storage.atomic():
            self.storage.save(LOANS_TABLE, loan.id, loan_to_row(loan))
            self._write_participations(loan)

        self._audit(AuditEventType.LOAN_CREATED, loan.id, {
            "debtor_name": loan.debtor_name,
            "principal": loan.principal,
            "total_rate": loan.total_rate,
            "intermediary_rate": loan.intermediary_rate,
            "cadence": loan.cadence.value,
            "investors": [p.investor_id for p in loan.participations],
        })
        logger.info("Created loan %s for %s", loan.id, loan.debtor_name)
        return loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get a loan with its participations, or None"""
        row = self.storage.load(LOANS_TABLE, loan_id)
        if not row:
            return None
        participation_rows = self.storage.find(PARTICIPATIONS_TABLE, {"loan_id": loan_id})
        return loan_from_rows(row, participation_rows, self.owner_label, self.partner_label)

    def require_loan(self, loan_id: str) -> Loan:
        loan = self.get_loan(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        return loan

    def update_loan(
        self,
        loan_id: str,
        debtor_name: Optional[str] = None,
        principal: Optional[Decimal] = None,
        total_rate: Optional[Decimal] = None,
        intermediary_rate: Optional[Decimal] = None,
        intermediary_name: Optional[str] = None,
        origination_date: Optional[date] = None,
        maturity_date=_UNSET,
        cadence: Optional[Cadence] = None,
        status: Optional[LoanStatus] = None,
        debtor_id=_UNSET,
        notes: Optional[str] = None,
        participations: Optional[Sequence[Participation]] = None
    ) -> Loan:
        """
        Update a loan; fields left as None keep their stored value

        When participations are given they replace the stored ones entirely.

        Raises:
            LoanNotFoundError: If the loan does not exist
            ValidationError: If the updated loan is invalid
        """
        current = self.require_loan(loan_id)

        changes: Dict[str, object] = {}
        if debtor_name is not None:
            changes["debtor_name"] = debtor_name.strip()
        if principal is not None:
            changes["principal"] = principal
        if total_rate is not None:
            changes["total_rate"] = total_rate
        if intermediary_rate is not None:
            changes["intermediary_rate"] = intermediary_rate
        if intermediary_name is not None:
            changes["intermediary_name"] = intermediary_name.strip()
        if origination_date is not None:
            changes["origination_date"] = origination_date
        if maturity_date is not _UNSET:
            changes["maturity_date"] = maturity_date
        if cadence is not None:
            changes["cadence"] = cadence
        if status is not None:
            changes["status"] = status
        if debtor_id is not _UNSET:
            changes["debtor_id"] = debtor_id
        if notes is not None:
            changes["notes"] = notes
        if participations is not None:
            changes["participations"] = self._prepare_participations(loan_id, participations)

        loan = replace(current, **changes)
        validate_loan(loan, self.allocation_tolerance)

        with self.storage.atomic():
            self.storage.save(LOANS_TABLE, loan.id, loan_to_row(loan))
            # two-party loans are rewritten in the multi-investor shape
            self._write_participations(loan)

        self._audit(AuditEventType.LOAN_UPDATED, loan.id, {
            "changed": sorted(key for key in changes if key != "participations"),
            "status": loan.status.value,
        })
        if participations is not None:
            self._audit(AuditEventType.PARTICIPATIONS_REPLACED, loan.id, {
                "previous": [p.investor_id for p in current.participations],
                "current": [p.investor_id for p in loan.participations],
            })
        logger.info("Updated loan %s", loan.id)
        return loan

    def delete_loan(self, loan_id: str) -> None:
        """
        Delete a loan together with its participations and payment records

        Raises:
            LoanNotFoundError: If the loan does not exist
        """
        loan = self.require_loan(loan_id)
        with self.storage.atomic():
            removed_payments = self.storage.delete_where(PAYMENTS_TABLE, {"loan_id": loan_id})
            self.storage.delete_where(PARTICIPATIONS_TABLE, {"loan_id": loan_id})
            self.storage.delete(LOANS_TABLE, loan_id)

        self._audit(AuditEventType.LOAN_DELETED, loan_id, {
            "debtor_name": loan.debtor_name,
            "principal": loan.principal,
            "payments_removed": removed_payments,
        })
        logger.info("Deleted loan %s and %d payment records", loan_id, removed_payments)

    def load_all_loans(self) -> List[Loan]:
        """Every stored loan, normalized, in storage order"""
        grouped: Dict[str, List[dict]] = {}
        for row in self.storage.load_all(PARTICIPATIONS_TABLE):
            grouped.setdefault(row.get("loan_id"), []).append(row)
        return [
            loan_from_rows(row, grouped.get(row["id"], []), self.owner_label, self.partner_label)
            for row in self.storage.load_all(LOANS_TABLE)
        ]

    def list_loans(
        self,
        search: Optional[str] = None,
        status: Optional[LoanStatus] = None
    ) -> List[Loan]:
        """Loans filtered by debtor name substring and status, newest first"""
        loans = self.load_all_loans()

        if search:
            needle = search.strip().casefold()
            loans = [loan for loan in loans if needle in loan.debtor_name.casefold()]

        if status:
            loans = [loan for loan in loans if loan.status == status]

        loans.sort(key=lambda loan: (loan.origination_date, loan.id), reverse=True)
        return loans

    def _prepare_participations(
        self,
        loan_id: str,
        participations: Sequence[Participation]
    ) -> tuple:
        if not participations:
            return ()
        prepared = [
            replace(p, loan_id=loan_id, position=position, id=p.id or str(uuid.uuid4()))
            for position, p in enumerate(participations)
        ]
        if all(p.percentage == ZERO for p in prepared):
            prepared = derive_percentages(prepared)
        return tuple(prepared)

    def _write_participations(self, loan: Loan) -> None:
        self.storage.delete_where(PARTICIPATIONS_TABLE, {"loan_id": loan.id})
        for participation in loan.participations:
            participation = replace(
                participation, loan_id=loan.id, id=participation.id or str(uuid.uuid4())
            )
            self.storage.save(
                PARTICIPATIONS_TABLE, participation.id, participation_to_row(participation)
            )

    def _audit(self, event_type: AuditEventType, loan_id: str, metadata: dict) -> None:
        if self.audit_trail is not None:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="loan",
                entity_id=loan_id,
                metadata=metadata,
            )
