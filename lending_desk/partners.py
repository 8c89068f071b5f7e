"""
Partner Directory

Contact list of investors and intermediaries. A partner's id may be used as
the investor id of a participation so that the same person is recognised
across loans.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from .audit import AuditTrail, AuditEventType
from .exceptions import PartnerNotFoundError, ValidationError
from .models import Partner
from .money import HUNDRED, ZERO
from .records import PARTNERS_TABLE, partner_from_row, partner_to_row
from .storage import StorageInterface


logger = logging.getLogger(__name__)


def _validate_partner(partner: Partner) -> None:
    if not partner.name.strip():
        raise ValidationError("Partner name is required", field='name')
    if partner.email and "@" not in partner.email:
        raise ValidationError("Invalid email format", field='email')
    if not (ZERO <= partner.default_percentage <= HUNDRED):
        raise ValidationError("Default percentage must be between 0 and 100",
                              field='default_percentage')


class PartnerDirectory:
    """CRUD over the partners record set"""

    def __init__(self, storage: StorageInterface, audit_trail: Optional[AuditTrail] = None):
        self.storage = storage
        self.audit_trail = audit_trail

    def create_partner(
        self,
        name: str,
        email: str = "",
        phone: str = "",
        default_percentage: Decimal = ZERO
    ) -> Partner:
        partner = Partner(
            id=str(uuid.uuid4()),
            name=name.strip(),
            email=email.strip(),
            phone=phone.strip(),
            default_percentage=default_percentage,
            created_at=datetime.now(timezone.utc),
        )
        _validate_partner(partner)
        self.storage.save(PARTNERS_TABLE, partner.id, partner_to_row(partner))
        self._audit(AuditEventType.PARTNER_CREATED, partner.id, {"name": partner.name})
        logger.info("Created partner %s", partner.id)
        return partner

    def get_partner(self, partner_id: str) -> Optional[Partner]:
        row = self.storage.load(PARTNERS_TABLE, partner_id)
        if row:
            return partner_from_row(row)
        return None

    def require_partner(self, partner_id: str) -> Partner:
        partner = self.get_partner(partner_id)
        if partner is None:
            raise PartnerNotFoundError(partner_id)
        return partner

    def update_partner(
        self,
        partner_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        default_percentage: Optional[Decimal] = None
    ) -> Partner:
        """Update contact details; fields left as None are kept"""
        current = self.require_partner(partner_id)
        partner = replace(
            current,
            name=name.strip() if name is not None else current.name,
            email=email.strip() if email is not None else current.email,
            phone=phone.strip() if phone is not None else current.phone,
            default_percentage=(
                default_percentage if default_percentage is not None
                else current.default_percentage
            ),
        )
        _validate_partner(partner)
        self.storage.save(PARTNERS_TABLE, partner.id, partner_to_row(partner))
        self._audit(AuditEventType.PARTNER_UPDATED, partner.id, {
            "old_data": {"name": current.name, "email": current.email, "phone": current.phone},
            "new_data": {"name": partner.name, "email": partner.email, "phone": partner.phone},
        })
        return partner

    def delete_partner(self, partner_id: str) -> None:
        partner = self.require_partner(partner_id)
        self.storage.delete(PARTNERS_TABLE, partner_id)
        self._audit(AuditEventType.PARTNER_DELETED, partner_id, {"name": partner.name})
        logger.info("Deleted partner %s", partner_id)

    def list_partners(self, search: Optional[str] = None) -> List[Partner]:
        """Partners sorted by name, optionally filtered by name or email substring"""
        partners = [partner_from_row(row) for row in self.storage.load_all(PARTNERS_TABLE)]
        if search:
            needle = search.strip().casefold()
            partners = [
                p for p in partners
                if needle in p.name.casefold() or needle in p.email.casefold()
            ]
        partners.sort(key=lambda p: (p.name.casefold(), p.id))
        return partners

    def _audit(self, event_type: AuditEventType, partner_id: str, metadata: dict) -> None:
        if self.audit_trail is not None:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="partner",
                entity_id=partner_id,
                metadata=metadata,
            )
