"""
Record Normalization

Converts stored rows to domain objects and back. Loans exist in two stored
shapes: the multi-investor shape (loan row plus participation rows) and the
older two-party shape, where the loan row itself carries the owner's and one
partner's stake. Both are normalized here into a Loan with participations so
that nothing past this module needs to know which shape a loan came from.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from .exceptions import ValidationError
from .models import (
    Cadence, Loan, LoanStatus, Participation, Partner, PaymentRecord,
    SettlementStatus, investor_key,
)
from .money import ZERO, to_decimal
from .validation import derive_percentages


logger = logging.getLogger(__name__)

LOANS_TABLE = "loans"
PARTICIPATIONS_TABLE = "participations"
PAYMENTS_TABLE = "payments"
PARTNERS_TABLE = "partners"

LEGACY_OWNER_ID = "owner"
LEGACY_PARTNER_ID = "partner"
LEGACY_FIELDS = ("your_amount", "partner_amount", "monthly_rate")


@dataclass(frozen=True)
class MultiInvestorLoan:
    """Loan stored with its own participation rows"""
    loan: Loan
    kind: str = "multi_investor"


@dataclass(frozen=True)
class LegacyTwoPartyLoan:
    """Loan stored before participations existed: owner plus at most one partner"""
    id: str
    debtor_name: str
    principal: Decimal
    monthly_rate: Decimal
    origination_date: date
    owner_amount: Decimal
    partner_amount: Decimal
    owner_percentage: Optional[Decimal] = None
    partner_percentage: Optional[Decimal] = None
    partner_name: str = ""
    cadence: Cadence = Cadence.MONTHLY
    status: LoanStatus = LoanStatus.ACTIVE
    maturity_date: Optional[date] = None
    debtor_id: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None
    kind: str = "legacy_two_party"


StoredLoan = Union[MultiInvestorLoan, LegacyTwoPartyLoan]


def _date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    return to_decimal(value)


def _iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_cadence(value: Any) -> Cadence:
    try:
        return Cadence(str(value).lower())
    except ValueError:
        raise ValidationError(f"Unknown cadence '{value}'", field='cadence')


def parse_loan_status(value: Any) -> LoanStatus:
    if value is None:
        return LoanStatus.ACTIVE
    try:
        return LoanStatus(str(value).lower())
    except ValueError:
        raise ValidationError(f"Unknown loan status '{value}'", field='status')


def is_legacy_row(row: Dict[str, Any]) -> bool:
    return "total_rate" not in row and any(key in row for key in LEGACY_FIELDS)


def participation_from_row(row: Dict[str, Any]) -> Participation:
    name = row.get("investor_name") or ""
    return Participation(
        investor_id=row.get("investor_id") or investor_key(name),
        investor_name=name,
        invested_amount=_decimal(row.get("invested_amount"), ZERO),
        percentage=_decimal(row.get("percentage"), ZERO),
        position=int(row.get("position") or 0),
        loan_id=row.get("loan_id"),
        id=row.get("id"),
        notes=row.get("notes") or "",
    )


def parse_loan_row(
    row: Dict[str, Any],
    participation_rows: Iterable[Dict[str, Any]] = ()
) -> StoredLoan:
    """Read a stored loan row into whichever shape it was written in"""
    common = dict(
        id=row["id"],
        debtor_name=row.get("debtor_name") or "",
        principal=_decimal(row.get("principal"), ZERO),
        origination_date=_date(row.get("origination_date")),
        cadence=parse_cadence(row.get("cadence", Cadence.MONTHLY.value)),
        status=parse_loan_status(row.get("status")),
        maturity_date=_date(row.get("maturity_date")),
        debtor_id=row.get("debtor_id") or None,
        notes=row.get("notes") or "",
        created_at=_datetime(row.get("created_at")),
    )

    if is_legacy_row(row):
        return LegacyTwoPartyLoan(
            monthly_rate=_decimal(row.get("monthly_rate"), ZERO),
            owner_amount=_decimal(row.get("your_amount"), ZERO),
            partner_amount=_decimal(row.get("partner_amount"), ZERO),
            owner_percentage=_decimal(row.get("your_share_percentage")),
            partner_percentage=_decimal(row.get("partner_share_percentage")),
            partner_name=row.get("partner_name") or "",
            **common
        )

    participations = sorted(
        (participation_from_row(p) for p in participation_rows),
        key=lambda p: p.position
    )
    return MultiInvestorLoan(loan=Loan(
        total_rate=_decimal(row.get("total_rate"), ZERO),
        intermediary_rate=_decimal(row.get("intermediary_rate"), ZERO),
        intermediary_name=row.get("intermediary_name") or "",
        participations=tuple(participations),
        **common
    ))


def _legacy_participations(
    record: LegacyTwoPartyLoan,
    owner_label: str,
    partner_label: str
) -> List[Participation]:
    stakes = [
        (LEGACY_OWNER_ID, owner_label, record.owner_amount, record.owner_percentage),
        (LEGACY_PARTNER_ID, record.partner_name or partner_label,
         record.partner_amount, record.partner_percentage),
    ]
    kept = [stake for stake in stakes if stake[2] > ZERO or (stake[3] or ZERO) > ZERO]
    if not kept:
        return []

    participations = [
        Participation(
            investor_id=investor_id,
            investor_name=name,
            invested_amount=amount,
            percentage=percentage if percentage is not None else ZERO,
            position=position,
            loan_id=record.id,
        )
        for position, (investor_id, name, amount, percentage) in enumerate(kept)
    ]
    if any(stake[3] is None for stake in kept):
        participations = derive_percentages(participations)
    return participations


def normalize_loan(
    record: StoredLoan,
    owner_label: str = "Owner",
    partner_label: str = "Partner"
) -> Loan:
    """
    Canonical Loan for either stored shape

    A two-party loan becomes a loan with no intermediary whose owner and
    partner stakes are participations; missing percentages are derived from
    the invested amounts.
    """
    if isinstance(record, MultiInvestorLoan):
        return record.loan

    participations = _legacy_participations(record, owner_label, partner_label)
    logger.debug("Normalized two-party loan %s into %d participations",
                 record.id, len(participations))
    return Loan(
        id=record.id,
        debtor_name=record.debtor_name,
        principal=record.principal,
        total_rate=record.monthly_rate,
        intermediary_rate=ZERO,
        origination_date=record.origination_date,
        cadence=record.cadence,
        status=record.status,
        maturity_date=record.maturity_date,
        debtor_id=record.debtor_id,
        notes=record.notes,
        participations=tuple(participations),
        created_at=record.created_at,
    )


def loan_from_rows(
    row: Dict[str, Any],
    participation_rows: Iterable[Dict[str, Any]] = (),
    owner_label: str = "Owner",
    partner_label: str = "Partner"
) -> Loan:
    return normalize_loan(parse_loan_row(row, participation_rows), owner_label, partner_label)


def loan_to_row(loan: Loan) -> Dict[str, Any]:
    """Stored row of a loan, always in the multi-investor shape"""
    return {
        "id": loan.id,
        "debtor_name": loan.debtor_name,
        "debtor_id": loan.debtor_id,
        "principal": str(loan.principal),
        "total_rate": str(loan.total_rate),
        "intermediary_rate": str(loan.intermediary_rate),
        "intermediary_name": loan.intermediary_name,
        "origination_date": _iso(loan.origination_date),
        "maturity_date": _iso(loan.maturity_date),
        "cadence": loan.cadence.value,
        "status": loan.status.value,
        "notes": loan.notes,
        "created_at": _iso(loan.created_at),
    }


def participation_to_row(participation: Participation) -> Dict[str, Any]:
    return {
        "id": participation.id,
        "loan_id": participation.loan_id,
        "investor_id": participation.investor_id,
        "investor_name": participation.investor_name,
        "invested_amount": str(participation.invested_amount),
        "percentage": str(participation.percentage),
        "position": participation.position,
        "notes": participation.notes,
    }


def _legacy_payment_split(row: Dict[str, Any], received: Decimal) -> Optional[Dict[str, Decimal]]:
    owner = _decimal(row.get("your_amount"), ZERO)
    partner = _decimal(row.get("partner_amount"), ZERO)
    intermediary = _decimal(row.get("intermediary_amount"), ZERO)
    if owner + partner + intermediary != received:
        # recorded shares were the expected ones; the split gets re-derived
        return None
    shares = {LEGACY_OWNER_ID: owner}
    if partner > ZERO:
        shares[LEGACY_PARTNER_ID] = partner
    return shares


def payment_from_row(row: Dict[str, Any]) -> PaymentRecord:
    """Payment record from a stored row, including two-party payment rows"""
    expected = _decimal(row.get("expected_amount"), ZERO)
    status = SettlementStatus(row.get("status") or SettlementStatus.PENDING.value)
    received = _decimal(row.get("received_amount"))
    if received is None:
        received = expected if status == SettlementStatus.PAID else ZERO

    intermediary = _decimal(row.get("intermediary_amount"))
    investor_amounts = row.get("investor_amounts")
    if investor_amounts is not None:
        investor_amounts = {key: to_decimal(value) for key, value in investor_amounts.items()}
    elif "your_amount" in row:
        investor_amounts = _legacy_payment_split(row, received)
        if investor_amounts is None:
            intermediary = None
        elif intermediary is None:
            intermediary = ZERO

    return PaymentRecord(
        id=row["id"],
        loan_id=row["loan_id"],
        due_date=_date(row["due_date"]),
        received_amount=received,
        expected_amount=expected,
        received_on=_date(row.get("received_on")),
        status=status,
        intermediary_amount=intermediary,
        investor_amounts=investor_amounts,
        notes=row.get("notes") or "",
        created_at=_datetime(row.get("created_at")),
    )


def payment_to_row(payment: PaymentRecord) -> Dict[str, Any]:
    investor_amounts = None
    if payment.investor_amounts is not None:
        investor_amounts = {key: str(value) for key, value in payment.investor_amounts.items()}
    return {
        "id": payment.id,
        "loan_id": payment.loan_id,
        "due_date": _iso(payment.due_date),
        "received_amount": str(payment.received_amount),
        "expected_amount": str(payment.expected_amount),
        "received_on": _iso(payment.received_on),
        "status": payment.status.value,
        "intermediary_amount": (
            str(payment.intermediary_amount) if payment.intermediary_amount is not None else None
        ),
        "investor_amounts": investor_amounts,
        "notes": payment.notes,
        "created_at": _iso(payment.created_at),
    }


def partner_from_row(row: Dict[str, Any]) -> Partner:
    return Partner(
        id=row["id"],
        name=row.get("name") or "",
        email=row.get("email") or "",
        phone=row.get("phone") or "",
        default_percentage=_decimal(row.get("default_percentage"), ZERO),
        created_at=_datetime(row.get("created_at")),
    )


def partner_to_row(partner: Partner) -> Dict[str, Any]:
    return {
        "id": partner.id,
        "name": partner.name,
        "email": partner.email,
        "phone": partner.phone,
        "default_percentage": str(partner.default_percentage),
        "created_at": _iso(partner.created_at),
    }
