"""
Pydantic schemas for API requests and responses
"""

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..aggregation import PortfolioSummary
from ..exceptions import ValidationError
from ..models import Installment, Loan, Participation, Partner, PaymentRecord, investor_key
from ..money import ZERO, parse_amount
from ..records import parse_cadence, parse_loan_status
from ..reports import MonthOverview


def to_amount(value: Optional[str], field: str) -> Optional[Decimal]:
    """Parse an amount typed as "1234.56" or "R$ 1.234,56"""
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValueError:
        raise ValidationError(f"Invalid amount '{value}'", field=field)


# Loan schemas
class ParticipationModel(BaseModel):
    investor_name: str
    invested_amount: str = Field(..., description="Decimal amount as string")
    percentage: Optional[str] = Field(
        None, description="Share of the investor pool; derived from amounts when omitted"
    )
    investor_id: Optional[str] = Field(None, description="Partner id, when the investor is one")
    notes: str = ""

    def to_participation(self) -> Participation:
        return Participation(
            investor_id=self.investor_id or investor_key(self.investor_name),
            investor_name=self.investor_name.strip(),
            invested_amount=to_amount(self.invested_amount, "invested_amount"),
            percentage=to_amount(self.percentage, "percentage") or ZERO,
            notes=self.notes,
        )


class CreateLoanRequest(BaseModel):
    debtor_name: str
    principal: str = Field(..., description="Decimal amount as string")
    total_rate: str = Field(..., description="Monthly rate in percent, e.g. 3.5")
    intermediary_rate: str = "0"
    intermediary_name: str = ""
    origination_date: date
    maturity_date: Optional[date] = None
    cadence: str = Field("monthly", description="monthly, quarterly or annual")
    status: str = Field("active", description="active, pending or closed")
    debtor_id: Optional[str] = None
    notes: str = ""
    participations: List[ParticipationModel] = []


class UpdateLoanRequest(BaseModel):
    debtor_name: Optional[str] = None
    principal: Optional[str] = None
    total_rate: Optional[str] = None
    intermediary_rate: Optional[str] = None
    intermediary_name: Optional[str] = None
    origination_date: Optional[date] = None
    maturity_date: Optional[date] = None
    cadence: Optional[str] = None
    status: Optional[str] = None
    debtor_id: Optional[str] = None
    notes: Optional[str] = None
    participations: Optional[List[ParticipationModel]] = None

    def to_changes(self) -> Dict[str, Any]:
        """Keyword arguments for LoanManager.update_loan"""
        sent = self.model_fields_set
        changes: Dict[str, Any] = {
            "debtor_name": self.debtor_name,
            "principal": to_amount(self.principal, "principal"),
            "total_rate": to_amount(self.total_rate, "total_rate"),
            "intermediary_rate": to_amount(self.intermediary_rate, "intermediary_rate"),
            "intermediary_name": self.intermediary_name,
            "origination_date": self.origination_date,
            "cadence": parse_cadence(self.cadence) if self.cadence else None,
            "status": parse_loan_status(self.status) if self.status else None,
            "notes": self.notes,
        }
        # explicit null clears these
        if "maturity_date" in sent:
            changes["maturity_date"] = self.maturity_date
        if "debtor_id" in sent:
            changes["debtor_id"] = self.debtor_id
        if self.participations is not None:
            changes["participations"] = [p.to_participation() for p in self.participations]
        return changes


# Payment schemas
class RegisterPaymentRequest(BaseModel):
    loan_id: str
    due_date: date = Field(..., description="Any date in the month of the installment")
    amount: str = Field(..., description="Decimal amount as string")
    received_on: Optional[date] = None
    notes: str = ""


# Partner schemas
class CreatePartnerRequest(BaseModel):
    name: str
    email: str = ""
    phone: str = ""
    default_percentage: str = "0"


class UpdatePartnerRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    default_percentage: Optional[str] = None


def _plain(value: Any) -> Any:
    """Decimals as strings, dates as ISO strings, enums as values"""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def serialize_loan(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "debtor_name": loan.debtor_name,
        "debtor_id": loan.debtor_id,
        "principal": str(loan.principal),
        "total_rate": str(loan.total_rate),
        "intermediary_rate": str(loan.intermediary_rate),
        "investor_rate": str(loan.investor_rate),
        "intermediary_name": loan.intermediary_name,
        "origination_date": loan.origination_date.isoformat(),
        "maturity_date": loan.maturity_date.isoformat() if loan.maturity_date else None,
        "cadence": loan.cadence.value,
        "status": loan.status.value,
        "notes": loan.notes,
        "participations": [
            {
                "investor_id": p.investor_id,
                "investor_name": p.investor_name,
                "invested_amount": str(p.invested_amount),
                "percentage": str(p.percentage),
                "position": p.position,
                "notes": p.notes,
            }
            for p in loan.participations
        ],
    }


def serialize_installment(installment: Installment) -> Dict[str, Any]:
    return {
        "loan_id": installment.loan_id,
        "installment_index": installment.installment_index,
        "debtor_name": installment.debtor_name,
        "due_date": installment.due_date.isoformat(),
        "cadence": installment.cadence.value,
        "accumulation_months": installment.accumulation_months,
        "gross_yield": str(installment.gross_yield),
        "intermediary_yield": str(installment.intermediary_yield),
        "intermediary_name": installment.intermediary_name,
        "investor_pool_yield": str(installment.investor_pool_yield),
        "investors": [
            {
                "investor_id": investor_id,
                "investor_name": installment.investor_names.get(investor_id, investor_id),
                "amount": str(amount),
            }
            for investor_id, amount in installment.investor_shares.items()
        ],
        "status": installment.status.value,
        "status_label": installment.status.label,
        "received_amount": str(installment.received_amount),
        "outstanding_amount": str(installment.outstanding_amount),
    }


def serialize_payment(payment: PaymentRecord) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "loan_id": payment.loan_id,
        "due_date": payment.due_date.isoformat(),
        "received_amount": str(payment.received_amount),
        "expected_amount": str(payment.expected_amount),
        "received_on": payment.received_on.isoformat() if payment.received_on else None,
        "status": payment.status.value,
        "intermediary_amount": (
            str(payment.intermediary_amount) if payment.intermediary_amount is not None else None
        ),
        "investor_amounts": _plain(payment.investor_amounts),
        "notes": payment.notes,
    }


def serialize_partner(partner: Partner) -> Dict[str, Any]:
    return {
        "id": partner.id,
        "name": partner.name,
        "email": partner.email,
        "phone": partner.phone,
        "default_percentage": str(partner.default_percentage),
    }


def serialize_summary(summary: PortfolioSummary) -> Dict[str, Any]:
    return _plain(asdict(summary))


def serialize_overview(overview: MonthOverview) -> Dict[str, Any]:
    return _plain(asdict(overview))
