"""
Domain Model

Loans, investor participations, payment records and partners, plus the
derived shapes the engine produces (yield breakdowns, installments). Engine
functions never mutate these objects; updates go through dataclasses.replace.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from .money import ZERO


UNASSIGNED_INVESTOR_ID = "unassigned"


class Cadence(Enum):
    """How often interest is due"""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        """Months between installments, also the accumulation factor"""
        return {
            Cadence.MONTHLY: 1,
            Cadence.QUARTERLY: 3,
            Cadence.ANNUAL: 12,
        }[self]


class LoanStatus(Enum):
    """Loan lifecycle status, always set by the user"""
    ACTIVE = "active"
    PENDING = "pending"
    CLOSED = "closed"


class SettlementStatus(Enum):
    """Settlement state of one installment"""
    PENDING = "pending"
    OVERDUE = "overdue"
    PARTIALLY_RECEIVED = "partially_received"
    PAID = "paid"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


def investor_key(name: str) -> str:
    """Fallback investor id for participations stored without one"""
    return "name:" + " ".join(name.split()).casefold()


def debtor_key(name: str, debtor_id: Optional[str] = None) -> str:
    """Stable grouping key for a debtor"""
    if debtor_id:
        return debtor_id
    return "name:" + " ".join(name.split()).casefold()


@dataclass(frozen=True)
class Participation:
    """One investor's stake in one loan"""
    investor_id: str
    investor_name: str
    invested_amount: Decimal
    percentage: Decimal  # share of the loan's investor pool, 0-100
    position: int = 0
    loan_id: Optional[str] = None
    id: Optional[str] = None
    notes: str = ""


@dataclass(frozen=True)
class Loan:
    """A funded lending agreement with its participations in stored order"""
    id: str
    debtor_name: str
    principal: Decimal
    total_rate: Decimal         # monthly, percent (3.5 means 3.5%)
    intermediary_rate: Decimal  # monthly, percent, part of total_rate
    origination_date: date
    cadence: Cadence = Cadence.MONTHLY
    status: LoanStatus = LoanStatus.ACTIVE
    intermediary_name: str = ""
    maturity_date: Optional[date] = None
    debtor_id: Optional[str] = None
    notes: str = ""
    participations: Tuple[Participation, ...] = ()
    created_at: Optional[datetime] = None

    @property
    def investor_rate(self) -> Decimal:
        return self.total_rate - self.intermediary_rate

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def debtor_key(self) -> str:
        return debtor_key(self.debtor_name, self.debtor_id)

    def investor_names(self) -> Dict[str, str]:
        return {p.investor_id: p.investor_name for p in self.participations}


@dataclass(frozen=True)
class PaymentRecord:
    """Money actually received for one installment of one loan"""
    id: str
    loan_id: str
    due_date: date
    received_amount: Decimal
    expected_amount: Decimal = ZERO
    received_on: Optional[date] = None
    status: SettlementStatus = SettlementStatus.PENDING
    intermediary_amount: Optional[Decimal] = None
    investor_amounts: Optional[Dict[str, Decimal]] = None
    notes: str = ""
    created_at: Optional[datetime] = None

    @property
    def has_split(self) -> bool:
        """Whether the intermediary/investor split was recorded with the payment"""
        return self.intermediary_amount is not None and self.investor_amounts is not None


@dataclass(frozen=True)
class Partner:
    """Contact directory entry for an investor or intermediary"""
    id: str
    name: str
    email: str = ""
    phone: str = ""
    default_percentage: Decimal = ZERO
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class YieldBreakdown:
    """Yield of one installment; gross == intermediary + investor_pool"""
    gross: Decimal
    intermediary: Decimal
    investor_pool: Decimal


@dataclass(frozen=True)
class PaymentSplit:
    """How one received amount divides between intermediary and investors"""
    total: Decimal
    intermediary: Decimal
    investors: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def investor_total(self) -> Decimal:
        return sum(self.investors.values(), ZERO)


@dataclass(frozen=True)
class Installment:
    """One due date of one loan, derived on demand"""
    loan_id: str
    debtor_name: str
    due_date: date
    cadence: Cadence
    accumulation_months: int
    gross_yield: Decimal
    intermediary_yield: Decimal
    investor_pool_yield: Decimal
    investor_shares: Dict[str, Decimal]
    investor_names: Dict[str, str]
    status: SettlementStatus = SettlementStatus.PENDING
    received_amount: Decimal = ZERO
    installment_index: Optional[int] = None
    intermediary_name: str = ""
    debtor_key: str = ""

    @property
    def outstanding_amount(self) -> Decimal:
        remaining = self.gross_yield - self.received_amount
        return remaining if remaining > ZERO else ZERO
