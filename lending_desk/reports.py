"""
Reports

Month overview figures and the plain-text distribution summary that is
copied out to investors at the end of each month.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Sequence

from .models import Installment, SettlementStatus
from .money import HUNDRED, ZERO, format_brl, round_money


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


@dataclass(frozen=True)
class MonthOverview:
    installment_count: int
    expected_total: Decimal
    received_total: Decimal
    to_receive: Decimal
    progress: Decimal  # percent received, capped at 100
    intermediary_total: Decimal
    investors_total: Decimal
    paid_count: int
    overdue_count: int


def month_overview(installments: Sequence[Installment]) -> MonthOverview:
    """Summarize one month of installments"""
    expected = sum((i.gross_yield for i in installments), ZERO)
    received = sum((i.received_amount for i in installments), ZERO)
    outstanding = sum((i.outstanding_amount for i in installments), ZERO)

    if expected > ZERO:
        progress = min(round_money(received / expected * HUNDRED), HUNDRED)
    else:
        progress = ZERO

    return MonthOverview(
        installment_count=len(installments),
        expected_total=expected,
        received_total=received,
        to_receive=outstanding,
        progress=progress,
        intermediary_total=sum((i.intermediary_yield for i in installments), ZERO),
        investors_total=sum((i.investor_pool_yield for i in installments), ZERO),
        paid_count=sum(1 for i in installments if i.status == SettlementStatus.PAID),
        overdue_count=sum(1 for i in installments if i.status == SettlementStatus.OVERDUE),
    )


def distribution_report(installments: Sequence[Installment], year: int, month: int) -> str:
    """
    Plain-text summary of what each investor receives in a month

    Layout::

        Distribution summary - October 2026

        Ana Souza
          Carlos Lima (quarterly): R$ 2.197,80 - Paid
          Total: R$ 2.197,80

        Totals
          Intermediary: R$ 2.400,00
          Investors: R$ 6.600,00
          Expected: R$ 9.000,00
          Received: R$ 9.000,00
    """
    lines = [f"Distribution summary - {MONTH_NAMES[month - 1]} {year}", ""]

    if not installments:
        lines.append("No installments due this month.")
        return "\n".join(lines) + "\n"

    names: Dict[str, str] = {}
    rows: Dict[str, List[str]] = {}
    totals: Dict[str, Decimal] = {}
    for installment in installments:
        for investor_id, amount in installment.investor_shares.items():
            names.setdefault(investor_id, installment.investor_names.get(investor_id, investor_id))
            rows.setdefault(investor_id, []).append(
                f"  {installment.debtor_name} ({installment.cadence.value}): "
                f"{format_brl(amount)} - {installment.status.label}"
            )
            totals[investor_id] = totals.get(investor_id, ZERO) + amount

    for investor_id in sorted(rows, key=lambda key: (names[key].casefold(), key)):
        lines.append(names[investor_id])
        lines.extend(rows[investor_id])
        lines.append(f"  Total: {format_brl(totals[investor_id])}")
        lines.append("")

    overview = month_overview(installments)
    lines.extend([
        "Totals",
        f"  Intermediary: {format_brl(overview.intermediary_total)}",
        f"  Investors: {format_brl(overview.investors_total)}",
        f"  Expected: {format_brl(overview.expected_total)}",
        f"  Received: {format_brl(overview.received_total)}",
    ])
    return "\n".join(lines) + "\n"
