"""
Allocation Splitter

Divides an investor pool among a loan's participations. Every share but the
last is rounded to the cent; the last participation in stored order absorbs
the remainder so that the shares always add up to the pool exactly.
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, Sequence

from .models import Participation, PaymentSplit, UNASSIGNED_INVESTOR_ID, YieldBreakdown
from .money import ONE, ZERO, percent_of, round_money


logger = logging.getLogger(__name__)


def split_among(
    investor_pool: Decimal,
    participations: Sequence[Participation]
) -> "OrderedDict[str, Decimal]":
    """
    Split the investor pool per investor id

    Args:
        investor_pool: Amount left after the intermediary's cut
        participations: Participations in stored order

    Returns:
        Ordered mapping investor_id -> amount, summing to investor_pool.
        Without participations the whole pool goes to UNASSIGNED_INVESTOR_ID.
    """
    shares: "OrderedDict[str, Decimal]" = OrderedDict()
    if not participations:
        logger.debug("No participations, pool of %s left unassigned", investor_pool)
        shares[UNASSIGNED_INVESTOR_ID] = investor_pool
        return shares

    ordered = sorted(participations, key=lambda p: p.position)
    allocated = ZERO
    for participation in ordered[:-1]:
        share = round_money(percent_of(investor_pool, participation.percentage))
        shares[participation.investor_id] = shares.get(participation.investor_id, ZERO) + share
        allocated += share

    last = ordered[-1]
    shares[last.investor_id] = shares.get(last.investor_id, ZERO) + (investor_pool - allocated)
    return shares


def scale_allocation(
    breakdown: YieldBreakdown,
    shares: Dict[str, Decimal],
    paid_amount: Decimal
) -> PaymentSplit:
    """
    Scale a full-installment split down to the amount actually paid

    The proportion paid / gross (capped at 1) is applied to the intermediary
    yield and to every investor share but the last, which receives whatever is
    left of the paid amount.

    Args:
        breakdown: Yield of the installment being paid
        shares: Full-installment investor shares from split_among, in order
        paid_amount: Amount received in this payment

    Returns:
        PaymentSplit whose parts sum exactly to paid_amount
    """
    paid_amount = round_money(paid_amount)
    if breakdown.gross > ZERO:
        proportion = min(paid_amount / breakdown.gross, ONE)
    else:
        proportion = ZERO

    intermediary = round_money(breakdown.intermediary * proportion)
    investor_total = paid_amount - intermediary

    investors: "OrderedDict[str, Decimal]" = OrderedDict()
    investor_ids = list(shares)
    allocated = ZERO
    for investor_id in investor_ids[:-1]:
        scaled = round_money(shares[investor_id] * proportion)
        investors[investor_id] = scaled
        allocated += scaled
    if investor_ids:
        investors[investor_ids[-1]] = investor_total - allocated
    elif investor_total != ZERO:
        investors[UNASSIGNED_INVESTOR_ID] = investor_total

    return PaymentSplit(total=paid_amount, intermediary=intermediary, investors=dict(investors))
