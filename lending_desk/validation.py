"""
Loan Validation

Write-time rules for loans and their participations. Every rule raises
ValidationError before anything reaches storage.
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import List, Sequence

from .exceptions import ValidationError
from .models import Loan, Participation
from .money import HUNDRED, ZERO, round_money


logger = logging.getLogger(__name__)

ALLOCATION_TOLERANCE = Decimal("0.01")


def validate_loan(loan: Loan, tolerance: Decimal = ALLOCATION_TOLERANCE) -> None:
    """
    Check a loan and its participations

    Raises:
        ValidationError: On the first broken rule
    """
    if not loan.debtor_name or not loan.debtor_name.strip():
        raise ValidationError("Debtor name is required", field='debtor_name')

    if loan.principal <= ZERO:
        raise ValidationError("Principal must be greater than zero", field='principal',
                              principal=str(loan.principal))

    if loan.total_rate <= ZERO:
        raise ValidationError("Total rate must be greater than zero", field='total_rate',
                              total_rate=str(loan.total_rate))

    if loan.intermediary_rate < ZERO:
        raise ValidationError("Intermediary rate cannot be negative", field='intermediary_rate',
                              intermediary_rate=str(loan.intermediary_rate))

    if loan.intermediary_rate > loan.total_rate:
        raise ValidationError(
            "Intermediary rate cannot exceed the total rate",
            field='intermediary_rate',
            total_rate=str(loan.total_rate),
            intermediary_rate=str(loan.intermediary_rate),
        )

    has_intermediary_name = bool(loan.intermediary_name and loan.intermediary_name.strip())
    if loan.intermediary_rate > ZERO and not has_intermediary_name:
        raise ValidationError("Intermediary name is required when the intermediary rate is set",
                              field='intermediary_name')
    if loan.intermediary_rate == ZERO and has_intermediary_name:
        raise ValidationError("Intermediary named without an intermediary rate",
                              field='intermediary_rate')

    if loan.maturity_date and loan.maturity_date <= loan.origination_date:
        raise ValidationError("Maturity date must be after the origination date",
                              field='maturity_date')

    if not loan.participations:
        logger.warning("Loan %s has no participations; yield goes to unassigned investors",
                       loan.id)
        return

    validate_participations(loan.principal, loan.participations, tolerance)


def validate_participations(
    principal: Decimal,
    participations: Sequence[Participation],
    tolerance: Decimal = ALLOCATION_TOLERANCE
) -> None:
    """Participations must be non-negative and add up to the principal and to 100%"""
    seen = set()
    for participation in participations:
        if not participation.investor_name or not participation.investor_name.strip():
            raise ValidationError("Investor name is required", field='participations')
        if participation.invested_amount < ZERO or participation.percentage < ZERO:
            raise ValidationError(
                f"Participation of {participation.investor_name} cannot be negative",
                field='participations',
            )
        if participation.percentage > HUNDRED:
            raise ValidationError(
                f"Participation of {participation.investor_name} exceeds 100%",
                field='participations',
            )
        if participation.investor_id in seen:
            raise ValidationError(
                f"Investor {participation.investor_name} appears twice",
                field='participations',
                investor_id=participation.investor_id,
            )
        seen.add(participation.investor_id)

    invested = sum((p.invested_amount for p in participations), ZERO)
    if abs(invested - principal) > tolerance:
        raise ValidationError(
            "The sum of invested amounts must equal the principal",
            field='participations',
            invested=str(invested),
            principal=str(principal),
        )

    percentage = sum((p.percentage for p in participations), ZERO)
    if abs(percentage - HUNDRED) > tolerance:
        raise ValidationError(
            "Participation percentages must add up to 100",
            field='participations',
            percentage=str(percentage),
        )


def derive_percentages(participations: Sequence[Participation]) -> List[Participation]:
    """
    Fill in percentages from invested amounts

    Each percentage is rounded to two places; the last participation takes
    whatever brings the total to exactly 100.
    """
    total = sum((p.invested_amount for p in participations), ZERO)
    if total <= ZERO:
        raise ValidationError("Invested amounts must add up to more than zero",
                              field='participations')

    result = []
    allocated = ZERO
    for participation in participations[:-1]:
        percentage = round_money(participation.invested_amount / total * HUNDRED)
        allocated += percentage
        result.append(replace(participation, percentage=percentage))
    result.append(replace(participations[-1], percentage=HUNDRED - allocated))
    return result
