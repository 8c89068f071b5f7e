"""
Schedule Generator

Due dates of a loan's installments. Every due date is the origination date
plus a whole number of calendar months (1, 3 or 12 per installment),
clamped to the last day of shorter months.
"""

import calendar
from datetime import date
from typing import Iterator, List, Tuple

from .models import Cadence, Loan


DEFAULT_SAFETY_CAP = 120  # ~10 years of monthly installments


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, handling month-end edge cases"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month"""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def next_due_date(origination_date: date, cadence: Cadence, installment_index: int) -> date:
    """
    Due date of the n-th installment (1-based).

    Computed from the origination date on every call, so a loan originated on
    the 31st returns to the 31st after passing through a shorter month.
    """
    if installment_index < 1:
        raise ValueError("installment_index starts at 1")
    return add_months(origination_date, cadence.months * installment_index)


def iter_due_dates(loan: Loan, safety_cap: int = DEFAULT_SAFETY_CAP) -> Iterator[Tuple[int, date]]:
    """
    Yield (index, due date) pairs for an active loan, in order.

    Stops at the maturity date when the loan has one, and always at the
    safety cap.
    """
    if not loan.is_active:
        return
    for index in range(1, safety_cap + 1):
        due = next_due_date(loan.origination_date, loan.cadence, index)
        if loan.maturity_date and due > loan.maturity_date:
            return
        yield index, due


def indexed_due_dates_within(
    loan: Loan,
    window_start: date,
    window_end: date,
    safety_cap: int = DEFAULT_SAFETY_CAP
) -> List[Tuple[int, date]]:
    """(index, due date) pairs with window_start <= due date <= window_end"""
    result = []
    for index, due in iter_due_dates(loan, safety_cap):
        if due > window_end:
            break
        if due >= window_start:
            result.append((index, due))
    return result


def due_dates_within(
    loan: Loan,
    window_start: date,
    window_end: date,
    safety_cap: int = DEFAULT_SAFETY_CAP
) -> List[date]:
    """Due dates of the loan inside the inclusive window"""
    return [due for _, due in indexed_due_dates_within(loan, window_start, window_end, safety_cap)]


def due_dates_in_month(
    loan: Loan,
    year: int,
    month: int,
    safety_cap: int = DEFAULT_SAFETY_CAP
) -> List[date]:
    """Due dates of the loan falling in one calendar month"""
    first_day, last_day = month_bounds(year, month)
    return due_dates_within(loan, first_day, last_day, safety_cap)
