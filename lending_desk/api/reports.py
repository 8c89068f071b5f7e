"""
Report endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from .deps import get_lending_desk
from .schemas import serialize_installment, serialize_overview, serialize_summary
from ..desk import LendingDesk
from ..money import ZERO


router = APIRouter()


@router.get("/portfolio")
async def get_portfolio_summary(
    as_of: Optional[date] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Portfolio, investor and debtor rollups as of a date (default today)"""
    return serialize_summary(desk.portfolio_summary(as_of or date.today()))


@router.get("/installments")
async def get_month_installments(
    year: int,
    month: int = Query(..., ge=1, le=12),
    as_of: Optional[date] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Every installment due in a month with its split and settlement status"""
    installments = desk.installments_for_month(year, month, as_of or date.today())
    return {
        "year": year,
        "month": month,
        "installments": [serialize_installment(i) for i in installments],
    }


@router.get("/overview")
async def get_month_overview(
    year: int,
    month: int = Query(..., ge=1, le=12),
    as_of: Optional[date] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Expected, received and outstanding totals for a month"""
    overview = desk.month_overview(year, month, as_of or date.today())
    return {"year": year, "month": month, **serialize_overview(overview)}


@router.get("/distribution", response_class=PlainTextResponse)
async def get_distribution_report(
    year: int,
    month: int = Query(..., ge=1, le=12),
    as_of: Optional[date] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Plain-text per-investor distribution summary for a month"""
    return desk.distribution_report(year, month, as_of or date.today())


@router.get("/upcoming")
async def get_upcoming_installments(
    days: Optional[int] = Query(None, ge=0),
    as_of: Optional[date] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Installments due within the next days (default from configuration)"""
    as_of = as_of or date.today()
    installments = desk.upcoming_installments(as_of, days)
    return {
        "as_of": as_of.isoformat(),
        "installments": [serialize_installment(i) for i in installments],
        "outstanding_total": str(sum((i.outstanding_amount for i in installments), ZERO)),
    }
