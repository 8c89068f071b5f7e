"""
Loan endpoints
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from .deps import get_lending_desk, http_error
from .schemas import (
    CreateLoanRequest, UpdateLoanRequest, serialize_installment, serialize_loan, to_amount
)
from ..desk import LendingDesk
from ..exceptions import LendingDeskError
from ..records import parse_cadence, parse_loan_status


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Create a loan with its participations"""
    try:
        loan = desk.loan_manager.create_loan(
            debtor_name=request.debtor_name,
            principal=to_amount(request.principal, "principal"),
            total_rate=to_amount(request.total_rate, "total_rate"),
            intermediary_rate=to_amount(request.intermediary_rate, "intermediary_rate"),
            intermediary_name=request.intermediary_name,
            origination_date=request.origination_date,
            maturity_date=request.maturity_date,
            cadence=parse_cadence(request.cadence),
            status=parse_loan_status(request.status),
            debtor_id=request.debtor_id,
            notes=request.notes,
            participations=[p.to_participation() for p in request.participations],
        )
    except LendingDeskError as e:
        raise http_error(e)

    return serialize_loan(loan)


@router.get("")
async def list_loans(
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    desk: LendingDesk = Depends(get_lending_desk)
):
    """List loans, optionally filtered by debtor name and status"""
    try:
        loan_status = parse_loan_status(status_filter) if status_filter else None
    except LendingDeskError as e:
        raise http_error(e)

    loans = desk.loan_manager.list_loans(search=search, status=loan_status)
    return {"loans": [serialize_loan(loan) for loan in loans], "count": len(loans)}


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Get loan details"""
    try:
        loan = desk.loan_manager.require_loan(loan_id)
    except LendingDeskError as e:
        raise http_error(e)
    return serialize_loan(loan)


@router.put("/{loan_id}")
async def update_loan(
    loan_id: str,
    request: UpdateLoanRequest,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Update a loan; participations, when sent, replace the stored ones"""
    try:
        loan = desk.loan_manager.update_loan(loan_id, **request.to_changes())
    except LendingDeskError as e:
        raise http_error(e)
    return serialize_loan(loan)


@router.delete("/{loan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_loan(
    loan_id: str,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Delete a loan with its participations and payments"""
    try:
        desk.loan_manager.delete_loan(loan_id)
    except LendingDeskError as e:
        raise http_error(e)


@router.get("/{loan_id}/installments")
async def get_loan_installments(
    loan_id: str,
    start: date,
    end: date,
    as_of: Optional[date] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Installments of a loan due between start and end, inclusive"""
    try:
        installments = desk.loan_installments(loan_id, start, end, as_of or date.today())
    except LendingDeskError as e:
        raise http_error(e)

    return {
        "loan_id": loan_id,
        "installments": [serialize_installment(i) for i in installments],
    }
