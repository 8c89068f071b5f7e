"""
Payment endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from .deps import get_lending_desk, http_error
from .schemas import RegisterPaymentRequest, serialize_payment, to_amount
from ..desk import LendingDesk
from ..exceptions import LendingDeskError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_payment(
    request: RegisterPaymentRequest,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """Register money received for an installment"""
    try:
        payment = desk.payment_manager.register_payment(
            loan_id=request.loan_id,
            due_date=request.due_date,
            amount=to_amount(request.amount, "amount"),
            received_on=request.received_on,
            notes=request.notes,
        )
    except LendingDeskError as e:
        raise http_error(e)

    return serialize_payment(payment)


@router.get("")
async def list_payments(
    loan_id: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    search: Optional[str] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    """List payments by loan, due month/year and debtor name"""
    payments = desk.payment_manager.list_payments(
        loan_id=loan_id, year=year, month=month, search=search
    )
    return {"payments": [serialize_payment(p) for p in payments], "count": len(payments)}
