"""
Partner directory endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from .deps import get_lending_desk, http_error
from .schemas import CreatePartnerRequest, UpdatePartnerRequest, serialize_partner, to_amount
from ..desk import LendingDesk
from ..exceptions import LendingDeskError


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_partner(
    request: CreatePartnerRequest,
    desk: LendingDesk = Depends(get_lending_desk)
):
    try:
        partner = desk.partner_directory.create_partner(
            name=request.name,
            email=request.email,
            phone=request.phone,
            default_percentage=to_amount(request.default_percentage, "default_percentage"),
        )
    except LendingDeskError as e:
        raise http_error(e)
    return serialize_partner(partner)


@router.get("")
async def list_partners(
    search: Optional[str] = None,
    desk: LendingDesk = Depends(get_lending_desk)
):
    partners = desk.partner_directory.list_partners(search=search)
    return {"partners": [serialize_partner(p) for p in partners], "count": len(partners)}


@router.get("/{partner_id}")
async def get_partner(
    partner_id: str,
    desk: LendingDesk = Depends(get_lending_desk)
):
    try:
        partner = desk.partner_directory.require_partner(partner_id)
    except LendingDeskError as e:
        raise http_error(e)
    return serialize_partner(partner)


@router.put("/{partner_id}")
async def update_partner(
    partner_id: str,
    request: UpdatePartnerRequest,
    desk: LendingDesk = Depends(get_lending_desk)
):
    try:
        partner = desk.partner_directory.update_partner(
            partner_id,
            name=request.name,
            email=request.email,
            phone=request.phone,
            default_percentage=to_amount(request.default_percentage, "default_percentage"),
        )
    except LendingDeskError as e:
        raise http_error(e)
    return serialize_partner(partner)


@router.delete("/{partner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_partner(
    partner_id: str,
    desk: LendingDesk = Depends(get_lending_desk)
):
    try:
        desk.partner_directory.delete_partner(partner_id)
    except LendingDeskError as e:
        raise http_error(e)
