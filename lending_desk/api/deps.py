"""
Shared API dependencies
"""

from typing import Optional

from fastapi import HTTPException, status

from ..desk import LendingDesk
from ..exceptions import (
    LendingDeskError, LoanNotFoundError, PartnerNotFoundError, ValidationError
)


_lending_desk: Optional[LendingDesk] = None


def get_lending_desk() -> LendingDesk:
    """Lending desk built from configuration on first use"""
    global _lending_desk
    if _lending_desk is None:
        _lending_desk = LendingDesk()
    return _lending_desk


def http_error(error: LendingDeskError) -> HTTPException:
    """Map a lending desk error to its HTTP status"""
    if isinstance(error, (LoanNotFoundError, PartnerNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, ValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": error.message, **error.details},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
