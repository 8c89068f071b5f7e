"""
Exceptions

Error taxonomy for the lending desk. Validation errors abort a write before
anything is stored; storage errors are propagated to the caller as they are.
"""

from typing import Any, Dict, Optional


class LendingDeskError(Exception):
    """Base exception for all lending desk errors"""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(LendingDeskError, ValueError):
    """Raised when user input breaks a loan, participation or payment invariant"""
    
    def __init__(self, message: str, field: Optional[str] = None, **details):
        if field:
            details['field'] = field
        super().__init__(message, details)
        self.field = field


class StorageError(LendingDeskError):
    """Raised when the storage backend fails"""
    pass


class LoanNotFoundError(LendingDeskError):
    """Raised when a loan cannot be found"""
    
    def __init__(self, loan_id: str):
        super().__init__(f"Loan '{loan_id}' not found", {'loan_id': loan_id})
        self.loan_id = loan_id


class PartnerNotFoundError(LendingDeskError):
    """Raised when a partner is missing from the directory"""
    
    def __init__(self, partner_id: str):
        super().__init__(f"Partner '{partner_id}' not found", {'partner_id': partner_id})
        self.partner_id = partner_id


class InstallmentNotFoundError(ValidationError):
    """Raised when a payment targets a month in which the loan has no installment"""
    
    def __init__(self, loan_id: str, year: int, month: int):
        super().__init__(
            f"Loan '{loan_id}' has no installment due in {year:04d}-{month:02d}",
            field='due_date', loan_id=loan_id, year=year, month=month
        )
