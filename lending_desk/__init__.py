"""
Lending Desk

Installment projection, revenue allocation and reconciliation for private
loans funded by several investors through an optional intermediary.
All financial calculations use Decimal.
"""

__version__ = "1.0.0"
