"""
Ledger components.

Each component owns a session factory and runs every operation in its own
session, so a failed operation never leaves partial state behind.
"""

from cardledger.ledger.requests import RequestWorkflow
from cardledger.ledger.stock import StockLedger
from cardledger.ledger.transfers import TransferWorkflow
from cardledger.ledger.users import UserDirectory
from cardledger.ledger.validation import validate_rows

__all__ = [
    "RequestWorkflow",
    "StockLedger",
    "TransferWorkflow",
    "UserDirectory",
    "validate_rows",
]
