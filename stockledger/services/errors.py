"""
Service exceptions.

Les services lèvent ces erreurs ; la couche API les traduit en HTTPException.
"""

from __future__ import annotations


class StockLedgerError(ValueError):
    """Base class for stock ledger business errors."""


class NotFoundError(StockLedgerError):
    pass


class InvalidTransitionError(StockLedgerError):
    """Raised when a purchase request status change is not allowed."""


class QuantityEditNotAllowed(StockLedgerError):
    """Raised when editing quantity on a request that is no longer pending."""


class ThresholdValidationError(StockLedgerError):
    pass


class InsufficientStockError(StockLedgerError):
    """Raised by consume_stock when a line cannot be served."""

    def __init__(self, result):
        self.result = result
        super().__init__(result.message or "Some items have insufficient stock")
