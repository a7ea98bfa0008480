# Overview: Domain error taxonomy shared by the ledger, cascade and catalog services.

"""
Service-layer errors.

Routes map each class to one HTTP status:
- NotFoundError -> 404
- InvalidArgumentError -> 400
- InvalidOperationError (and InsufficientStockError) -> 400
- PersistenceConflictError -> 409
"""


class StockLedgerError(ValueError):
    """Base class for expected, non-fatal service failures."""


class NotFoundError(StockLedgerError):
    """Referenced entity does not exist."""


class InvalidArgumentError(StockLedgerError):
    """Unrecognized movement type, malformed quantity, missing reason."""


class InvalidOperationError(StockLedgerError):
    """Business-rule violation (e.g., deleting your own account)."""


class InsufficientStockError(InvalidOperationError):
    """Stock-out would drive quantity below zero under the REJECT policy."""


class PersistenceConflictError(StockLedgerError):
    """A write failed or a concurrent update won the race; nothing was applied."""
