"""
Error taxonomy for the ledger core.

Services raise these; the API layer turns them into HTTP
responses with one exception handler. Every error carries a
machine-readable kind and a human-readable message.
"""


class LedgerServiceError(Exception):
    """Base class for every error the core surfaces to callers."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "kind": self.kind, "detail": self.message}


class InvalidError(LedgerServiceError):
    """Malformed or out-of-range input. Never retried."""
    kind = "invalid"
    status_code = 400


class InvalidStockAmountError(InvalidError):
    """A stock primitive was called with a negative or non-finite amount."""
    kind = "invalid_stock_amount"


class ReversalWindowExpiredError(InvalidError):
    """An edit was requested after the reversal window closed."""
    kind = "window_expired"


class NotFoundError(LedgerServiceError):
    kind = "not_found"
    status_code = 404


class InsufficientStockError(LedgerServiceError):
    kind = "insufficient_stock"
    status_code = 400


class InsufficientBalanceError(LedgerServiceError):
    kind = "insufficient_balance"
    status_code = 400


class ConflictError(LedgerServiceError):
    """Duplicate number or a lost concurrent update."""
    kind = "conflict"
    status_code = 409


class AlreadyReversedError(ConflictError):
    kind = "already_reversed"


class InternalError(LedgerServiceError):
    """Storage or serialization fault."""
    kind = "internal"
    status_code = 500


class CompensationError(InternalError):
    """
    A compensating stock call failed after an earlier failure.

    Both failures are reported; nothing is retried.
    """
    kind = "compensation_failed"

    def __init__(self, message: str, original: Exception | None = None):
        super().__init__(message)
        self.original = original
