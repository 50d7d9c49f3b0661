"""
Atomicity coordinator.

Decides whether a group of writes (stock, ledger, record, sequence
counter) can be committed or rolled back as one unit, and runs
service operations accordingly.

With a transactional bind every operation is one database
transaction: commit on success, rollback on any error.

With an AUTOCOMMIT bind each statement is durable the moment it
runs, so rollback() only discards session state. Operations leave
their ORM changes (records, ledger balances) pending until the
commit flushes them together, so a failure raised by fn leaves
nothing durable except stock moves and sequence numbers. Stock
moves made by the failed operation are then undone with the inverse
stock call before the error is returned, and every individual write is
built to be safe on its own (conditional updates, idempotent
creates, unique keys).
"""

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bullion_ledger.config import get_settings
from bullion_ledger.errors import (
    CompensationError,
    ConflictError,
    InternalError,
    LedgerServiceError,
)
from bullion_ledger.models.base import is_autocommit
from bullion_ledger.services.stock_service import StockService

logger = logging.getLogger(__name__)

T = TypeVar("T")


AUTOCOMMIT = "AUTOCOMMIT"


class AtomicityCoordinator:
    """
    Capability-checked strategy for grouping writes.

    Pass grouped=True/False to force a mode; by default the
    ATOMIC_GROUPS setting decides, and "auto" inspects the bind.
    """

    def __init__(self, db: Session, grouped: bool | None = None):
        self.db = db
        self._grouped = grouped

    def supports_atomic_groups(self) -> bool:
        if self._grouped is not None:
            return self._grouped

        mode = get_settings().ATOMIC_GROUPS
        if mode == "on":
            return True
        if mode == "off":
            return False

        return not is_autocommit(self.db.get_bind())

    def _begin_ungrouped(self) -> None:
        """Make every statement of the next operation durable on its own."""
        if is_autocommit(self.db.get_bind()):
            return
        if self.db.in_transaction():
            self.db.commit()
        self.db.connection(execution_options={"isolation_level": AUTOCOMMIT})

    def with_optional_atomic_group(
        self,
        fn: Callable[[], T],
        stock: StockService | None = None,
    ) -> T:
        """
        Run fn and commit. On failure roll back and re-raise.

        Business errors pass through unchanged. A unique-key
        violation becomes ConflictError and anything else becomes
        InternalError. Without atomic groups, stock moves fn made
        through `stock` are compensated before the error is raised.
        """
        grouped = self.supports_atomic_groups()
        if not grouped:
            self._begin_ungrouped()

        journal = stock.start_journal() if stock is not None else []
        try:
            result = fn()
            self.db.commit()
            return result
        except LedgerServiceError as exc:
            logger.warning("Rejected (%s): %s", exc.kind, exc.message)
            self._abort(exc, grouped, stock, journal)
            raise
        except IntegrityError as exc:
            logger.warning("Unique constraint violated: %s", exc.orig)
            error = ConflictError("Record conflicts with an existing record")
            self._abort(error, grouped, stock, journal)
            raise error from exc
        except Exception as exc:
            logger.exception("Unexpected error while saving changes")
            error = InternalError(f"Internal error: {exc}")
            self._abort(error, grouped, stock, journal)
            raise error from exc
        finally:
            if stock is not None:
                stock.stop_journal()

    def _abort(self, error: LedgerServiceError, grouped: bool, stock, journal) -> None:
        self.db.rollback()
        if grouped or not journal:
            return

        moves = list(journal)
        try:
            stock.compensate(moves)
            self.db.commit()
        except Exception as comp_exc:
            self.db.rollback()
            logger.exception(
                "Stock compensation failed after %s: %s", error.kind, moves
            )
            raise CompensationError(
                f"{error.message}; stock compensation also failed: {comp_exc}",
                original=error,
            ) from comp_exc
