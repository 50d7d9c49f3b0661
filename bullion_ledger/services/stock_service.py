"""
Stock service — the per-tenant physical metal counters.

Rules:
1. gold and silver never go negative
2. Decrements are a single conditional UPDATE, never read-then-write
3. Amounts passed to the primitives are finite and non-negative

Every transaction kind shares one Stock row per tenant, and only
this service writes to it. Like the other services it flushes and
leaves commit/rollback to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bullion_ledger.errors import (
    InsufficientStockError,
    InternalError,
    InvalidError,
    InvalidStockAmountError,
    NotFoundError,
)
from bullion_ledger.models.base import is_autocommit
from bullion_ledger.models.enums import VoucherType
from bullion_ledger.models.snapshot import StockAdjustment
from bullion_ledger.models.stock import Stock, StockInput
from bullion_ledger.numeric import ZERO, require_number

logger = logging.getLogger(__name__)

DEDUCT = "deduct"
RESTORE = "restore"


@dataclass(frozen=True)
class StockMove:
    """One successful deduct or restore, kept so it can be undone."""
    tenant_id: int
    action: str
    gold: Decimal
    silver: Decimal


def _magnitude(value, field: str) -> Decimal:
    try:
        number = require_number(ZERO if value is None else value, field)
    except InvalidError as exc:
        raise InvalidStockAmountError(exc.message) from exc
    if number < 0:
        raise InvalidStockAmountError(f"{field} cannot be negative")
    return number


class StockService:

    def __init__(self, db: Session):
        self.db = db
        # Moves made during the current operation, when one is being tracked
        self.journal: list[StockMove] | None = None

    def start_journal(self) -> list[StockMove]:
        self.journal = []
        return self.journal

    def stop_journal(self) -> None:
        self.journal = None

    def _record(self, tenant_id: int, action: str, gold: Decimal, silver: Decimal) -> None:
        if self.journal is not None and (gold or silver):
            self.journal.append(StockMove(tenant_id, action, gold, silver))

    def compensate(self, moves: list[StockMove]) -> None:
        """Undo recorded moves, newest first, with the inverse primitive."""
        self.journal = None
        for move in reversed(moves):
            if move.action == DEDUCT:
                self.restore(move.tenant_id, move.gold, move.silver)
            else:
                self.deduct(move.tenant_id, move.gold, move.silver)
            logger.info(
                "Compensated %s for tenant %s: gold=%s silver=%s",
                move.action, move.tenant_id, move.gold, move.silver,
            )

    def _find(self, tenant_id: int) -> Stock | None:
        return self.db.execute(
            select(Stock).where(Stock.tenant_id == tenant_id)
        ).scalar_one_or_none()

    def ensure_exists(self, tenant_id: int) -> Stock:
        """
        Return the tenant's stock row, creating a zero row on first use.

        Two requests may race to create the row. The loser hits the
        unique constraint on tenant_id and reads the winner's row
        instead. Inside a transaction the insert runs in a SAVEPOINT
        so the failure does not abort the surrounding work.
        """
        stock = self._find(tenant_id)
        if stock:
            return stock

        statement = insert(Stock).values(
            tenant_id=tenant_id,
            gold=ZERO,
            silver=ZERO,
            cash_in_hand=ZERO,
        )
        try:
            if is_autocommit(self.db.connection()):
                self.db.execute(statement)
            else:
                with self.db.begin_nested():
                    self.db.execute(statement)
        except IntegrityError:
            logger.info("Stock row for tenant %s created concurrently", tenant_id)

        stock = self._find(tenant_id)
        if stock is None:
            raise InternalError(f"Stock row for tenant {tenant_id} could not be created")
        return stock

    def deduct(self, tenant_id: int, gold=ZERO, silver=ZERO) -> Stock:
        """
        Take metal out of stock only if both counters stay non-negative.

        The guard and the decrement are the same UPDATE statement, so
        two concurrent deductions can never both pass a stale check.
        """
        gold = _magnitude(gold, "gold fine weight")
        silver = _magnitude(silver, "silver fine weight")
        stock = self.ensure_exists(tenant_id)

        result = self.db.execute(
            update(Stock)
            .where(
                Stock.tenant_id == tenant_id,
                Stock.gold >= gold,
                Stock.silver >= silver,
            )
            .values(
                gold=Stock.gold - gold,
                silver=Stock.silver - silver,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            self.db.refresh(stock)
            logger.warning(
                "Insufficient stock for tenant %s: requested gold=%s silver=%s, "
                "available gold=%s silver=%s",
                tenant_id, gold, silver, stock.gold, stock.silver,
            )
            raise InsufficientStockError(
                f"Insufficient stock: available gold={stock.gold}, "
                f"silver={stock.silver}; requested gold={gold}, silver={silver}"
            )

        self._record(tenant_id, DEDUCT, gold, silver)
        self.db.refresh(stock)
        return stock

    def restore(self, tenant_id: int, gold=ZERO, silver=ZERO) -> Stock:
        """Put metal back into stock. Always succeeds."""
        gold = _magnitude(gold, "gold fine weight")
        silver = _magnitude(silver, "silver fine weight")
        stock = self.ensure_exists(tenant_id)

        self.db.execute(
            update(Stock)
            .where(Stock.tenant_id == tenant_id)
            .values(
                gold=Stock.gold + gold,
                silver=Stock.silver + silver,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        self._record(tenant_id, RESTORE, gold, silver)
        self.db.refresh(stock)
        return stock

    def apply_adjustment(
        self,
        tenant_id: int,
        adjustment: StockAdjustment,
        voucher_type: VoucherType = VoucherType.SALE,
        reverse: bool = False,
    ) -> None:
        """
        Move stock for a signed per-metal adjustment.

        A sale deducts positive fine and restores negative fine
        (returned items). A purchase does the opposite. reverse=True
        flips both so the call undoes an earlier one exactly.
        """
        positive_gold = max(ZERO, adjustment.gold)
        positive_silver = max(ZERO, adjustment.silver)
        negative_gold = max(ZERO, -adjustment.gold)
        negative_silver = max(ZERO, -adjustment.silver)

        is_purchase = voucher_type == VoucherType.PURCHASE
        deduct_positive = is_purchase if reverse else not is_purchase

        if positive_gold > 0 or positive_silver > 0:
            if deduct_positive:
                self.deduct(tenant_id, positive_gold, positive_silver)
            else:
                self.restore(tenant_id, positive_gold, positive_silver)

        if negative_gold > 0 or negative_silver > 0:
            if deduct_positive:
                self.restore(tenant_id, negative_gold, negative_silver)
            else:
                self.deduct(tenant_id, negative_gold, negative_silver)

    def get_stock(self, tenant_id: int) -> Stock:
        return self.ensure_exists(tenant_id)

    def add_stock(
        self,
        tenant_id: int,
        gold=ZERO,
        silver=ZERO,
        cash_amount=ZERO,
        date: datetime | None = None,
    ) -> Stock:
        """
        Record a manual stock purchase.

        Metal goes into stock, the cash paid for it leaves
        cash_in_hand, and a history row is kept for undo.
        """
        gold = _magnitude(gold, "gold")
        silver = _magnitude(silver, "silver")
        cash_amount = _magnitude(cash_amount, "cash amount")
        stock = self.ensure_exists(tenant_id)

        self.db.execute(
            update(Stock)
            .where(Stock.tenant_id == tenant_id)
            .values(
                gold=Stock.gold + gold,
                silver=Stock.silver + silver,
                cash_in_hand=Stock.cash_in_hand - cash_amount,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        self.db.add(StockInput(
            tenant_id=tenant_id,
            gold=gold,
            silver=silver,
            cash_amount=cash_amount,
            date=date or datetime.utcnow(),
        ))
        self.db.flush()
        self.db.refresh(stock)

        logger.info(
            "Stock added for tenant %s: gold=%s silver=%s cash=%s",
            tenant_id, gold, silver, cash_amount,
        )
        return stock

    def undo_last_input(self, tenant_id: int) -> Stock:
        """
        Reverse the most recent manual stock input.

        Fails with InsufficientStockError if the metal has since been
        used, leaving the history untouched.
        """
        last_input = self.db.execute(
            select(StockInput)
            .where(StockInput.tenant_id == tenant_id)
            .order_by(StockInput.date.desc(), StockInput.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        if not last_input:
            raise NotFoundError("No stock input to undo")

        stock = self.deduct(tenant_id, last_input.gold, last_input.silver)
        self.db.execute(
            update(Stock)
            .where(Stock.tenant_id == tenant_id)
            .values(cash_in_hand=Stock.cash_in_hand + last_input.cash_amount)
            .execution_options(synchronize_session="fetch")
        )
        self.db.delete(last_input)
        self.db.flush()
        self.db.refresh(stock)

        logger.info("Undid stock input %s for tenant %s", last_input.id, tenant_id)
        return stock

    def set_daily_rates(self, tenant_id: int, gold_rate=ZERO, silver_rate=ZERO) -> Stock:
        """Set today's informational metal rates."""
        gold_rate = require_number(ZERO if gold_rate is None else gold_rate, "gold rate")
        silver_rate = require_number(ZERO if silver_rate is None else silver_rate, "silver rate")
        if gold_rate < 0 or silver_rate < 0:
            raise InvalidError("Rates cannot be negative")

        stock = self.ensure_exists(tenant_id)
        stock.gold_rate = gold_rate
        stock.silver_rate = silver_rate
        stock.rates_updated_at = datetime.utcnow()
        stock.updated_at = datetime.utcnow()
        self.db.flush()
        return stock
