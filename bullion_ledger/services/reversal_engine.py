"""
Reversal engine — undoes a record's effect on its ledger and on stock.

Each record moves through a one-way state machine:
    voucher:             active -> cancelled, or removed by delete
    settlement, karigar: active -> deleted (soft)
Terminal states never reverse again.

Ledger reversal has two strategies, picked by whether the record
carries a balance snapshot:
    SnapshotReversal          overwrite balances with the snapshot
    LegacyArithmeticReversal  apply the inverse of the effect table
They are never mixed for one record.

Stock reversal is independent and guarded by record.stock_restored.

Reversal is only allowed while the record is inside the reversal
window. A cancel or delete outside the window still retires the
record but leaves ledger and stock untouched, so balances keep
reflecting the retired record. This is an accepted inconsistency
and is logged at WARNING.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bullion_ledger.config import get_settings
from bullion_ledger.errors import (
    AlreadyReversedError,
    InvalidError,
    ReversalWindowExpiredError,
)
from bullion_ledger.models.enums import (
    RecordKind,
    VoucherStatus,
    VoucherType,
)
from bullion_ledger.models.ledger import Ledger
from bullion_ledger.models.settlement import Settlement
from bullion_ledger.models.snapshot import StockAdjustment
from bullion_ledger.models.voucher import Voucher
from bullion_ledger.services import effects
from bullion_ledger.services.atomicity import AtomicityCoordinator
from bullion_ledger.services.balances import (
    apply_delta,
    choose_settlement_target,
    restore_state,
)
from bullion_ledger.services.lookups import (
    load_karigar_transaction,
    load_ledger,
    load_settlement,
    load_tenant,
    load_voucher,
)
from bullion_ledger.services.stock_service import StockService

logger = logging.getLogger(__name__)


def is_reversible(record, window_hours: float, now: datetime | None = None) -> bool:
    """True iff now - created_at <= window_hours. The boundary is inclusive."""
    created_at = getattr(record, "created_at", None)
    if created_at is None:
        return False
    now = now or datetime.utcnow()
    return now - created_at <= timedelta(hours=window_hours)


@dataclass
class ReversalResult:
    record: object
    record_id: int
    kind: RecordKind
    reversed: bool
    window_expired: bool
    strategy: str | None
    message: str


class SnapshotReversal:
    name = "snapshot"

    def reverse_ledger(self, record, ledger: Ledger) -> None:
        restore_state(ledger, record.previous_ledger_state)


class LegacyArithmeticReversal:
    """For records written before balance snapshots were stored."""

    name = "legacy_arithmetic"

    def reverse_ledger(self, record, ledger: Ledger) -> None:
        if isinstance(record, Settlement):
            if ledger.is_gst:
                return
            delta = effects.settlement_delta(
                record.direction,
                record.metal_type,
                record.fine_given,
                record.amount,
                record.is_money_conversion,
            )
        else:
            if effects.skips_balance(record.is_gst_invoice, ledger.is_gst):
                return
            effects.repair_total(record)
            delta = effects.voucher_delta(
                record.payment_type,
                record.voucher_type,
                record.total,
                record.cash_received,
                effects.fine_by_metal(record.items),
                record.gold_rate,
                record.silver_rate,
                choose_settlement_target(ledger),
            )
        apply_delta(ledger, delta.inverted())


SNAPSHOT_REVERSAL = SnapshotReversal()
LEGACY_REVERSAL = LegacyArithmeticReversal()


def select_strategy(record) -> SnapshotReversal | LegacyArithmeticReversal:
    if record.previous_ledger_state is not None:
        return SNAPSHOT_REVERSAL
    return LEGACY_REVERSAL


class ReversalEngine:

    def __init__(
        self,
        db: Session,
        coordinator: AtomicityCoordinator | None = None,
        stock: StockService | None = None,
        window_hours: float | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.coordinator = coordinator or AtomicityCoordinator(db)
        self.stock = stock or StockService(db)
        self.window_hours = (
            window_hours if window_hours is not None
            else get_settings().REVERSAL_WINDOW_HOURS
        )
        self.clock = clock

    def is_reversible(self, record) -> bool:
        return is_reversible(record, self.window_hours, self.clock())

    # --- stock ---

    def _voucher_stock_adjustment(self, voucher: Voucher) -> StockAdjustment:
        stored = voucher.stored_stock_adjustment
        if stored is not None:
            return stored
        # Legacy voucher: derive from items, billing types only
        tenant = load_tenant(self.db, voucher.tenant_id)
        return effects.voucher_stock_adjustment(
            voucher.payment_type, voucher.items, tenant.stock_mode
        )

    def _settlement_stock_adjustment(self, settlement: Settlement) -> StockAdjustment:
        stored = settlement.stored_stock_adjustment
        if stored is not None:
            return stored
        return effects.settlement_stock_adjustment(
            settlement.direction,
            settlement.metal_type,
            settlement.fine_given,
            settlement.is_money_conversion,
        )

    def _reverse_stock(
        self,
        record,
        adjustment: StockAdjustment,
        voucher_type: VoucherType = VoucherType.SALE,
        mark_restored: bool = True,
    ) -> bool:
        """Undo a record's stock move once. Returns False if already undone."""
        if record.stock_restored:
            return False
        if not adjustment.is_zero:
            self.stock.apply_adjustment(
                record.tenant_id, adjustment, voucher_type, reverse=True
            )
        if mark_restored:
            record.stock_restored = True
        return True

    # --- vouchers ---

    def _reverse_voucher_effects(
        self, voucher: Voucher, ledger: Ledger, mark_restored: bool
    ) -> str:
        """Stock first so its guard fires before any ledger write."""
        self._reverse_stock(
            voucher,
            self._voucher_stock_adjustment(voucher),
            voucher.voucher_type,
            mark_restored=mark_restored,
        )
        strategy = select_strategy(voucher)
        strategy.reverse_ledger(voucher, ledger)
        return strategy.name

    def refresh_has_vouchers(self, ledger: Ledger, exclude_id: int) -> None:
        remaining = self.db.execute(
            select(func.count(Voucher.id)).where(
                Voucher.ledger_id == ledger.id,
                Voucher.id != exclude_id,
                Voucher.status == VoucherStatus.ACTIVE,
            )
        ).scalar()
        if remaining == 0:
            ledger.has_vouchers = False

    def reverse_voucher_for_edit(self, tenant_id: int, voucher_id: int) -> ReversalResult:
        """
        Undo an active voucher's effects so it can be re-applied.

        Runs inside the caller's atomic group and never flushes: the
        restored ledger stays pending until the re-applied voucher's stock
        move has succeeded.
        """
        voucher = load_voucher(self.db, tenant_id, voucher_id)
        if not voucher.is_active:
            raise InvalidError("Cancelled vouchers cannot be edited")
        if not self.is_reversible(voucher):
            raise ReversalWindowExpiredError(
                f"Voucher cannot be edited after {self.window_hours:g} hours"
            )

        ledger = load_ledger(self.db, tenant_id, voucher.ledger_id)
        strategy = self._reverse_voucher_effects(voucher, ledger, mark_restored=False)
        return ReversalResult(
            record=voucher,
            record_id=voucher.id,
            kind=RecordKind.VOUCHER,
            reversed=True,
            window_expired=False,
            strategy=strategy,
            message="Voucher effects reversed for edit",
        )

    def cancel_voucher(
        self, tenant_id: int, voucher_id: int, reason: str | None = None
    ) -> ReversalResult:
        def work():
            voucher = load_voucher(self.db, tenant_id, voucher_id)
            if not voucher.can_transition_to(VoucherStatus.CANCELLED):
                raise AlreadyReversedError("Voucher already cancelled")

            ledger = load_ledger(self.db, tenant_id, voucher.ledger_id)
            in_window = self.is_reversible(voucher)
            strategy = None
            if in_window:
                strategy = self._reverse_voucher_effects(
                    voucher, ledger, mark_restored=True
                )
            else:
                logger.warning(
                    "Voucher %s cancelled outside the %sh window; "
                    "ledger %s and stock left unchanged",
                    voucher.voucher_number, self.window_hours, ledger.id,
                )

            self.refresh_has_vouchers(ledger, exclude_id=voucher.id)
            voucher.status = VoucherStatus.CANCELLED
            voucher.cancelled_reason = reason or "Cancelled by user"
            self.db.flush()

            return ReversalResult(
                record=voucher,
                record_id=voucher.id,
                kind=RecordKind.VOUCHER,
                reversed=in_window,
                window_expired=not in_window,
                strategy=strategy,
                message=(
                    "Voucher cancelled successfully" if in_window
                    else "Voucher cancelled without reversal "
                         f"(older than {self.window_hours:g} hours)"
                ),
            )

        result = self.coordinator.with_optional_atomic_group(work, stock=self.stock)
        logger.info(
            "Cancelled voucher %s (reversed=%s, strategy=%s)",
            voucher_id, result.reversed, result.strategy,
        )
        return result

    def delete_voucher(self, tenant_id: int, voucher_id: int) -> ReversalResult:
        """
        Remove a voucher row.

        An active voucher inside the window is fully reversed first.
        A cancelled one only gets its stock back, and only if its
        cancellation did not already return it.
        """
        def work():
            voucher = load_voucher(self.db, tenant_id, voucher_id)
            ledger = load_ledger(self.db, tenant_id, voucher.ledger_id)
            in_window = self.is_reversible(voucher)
            strategy = None

            if in_window and voucher.is_active:
                strategy = self._reverse_voucher_effects(
                    voucher, ledger, mark_restored=True
                )
            elif in_window:
                self._reverse_stock(
                    voucher,
                    self._voucher_stock_adjustment(voucher),
                    voucher.voucher_type,
                )
            else:
                logger.warning(
                    "Voucher %s deleted outside the %sh window; "
                    "ledger %s and stock left unchanged",
                    voucher.voucher_number, self.window_hours, ledger.id,
                )

            self.refresh_has_vouchers(ledger, exclude_id=voucher.id)
            self.db.delete(voucher)
            self.db.flush()

            return ReversalResult(
                record=voucher,
                record_id=voucher.id,
                kind=RecordKind.VOUCHER,
                reversed=in_window,
                window_expired=not in_window,
                strategy=strategy,
                message=(
                    "Voucher deleted successfully" if in_window
                    else "Voucher deleted without reversal "
                         f"(older than {self.window_hours:g} hours)"
                ),
            )

        result = self.coordinator.with_optional_atomic_group(work, stock=self.stock)
        logger.info("Deleted voucher %s (reversed=%s)", voucher_id, result.reversed)
        return result

    # --- settlements ---

    def delete_settlement(self, tenant_id: int, settlement_id: int) -> ReversalResult:
        def work():
            settlement = load_settlement(self.db, tenant_id, settlement_id)
            if settlement.is_deleted:
                raise AlreadyReversedError("Settlement already deleted")

            in_window = self.is_reversible(settlement)
            strategy = None
            if in_window:
                ledger = load_ledger(self.db, tenant_id, settlement.ledger_id)
                self._reverse_stock(
                    settlement, self._settlement_stock_adjustment(settlement)
                )
                selected = select_strategy(settlement)
                selected.reverse_ledger(settlement, ledger)
                strategy = selected.name
            else:
                logger.warning(
                    "Settlement %s deleted outside the %sh window; "
                    "ledger and stock left unchanged",
                    settlement.id, self.window_hours,
                )

            settlement.is_deleted = True
            settlement.deleted_at = self.clock()
            self.db.flush()

            return ReversalResult(
                record=settlement,
                record_id=settlement.id,
                kind=RecordKind.SETTLEMENT,
                reversed=in_window,
                window_expired=not in_window,
                strategy=strategy,
                message=(
                    "Settlement deleted successfully" if in_window
                    else "Settlement deleted without reversal "
                         f"(older than {self.window_hours:g} hours)"
                ),
            )

        result = self.coordinator.with_optional_atomic_group(work, stock=self.stock)
        logger.info("Deleted settlement %s (reversed=%s)", settlement_id, result.reversed)
        return result

    # --- karigar ---

    def delete_karigar_transaction(
        self, tenant_id: int, transaction_id: int
    ) -> ReversalResult:
        def work():
            txn = load_karigar_transaction(self.db, tenant_id, transaction_id)
            if txn.is_deleted:
                raise AlreadyReversedError("Transaction already deleted")

            in_window = self.is_reversible(txn)
            if in_window:
                self._reverse_stock(txn, txn.stock_adjustment)
            else:
                logger.warning(
                    "Karigar transaction %s deleted outside the %sh window; "
                    "stock left unchanged",
                    txn.id, self.window_hours,
                )

            txn.is_deleted = True
            self.db.flush()

            return ReversalResult(
                record=txn,
                record_id=txn.id,
                kind=RecordKind.KARIGAR,
                reversed=in_window,
                window_expired=not in_window,
                strategy=None,
                message=(
                    "Transaction deleted successfully and stock reversed" if in_window
                    else "Transaction deleted without reversal "
                         f"(older than {self.window_hours:g} hours)"
                ),
            )

        result = self.coordinator.with_optional_atomic_group(work, stock=self.stock)
        logger.info(
            "Deleted karigar transaction %s (reversed=%s)",
            transaction_id, result.reversed,
        )
        return result

    # --- entry point ---

    def reverse_transaction(
        self,
        tenant_id: int,
        kind: RecordKind | str,
        record_id: int,
        for_edit: bool = False,
        reason: str | None = None,
    ) -> ReversalResult:
        """
        Undo any record.

        Vouchers are cancelled, settlements and karigar transactions
        are soft deleted. for_edit=True only applies to vouchers and
        runs inside the caller's atomic group.
        """
        try:
            kind = RecordKind(kind)
        except ValueError:
            raise InvalidError(f"Unrecognised record kind: {kind}")

        if for_edit:
            if kind != RecordKind.VOUCHER:
                raise InvalidError("Only vouchers can be edited")
            return self.reverse_voucher_for_edit(tenant_id, record_id)

        if kind == RecordKind.VOUCHER:
            return self.cancel_voucher(tenant_id, record_id, reason)
        if kind == RecordKind.SETTLEMENT:
            return self.delete_settlement(tenant_id, record_id)
        return self.delete_karigar_transaction(tenant_id, record_id)
