"""
Ledger service — counterparty ledgers and their maintenance.

This service owns the ledger lifecycle:
1. A ledger starts at its opening balance
2. The opening balance can be changed while nothing is posted
3. Purge wipes a ledger's records and resets it to opening
4. A ledger can only be deleted once it has no records
5. Recompute replays every live record from the opening balance

Balances themselves are only ever written through the balance
model in services/balances.py.
"""

import logging
from itertools import chain

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from bullion_ledger.errors import InvalidError
from bullion_ledger.models.enums import RecordKind, VoucherStatus
from bullion_ledger.models.ledger import Ledger
from bullion_ledger.models.settlement import Settlement
from bullion_ledger.models.voucher import Voucher, VoucherItem
from bullion_ledger.numeric import require_number
from bullion_ledger.schemas.ledger import LedgerCreate, OpeningBalance
from bullion_ledger.services import effects
from bullion_ledger.services.atomicity import AtomicityCoordinator
from bullion_ledger.services.balances import (
    apply_delta,
    choose_settlement_target,
    reset_to_opening,
    reset_to_zero,
)
from bullion_ledger.services.lookups import load_ledger, load_tenant

logger = logging.getLogger(__name__)


class LedgerService:
    """
    All ledger lifecycle operations pass through this service.

    Each public operation runs in one atomic group through the
    injected coordinator, which commits or rolls back.
    """

    def __init__(self, db: Session, coordinator: AtomicityCoordinator | None = None):
        self.db = db
        self.coordinator = coordinator or AtomicityCoordinator(db)

    def create_ledger(self, tenant_id: int, request: LedgerCreate) -> Ledger:
        """Open a ledger with balances equal to its opening balance."""

        def work():
            load_tenant(self.db, tenant_id)
            opening = request.opening_balance
            ledger = Ledger(
                tenant_id=tenant_id,
                name=request.name,
                phone_number=request.phone_number,
                ledger_type=request.ledger_type,
                opening_amount=require_number(opening.amount, "opening amount"),
                opening_gold_fine_weight=require_number(
                    opening.gold_fine_weight, "opening gold fine weight"
                ),
                opening_silver_fine_weight=require_number(
                    opening.silver_fine_weight, "opening silver fine weight"
                ),
                has_vouchers=False,
            )
            reset_to_opening(ledger)
            self.db.add(ledger)
            self.db.flush()
            return ledger

        ledger = self.coordinator.with_optional_atomic_group(work)
        logger.info("Created %s ledger %s (%s)", ledger.ledger_type.value, ledger.id, ledger.name)
        return ledger

    def get_ledger(self, tenant_id: int, ledger_id: int) -> Ledger:
        return load_ledger(self.db, tenant_id, ledger_id)

    def _voucher_count(self, ledger_id: int) -> int:
        return self.db.execute(
            select(func.count(Voucher.id)).where(Voucher.ledger_id == ledger_id)
        ).scalar()

    def _live_settlement_count(self, ledger_id: int) -> int:
        return self.db.execute(
            select(func.count(Settlement.id)).where(
                Settlement.ledger_id == ledger_id,
                Settlement.is_deleted.is_(False),
            )
        ).scalar()

    def _has_transactions(self, ledger: Ledger) -> bool:
        return bool(self._voucher_count(ledger.id) or self._live_settlement_count(ledger.id))

    def update_opening_balance(
        self, tenant_id: int, ledger_id: int, opening: OpeningBalance
    ) -> Ledger:
        """
        Change the opening balance.

        Running balances follow the new values only while the ledger
        has no records; otherwise the next recompute picks them up.
        """

        def work():
            ledger = load_ledger(self.db, tenant_id, ledger_id)
            ledger.opening_amount = require_number(opening.amount, "opening amount")
            ledger.opening_gold_fine_weight = require_number(
                opening.gold_fine_weight, "opening gold fine weight"
            )
            ledger.opening_silver_fine_weight = require_number(
                opening.silver_fine_weight, "opening silver fine weight"
            )
            if not self._has_transactions(ledger):
                reset_to_opening(ledger)
            self.db.flush()
            return ledger

        ledger = self.coordinator.with_optional_atomic_group(work)
        logger.info("Updated opening balance of ledger %s", ledger.id)
        return ledger

    def purge_transactions(self, tenant_id: int, ledger_id: int) -> Ledger:
        """
        Delete every voucher and settlement of a ledger.

        This is a bookkeeping reset, not a reversal: stock is not
        touched and balances go back to the opening balance.
        """

        def work():
            ledger = load_ledger(self.db, tenant_id, ledger_id)
            voucher_ids = select(Voucher.id).where(
                Voucher.tenant_id == tenant_id, Voucher.ledger_id == ledger.id
            )
            self.db.execute(
                delete(VoucherItem)
                .where(VoucherItem.voucher_id.in_(voucher_ids))
                .execution_options(synchronize_session=False)
            )
            vouchers = self.db.execute(
                delete(Voucher)
                .where(Voucher.tenant_id == tenant_id, Voucher.ledger_id == ledger.id)
                .execution_options(synchronize_session=False)
            ).rowcount
            settlements = self.db.execute(
                delete(Settlement)
                .where(Settlement.tenant_id == tenant_id, Settlement.ledger_id == ledger.id)
                .execution_options(synchronize_session=False)
            ).rowcount

            reset_to_opening(ledger)
            ledger.has_vouchers = False
            self.db.flush()
            return ledger, vouchers, settlements

        ledger, vouchers, settlements = self.coordinator.with_optional_atomic_group(work)
        logger.info(
            "Purged ledger %s: %s voucher(s), %s settlement(s)",
            ledger.id, vouchers, settlements,
        )
        return ledger

    def delete_ledger(self, tenant_id: int, ledger_id: int) -> None:
        """Delete a ledger that owns no vouchers and no live settlements."""

        def work():
            ledger = load_ledger(self.db, tenant_id, ledger_id)
            if self._has_transactions(ledger):
                raise InvalidError(
                    "Cannot delete ledger with transactions. "
                    "Delete vouchers/settlements first."
                )
            self.db.execute(
                delete(Settlement)
                .where(Settlement.ledger_id == ledger.id)
                .execution_options(synchronize_session=False)
            )
            self.db.delete(ledger)
            self.db.flush()

        self.coordinator.with_optional_atomic_group(work)
        logger.info("Deleted ledger %s", ledger_id)

    def recompute_ledger_balances(
        self, tenant_id: int, ledger_id: int
    ) -> tuple[Ledger, int]:
        """
        Rebuild balances by replaying every live record.

        First repairs billing vouchers whose total is zero, then
        starts from the opening balance and applies active vouchers
        and live settlements in creation order. GST ledgers are
        reset to zero and GST invoices are skipped.

        Returns the ledger and the number of repaired vouchers.
        """

        def work():
            ledger = load_ledger(self.db, tenant_id, ledger_id)
            vouchers = self.db.execute(
                select(Voucher).where(
                    Voucher.tenant_id == tenant_id,
                    Voucher.ledger_id == ledger.id,
                    Voucher.status == VoucherStatus.ACTIVE,
                )
            ).scalars().all()
            settlements = self.db.execute(
                select(Settlement).where(
                    Settlement.tenant_id == tenant_id,
                    Settlement.ledger_id == ledger.id,
                    Settlement.is_deleted.is_(False),
                )
            ).scalars().all()

            fixed = sum(1 for voucher in vouchers if effects.repair_total(voucher))
            ledger.has_vouchers = len(vouchers) > 0

            if ledger.is_gst:
                reset_to_zero(ledger)
                self.db.flush()
                return ledger, fixed

            reset_to_opening(ledger)
            records = sorted(
                chain(
                    ((RecordKind.VOUCHER, v) for v in vouchers),
                    ((RecordKind.SETTLEMENT, s) for s in settlements),
                ),
                key=lambda pair: (pair[1].created_at, pair[0].value, pair[1].id),
            )
            for kind, record in records:
                self._replay(ledger, kind, record)
            self.db.flush()
            return ledger, fixed

        ledger, fixed = self.coordinator.with_optional_atomic_group(work)
        logger.info(
            "Recomputed ledger %s (fixed %s voucher total(s)): cash=%s credit=%s "
            "gold=%s silver=%s",
            ledger.id, fixed, ledger.cash_balance, ledger.credit_balance,
            ledger.gold_fine_weight, ledger.silver_fine_weight,
        )
        return ledger, fixed

    def _replay(self, ledger: Ledger, kind: RecordKind, record) -> None:
        if kind == RecordKind.SETTLEMENT:
            delta = effects.settlement_delta(
                record.direction,
                record.metal_type,
                record.fine_given,
                record.amount,
                record.is_money_conversion,
            )
        else:
            if record.is_gst_invoice:
                return
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
        apply_delta(ledger, delta)
