"""
Transaction processor — applies a commercial event to a ledger and stock.

Order of work inside one atomic group:
1. Validate everything that can be validated without writing
2. Move stock (its guard fires before any ledger write)
3. Capture the ledger snapshot and write the record
4. Apply the balance delta through the balance model

On any failure the coordinator rolls back, and without atomic groups
it also issues the inverse of every stock move made in step 2.
"""

import logging
from dataclasses import asdict
from datetime import datetime, timedelta

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from bullion_ledger.config import Settings, get_settings
from bullion_ledger.errors import (
    ConflictError,
    InsufficientBalanceError,
    InvalidError,
)
from bullion_ledger.models.enums import (
    MetalType,
    PaymentType,
    RecordKind,
    SettlementDirection,
)
from bullion_ledger.models.karigar import KarigarTransaction
from bullion_ledger.models.settlement import Settlement
from bullion_ledger.models.voucher import Voucher, VoucherItem
from bullion_ledger.numeric import ZERO, require_number
from bullion_ledger.schemas.settlement import KarigarCreate, SettlementCreate
from bullion_ledger.schemas.voucher import VoucherCreate, VoucherUpdate
from bullion_ledger.services import effects
from bullion_ledger.services.atomicity import AtomicityCoordinator
from bullion_ledger.services.balances import (
    apply_delta,
    capture_state,
    choose_settlement_target,
)
from bullion_ledger.services.lookups import load_ledger, load_tenant, load_voucher
from bullion_ledger.services.reversal_engine import ReversalEngine
from bullion_ledger.services.sequence_service import SequenceService
from bullion_ledger.services.stock_service import StockService

logger = logging.getLogger(__name__)


def _parse(schema: type[BaseModel], parameters) -> BaseModel:
    """Accept a schema instance, another model or a plain dict."""
    if isinstance(parameters, schema):
        return parameters
    if isinstance(parameters, BaseModel):
        parameters = parameters.model_dump()
    try:
        return schema.model_validate(parameters or {})
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise InvalidError(f"Invalid {field}: {first['msg']}") from exc


class TransactionProcessor:
    """
    Entry point for creating and editing vouchers, settlements and
    karigar transactions.

    The stock service is shared with the reversal engine so an edit
    (reverse + apply) is journaled as one operation.
    """

    def __init__(
        self,
        db: Session,
        coordinator: AtomicityCoordinator | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.coordinator = coordinator or AtomicityCoordinator(db)
        self.stock = StockService(db)
        self.sequences = SequenceService(db)
        self.reversal = ReversalEngine(
            db,
            coordinator=self.coordinator,
            stock=self.stock,
            window_hours=self.settings.REVERSAL_WINDOW_HOURS,
        )

    def process_transaction(
        self,
        tenant_id: int,
        ledger_id: int | None,
        kind: RecordKind | str,
        parameters,
    ):
        """Create one record of the given kind. Karigar ignores ledger_id."""
        try:
            kind = RecordKind(kind)
        except ValueError:
            raise InvalidError(f"Unrecognised record kind: {kind}")

        if kind == RecordKind.VOUCHER:
            request = _parse(VoucherCreate, parameters)
            if ledger_id is not None:
                request = request.model_copy(update={"ledger_id": ledger_id})
            return self.create_voucher(tenant_id, request)

        if kind == RecordKind.SETTLEMENT:
            request = _parse(SettlementCreate, parameters)
            if ledger_id is not None:
                request = request.model_copy(update={"ledger_id": ledger_id})
            return self.create_settlement(tenant_id, request)

        return self.create_karigar_transaction(tenant_id, parameters)

    # --- vouchers ---

    def get_voucher(self, tenant_id: int, voucher_id: int) -> Voucher:
        return load_voucher(self.db, tenant_id, voucher_id)

    def create_voucher(self, tenant_id: int, parameters) -> Voucher:
        request = _parse(VoucherCreate, parameters)
        voucher = self.coordinator.with_optional_atomic_group(
            lambda: self._apply_voucher(tenant_id, request),
            stock=self.stock,
        )
        logger.info(
            "Created voucher %s (%s/%s) total=%s on ledger %s",
            voucher.voucher_number, voucher.voucher_type.value,
            voucher.payment_type.value, voucher.total, voucher.ledger_id,
        )
        return voucher

    def update_voucher(self, tenant_id: int, voucher_id: int, parameters) -> Voucher:
        """
        Replace a voucher: reverse its old effects, apply the new ones.

        Both halves run in one atomic group so no half-reversed state
        is ever committed.
        """
        request = _parse(VoucherUpdate, parameters)

        def work():
            result = self.reversal.reverse_transaction(
                tenant_id, RecordKind.VOUCHER, voucher_id, for_edit=True
            )
            old_ledger_id = result.record.ledger_id
            voucher = self._apply_voucher(tenant_id, request, existing=result.record)
            if voucher.ledger_id != old_ledger_id:
                old_ledger = load_ledger(self.db, tenant_id, old_ledger_id)
                self.reversal.refresh_has_vouchers(old_ledger, exclude_id=voucher.id)
            return voucher

        voucher = self.coordinator.with_optional_atomic_group(work, stock=self.stock)
        logger.info(
            "Updated voucher %s total=%s on ledger %s",
            voucher.voucher_number, voucher.total, voucher.ledger_id,
        )
        return voucher

    def _ensure_unique(self, tenant_id: int, column, value: str, exclude_id, message: str):
        query = select(Voucher.id).where(Voucher.tenant_id == tenant_id, column == value)
        if exclude_id is not None:
            query = query.where(Voucher.id != exclude_id)
        if self.db.execute(query).first():
            raise ConflictError(message)

    def _voucher_number(self, tenant, requested: str | None, existing: Voucher | None) -> str:
        number = (requested or "").strip()
        if existing is not None:
            return number or existing.voucher_number
        if tenant.voucher_auto_increment or not number:
            number = str(self.sequences.allocate_sequence(tenant.id))
        return number

    def _apply_voucher(
        self,
        tenant_id: int,
        request: VoucherCreate,
        existing: Voucher | None = None,
    ) -> Voucher:
        payment_type = request.payment_type
        items = []
        if payment_type.is_billing:
            if not request.items:
                raise InvalidError("At least one item is required for this payment type")
            items = effects.clean_items([item.model_dump() for item in request.items])

        tenant = load_tenant(self.db, tenant_id)
        ledger_id = request.ledger_id or (existing.ledger_id if existing else None)
        if not ledger_id:
            raise InvalidError("Ledger is required")
        ledger = load_ledger(self.db, tenant_id, ledger_id)

        exclude_id = existing.id if existing else None
        invoice_number = (request.invoice_number or "").strip() or None
        if invoice_number:
            self._ensure_unique(
                tenant_id, Voucher.invoice_number, invoice_number, exclude_id,
                "Duplicate invoice number",
            )
        voucher_number = self._voucher_number(tenant, request.voucher_number, existing)
        self._ensure_unique(
            tenant_id, Voucher.voucher_number, voucher_number, exclude_id,
            "Voucher number already exists",
        )

        gold_rate = require_number(request.gold_rate, "gold rate")
        silver_rate = require_number(request.silver_rate, "silver rate")
        stone_amount = require_number(request.stone_amount, "stone amount")
        fine_amount = require_number(request.fine_amount, "fine amount")
        gst_total = require_number(request.gst_total, "GST total")
        cash_received = require_number(request.cash_received, "cash received")
        total = effects.voucher_total(
            payment_type, items, stone_amount, fine_amount, gst_total, cash_received
        )

        stock_adjustment = effects.voucher_stock_adjustment(
            payment_type, items, tenant.stock_mode
        )
        if not stock_adjustment.is_zero:
            self.stock.apply_adjustment(tenant_id, stock_adjustment, request.voucher_type)

        target = choose_settlement_target(ledger)
        voucher = existing or Voucher(tenant_id=tenant_id)
        voucher.ledger_id = ledger.id
        voucher.voucher_number = voucher_number
        voucher.invoice_number = invoice_number
        voucher.customer_name = ledger.name
        voucher.date = request.date or (existing.date if existing else datetime.utcnow())
        voucher.voucher_type = request.voucher_type
        voucher.invoice_type = request.invoice_type
        voucher.payment_type = payment_type
        voucher.gold_rate = gold_rate
        voucher.silver_rate = silver_rate
        voucher.stone_amount = stone_amount
        voucher.fine_amount = fine_amount
        voucher.gst_total = gst_total
        voucher.total = total
        voucher.cash_received = cash_received
        voucher.narration = request.narration or ""
        voucher.items = [
            VoucherItem(position=position, **asdict(item))
            for position, item in enumerate(items)
        ]
        voucher.credit_due_date = (
            datetime.utcnow() + timedelta(days=self.settings.CREDIT_DUE_DAYS)
            if payment_type == PaymentType.CREDIT else None
        )
        voucher.previous_ledger_state = capture_state(ledger)
        voucher.record_stock_adjustment(stock_adjustment)

        # Record and ledger reach the database in one flush at commit, after
        # every check and stock move has passed.
        if not effects.skips_balance(voucher.is_gst_invoice, ledger.is_gst):
            apply_delta(ledger, effects.voucher_delta(
                payment_type,
                request.voucher_type,
                total,
                cash_received,
                effects.fine_by_metal(items),
                gold_rate,
                silver_rate,
                target,
            ))
        ledger.has_vouchers = True
        if existing is None:
            self.db.add(voucher)
        return voucher

    # --- settlements ---

    def create_settlement(self, tenant_id: int, parameters) -> Settlement:
        request = _parse(SettlementCreate, parameters)
        settlement = self.coordinator.with_optional_atomic_group(
            lambda: self._apply_settlement(tenant_id, request),
            stock=self.stock,
        )
        logger.info(
            "Created settlement %s (%s %s fine=%s amount=%s) on ledger %s",
            settlement.id, settlement.direction.value, settlement.metal_type.value,
            settlement.fine_given, settlement.amount, settlement.ledger_id,
        )
        return settlement

    def _apply_settlement(self, tenant_id: int, request: SettlementCreate) -> Settlement:
        if not request.ledger_id:
            raise InvalidError("Ledger is required")
        load_tenant(self.db, tenant_id)
        ledger = load_ledger(self.db, tenant_id, request.ledger_id)

        fine_given = require_number(request.fine_given, "fine given")
        metal_rate = require_number(request.metal_rate, "metal rate")
        amount = effects.settlement_amount(
            fine_given,
            metal_rate,
            request.is_money_conversion,
            require_number(request.amount, "amount"),
        )

        is_gold = request.metal_type == MetalType.GOLD
        fine_before = ledger.gold_fine_weight if is_gold else ledger.silver_fine_weight
        credit_before = ledger.credit_balance
        delta = effects.settlement_delta(
            request.direction,
            request.metal_type,
            fine_given,
            amount,
            request.is_money_conversion,
        )

        fine_after = fine_before
        credit_after = credit_before
        if not ledger.is_gst:
            if request.is_money_conversion:
                if credit_before < amount:
                    raise InsufficientBalanceError(
                        "Insufficient credit balance for money conversion"
                    )
            elif request.direction == SettlementDirection.PAYMENT:
                if fine_before < fine_given:
                    raise InsufficientBalanceError(
                        "Insufficient fine balance for settlement"
                    )
                if credit_before < amount:
                    raise InsufficientBalanceError(
                        "Settlement amount exceeds pending credit balance"
                    )

            fine_after = fine_before + (delta.gold if is_gold else delta.silver)
            credit_after = credit_before + delta.credit
            if fine_after < 0 or credit_after < 0:
                raise InsufficientBalanceError(
                    "Invalid settlement resulting in negative balance"
                )

        stock_adjustment = effects.settlement_stock_adjustment(
            request.direction,
            request.metal_type,
            fine_given,
            request.is_money_conversion,
        )
        if not stock_adjustment.is_zero:
            self.stock.apply_adjustment(tenant_id, stock_adjustment)

        settlement = Settlement(
            tenant_id=tenant_id,
            ledger_id=ledger.id,
            customer_name=ledger.name,
            date=request.date or datetime.utcnow(),
            metal_type=request.metal_type,
            direction=request.direction,
            is_money_conversion=request.is_money_conversion,
            metal_rate=metal_rate,
            fine_given=fine_given,
            amount=amount,
            balance_before=fine_before,
            balance_after_amount=credit_after,
            balance_after_fine=fine_after,
            narration=request.narration or "",
        )
        settlement.previous_ledger_state = capture_state(ledger)
        settlement.record_stock_adjustment(stock_adjustment)
        if not ledger.is_gst:
            apply_delta(ledger, delta)
        self.db.add(settlement)
        return settlement

    # --- karigar ---

    def create_karigar_transaction(self, tenant_id: int, parameters) -> KarigarTransaction:
        request = _parse(KarigarCreate, parameters)
        txn = self.coordinator.with_optional_atomic_group(
            lambda: self._apply_karigar(tenant_id, request),
            stock=self.stock,
        )
        logger.info(
            "Recorded karigar %s for %s: %s fine=%s",
            txn.type.value, txn.karigar_name, txn.metal_type.value, txn.fine_weight,
        )
        return txn

    def _apply_karigar(self, tenant_id: int, request: KarigarCreate) -> KarigarTransaction:
        fine_weight = require_number(request.fine_weight, "fine weight")
        if fine_weight <= 0:
            raise InvalidError("Fine weight must be greater than zero")
        charge_amount = max(ZERO, require_number(request.charge_amount, "charge amount"))
        load_tenant(self.db, tenant_id)

        txn = KarigarTransaction(
            tenant_id=tenant_id,
            date=request.date or datetime.utcnow(),
            type=request.type,
            karigar_name=request.karigar_name.strip(),
            item_name=request.item_name.strip(),
            metal_type=request.metal_type,
            fine_weight=fine_weight,
            charge_amount=charge_amount,
            narration=request.narration or "",
            stock_restored=False,
        )
        self.stock.apply_adjustment(tenant_id, txn.stock_adjustment)
        self.db.add(txn)
        self.db.flush()
        return txn
