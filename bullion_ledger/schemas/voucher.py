"""
Pydantic schemas for voucher operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bullion_ledger.models.enums import (
    InvoiceType,
    MetalType,
    PaymentType,
    RecordKind,
    VoucherStatus,
    VoucherType,
)


class VoucherItemIn(BaseModel):
    """
    One line of a voucher as the client sent it.

    Name and metal are checked by the processor so that a bad
    row is reported by its position.
    """
    item_name: str = ""
    metal_type: str = ""
    pieces: Decimal | None = None
    gross_weight: Decimal | None = None
    less_weight: Decimal | None = None
    net_weight: Decimal | None = None
    melting: Decimal | None = None
    wastage: Decimal | None = None
    fine_weight: Decimal | None = None
    labour_rate: Decimal | None = None
    amount: Decimal | None = None
    hsn_code: str | None = Field(default=None, max_length=10)


class VoucherCreate(BaseModel):
    ledger_id: int | None = None
    date: datetime | None = None
    voucher_type: VoucherType = VoucherType.SALE
    invoice_type: InvoiceType = InvoiceType.NORMAL
    payment_type: PaymentType
    voucher_number: str | None = Field(default=None, max_length=50)
    invoice_number: str | None = Field(default=None, max_length=50)
    gold_rate: Decimal = Decimal("0")
    silver_rate: Decimal = Decimal("0")
    stone_amount: Decimal = Decimal("0")
    fine_amount: Decimal = Decimal("0")
    gst_total: Decimal = Decimal("0")
    cash_received: Decimal = Decimal("0")
    items: list[VoucherItemIn] = Field(default_factory=list)
    narration: str = ""


class VoucherUpdate(VoucherCreate):
    """Full replacement of a voucher; ledger_id may move it to another ledger."""


class VoucherCancel(BaseModel):
    reason: str | None = Field(default=None, max_length=255)


class VoucherItemResponse(BaseModel):
    id: int
    position: int
    item_name: str
    metal_type: MetalType
    pieces: int
    gross_weight: Decimal
    less_weight: Decimal
    net_weight: Decimal
    melting: Decimal
    wastage: Decimal
    fine_weight: Decimal
    labour_rate: Decimal
    amount: Decimal
    hsn_code: str

    model_config = {"from_attributes": True}


class VoucherResponse(BaseModel):
    id: int
    ledger_id: int
    voucher_number: str
    invoice_number: str | None
    customer_name: str
    date: datetime
    voucher_type: VoucherType
    invoice_type: InvoiceType
    payment_type: PaymentType
    gold_rate: Decimal
    silver_rate: Decimal
    stone_amount: Decimal
    fine_amount: Decimal
    gst_total: Decimal
    total: Decimal
    cash_received: Decimal
    narration: str
    credit_due_date: datetime | None
    status: VoucherStatus
    cancelled_reason: str | None
    stock_adjusted: bool
    stock_restored: bool
    created_at: datetime
    items: list[VoucherItemResponse]

    model_config = {"from_attributes": True}


class ReversalResponse(BaseModel):
    """Outcome of a cancel or delete."""
    success: bool = True
    kind: RecordKind
    record_id: int
    reversed: bool
    window_expired: bool
    strategy: str | None
    message: str

    model_config = {"from_attributes": True}
