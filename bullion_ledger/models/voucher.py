"""
Voucher model.

A voucher is a billing document (sale or purchase) or a voucher-style
settlement (add_cash, add_gold, money_to_gold, ...). It records the
inputs that produced its effect plus the reversal snapshot.

Status has a tiny state machine: active -> cancelled, and
cancelled is terminal.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Integer, Numeric, ForeignKey, Text,
    Enum as SAEnum, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bullion_ledger.models.base import Base
from bullion_ledger.models.enums import (
    InvoiceType,
    MetalType,
    PaymentType,
    VoucherStatus,
    VoucherType,
)
from bullion_ledger.models.snapshot import ReversalSnapshotMixin


VALID_TRANSITIONS: dict[VoucherStatus, set[VoucherStatus]] = {
    VoucherStatus.ACTIVE: {VoucherStatus.CANCELLED},
    VoucherStatus.CANCELLED: set(),  # Terminal state
}


class Voucher(ReversalSnapshotMixin, Base):
    __tablename__ = "vouchers"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "voucher_number", name="uq_voucher_tenant_number"
        ),
        UniqueConstraint(
            "tenant_id", "invoice_number", name="uq_voucher_tenant_invoice"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    ledger_id: Mapped[int] = mapped_column(
        ForeignKey("ledgers.id"), nullable=False, index=True
    )
    voucher_number: Mapped[str] = mapped_column(String(50), nullable=False)
    # NULL when the voucher carries no invoice number
    invoice_number: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    voucher_type: Mapped[VoucherType] = mapped_column(
        SAEnum(VoucherType, name="voucher_type_enum", create_constraint=True),
        nullable=False,
        default=VoucherType.SALE,
    )
    invoice_type: Mapped[InvoiceType] = mapped_column(
        SAEnum(InvoiceType, name="invoice_type_enum", create_constraint=True),
        nullable=False,
        default=InvoiceType.NORMAL,
    )
    payment_type: Mapped[PaymentType] = mapped_column(
        SAEnum(PaymentType, name="payment_type_enum", create_constraint=True),
        nullable=False,
    )
    gold_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    silver_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    stone_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    fine_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    # Pre-computed by the GST collaborator
    gst_total: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    cash_received: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    narration: Mapped[str] = mapped_column(Text, nullable=False, default="")
    credit_due_date: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    status: Mapped[VoucherStatus] = mapped_column(
        SAEnum(VoucherStatus, name="voucher_status_enum", create_constraint=True),
        nullable=False,
        default=VoucherStatus.ACTIVE,
    )
    cancelled_reason: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    items: Mapped[list["VoucherItem"]] = relationship(
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="VoucherItem.position",
    )

    @property
    def is_active(self) -> bool:
        return self.status == VoucherStatus.ACTIVE

    @property
    def is_gst_invoice(self) -> bool:
        return self.invoice_type == InvoiceType.GST

    def can_transition_to(self, new_status: VoucherStatus) -> bool:
        """Check if a status transition is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<Voucher {self.voucher_number} {self.voucher_type.value}/"
            f"{self.payment_type.value} total={self.total} ({self.status.value})>"
        )


class VoucherItem(Base):
    __tablename__ = "voucher_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    voucher_id: Mapped[int] = mapped_column(
        ForeignKey("vouchers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    item_name: Mapped[str] = mapped_column(String(100), nullable=False)
    metal_type: Mapped[MetalType] = mapped_column(
        SAEnum(MetalType, name="metal_type_enum"),
        nullable=False,
    )
    pieces: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    gross_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    less_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    net_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    melting: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    wastage: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    fine_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    labour_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    hsn_code: Mapped[str] = mapped_column(
        String(10), nullable=False, default="7108"
    )

    voucher: Mapped["Voucher"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<VoucherItem {self.item_name} {self.metal_type.value} fine={self.fine_weight}>"
