"""
Settlement model.

A standalone metal settlement against a ledger, not tied to a sale.
Deleting a settlement is a soft delete; is_deleted is terminal.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, ForeignKey, Text,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from bullion_ledger.models.base import Base
from bullion_ledger.models.enums import MetalType, SettlementDirection
from bullion_ledger.models.snapshot import ReversalSnapshotMixin


class Settlement(ReversalSnapshotMixin, Base):
    __tablename__ = "settlements"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    ledger_id: Mapped[int] = mapped_column(
        ForeignKey("ledgers.id"), nullable=False, index=True
    )
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    metal_type: Mapped[MetalType] = mapped_column(
        SAEnum(MetalType, name="metal_type_enum"),
        nullable=False,
    )
    direction: Mapped[SettlementDirection] = mapped_column(
        SAEnum(
            SettlementDirection,
            name="settlement_direction_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=SettlementDirection.PAYMENT,
    )
    # money_to_gold / money_to_silver style conversion
    is_money_conversion: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    metal_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    fine_given: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    balance_before: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    balance_after_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    balance_after_fine: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    narration: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    def __repr__(self) -> str:
        return (
            f"<Settlement {self.direction.value} {self.metal_type.value} "
            f"fine={self.fine_given} amount={self.amount}>"
        )
