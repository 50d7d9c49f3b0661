"""
Karigar (artisan) transaction model.

Metal handed to or received back from an artisan. It moves stock
only; a karigar has no ledger. Deletion is a soft delete.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, ForeignKey, Text,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from bullion_ledger.models.base import Base
from bullion_ledger.models.enums import KarigarTransactionType, MetalType
from bullion_ledger.models.snapshot import StockAdjustment


class KarigarTransaction(Base):
    __tablename__ = "karigar_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    type: Mapped[KarigarTransactionType] = mapped_column(
        SAEnum(
            KarigarTransactionType,
            name="karigar_transaction_type_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    karigar_name: Mapped[str] = mapped_column(String(100), nullable=False)
    item_name: Mapped[str] = mapped_column(String(100), nullable=False)
    metal_type: Mapped[MetalType] = mapped_column(
        SAEnum(MetalType, name="metal_type_enum"),
        nullable=False,
    )
    fine_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    charge_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    narration: Mapped[str] = mapped_column(Text, nullable=False, default="")
    stock_restored: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    @property
    def is_active(self) -> bool:
        return not self.is_deleted

    @property
    def stock_adjustment(self) -> StockAdjustment:
        """Fine weight that left stock (positive) or came back (negative)."""
        sign = 1 if self.type == KarigarTransactionType.GIVEN else -1
        if self.metal_type == MetalType.GOLD:
            return StockAdjustment(gold=sign * self.fine_weight)
        return StockAdjustment(silver=sign * self.fine_weight)

    def __repr__(self) -> str:
        return (
            f"<KarigarTransaction {self.type.value} {self.karigar_name} "
            f"{self.metal_type.value} fine={self.fine_weight}>"
        )
