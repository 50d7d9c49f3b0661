"""
Tenant and voucher sequence models.

A tenant is one jewellery business. Onboarding, licensing and
authentication live outside this service; the core only reads
the settings that change how transactions are processed.
"""

from datetime import datetime

from sqlalchemy import (
    String, Boolean, DateTime, Integer, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from bullion_ledger.models.base import Base
from bullion_ledger.models.enums import StockMode


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    stock_mode: Mapped[StockMode] = mapped_column(
        SAEnum(StockMode, name="stock_mode_enum", create_constraint=True),
        nullable=False,
        default=StockMode.BULK,
    )
    voucher_auto_increment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Tenant {self.name} ({self.stock_mode.value})>"


class VoucherSequence(Base):
    """
    Per-tenant monotonic voucher number counter.

    Only SequenceService.allocate_sequence() writes to it, and
    always inside the same atomic group as the voucher it numbers.
    """

    __tablename__ = "voucher_sequences"

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"), primary_key=True
    )
    next_value: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )

    def __repr__(self) -> str:
        return f"<VoucherSequence tenant={self.tenant_id} next={self.next_value}>"
