"""
Ledger model.

One ledger per counterparty per tenant. The running balance is a
compound quantity: cash and credit money components, a derived
total amount, and separate gold and silver fine weights.

Only the balance model (services/balances.py) writes the balance
columns. amount is always cash_balance + credit_balance.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from bullion_ledger.models.base import Base
from bullion_ledger.models.enums import LedgerType


class Ledger(Base):
    __tablename__ = "ledgers"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone_number: Mapped[str] = mapped_column(
        String(10), nullable=False, default=""
    )
    ledger_type: Mapped[LedgerType] = mapped_column(
        SAEnum(LedgerType, name="ledger_type_enum", create_constraint=True),
        nullable=False,
        default=LedgerType.REGULAR,
    )

    # Opening balance: the reference point for resets and replays
    opening_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    opening_gold_fine_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    opening_silver_fine_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )

    # Running balances
    gold_fine_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    silver_fine_weight: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    cash_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )

    has_vouchers: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def is_gst(self) -> bool:
        return self.ledger_type == LedgerType.GST

    def __repr__(self) -> str:
        return (
            f"<Ledger {self.name} amount={self.amount} "
            f"gold={self.gold_fine_weight} silver={self.silver_fine_weight}>"
        )
