"""
Pydantic schemas for settlements and karigar transactions.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bullion_ledger.models.enums import (
    KarigarTransactionType,
    MetalType,
    SettlementDirection,
)


class SettlementCreate(BaseModel):
    """
    A metal settlement against a ledger.

    fine_given and metal_rate may be negative for corrections.
    amount is only read for money conversions; otherwise it is
    fine_given x metal_rate.
    """
    ledger_id: int | None = None
    date: datetime | None = None
    metal_type: MetalType
    direction: SettlementDirection = SettlementDirection.PAYMENT
    is_money_conversion: bool = False
    metal_rate: Decimal = Decimal("0")
    fine_given: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    narration: str = ""


class SettlementResponse(BaseModel):
    id: int
    ledger_id: int
    customer_name: str
    date: datetime
    metal_type: MetalType
    direction: SettlementDirection
    is_money_conversion: bool
    metal_rate: Decimal
    fine_given: Decimal
    amount: Decimal
    balance_before: Decimal
    balance_after_amount: Decimal
    balance_after_fine: Decimal
    narration: str
    is_deleted: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class KarigarCreate(BaseModel):
    date: datetime | None = None
    type: KarigarTransactionType
    karigar_name: str = Field(min_length=1, max_length=100)
    item_name: str = Field(min_length=1, max_length=100)
    metal_type: MetalType
    fine_weight: Decimal
    charge_amount: Decimal = Decimal("0")
    narration: str = ""


class KarigarResponse(BaseModel):
    id: int
    date: datetime
    type: KarigarTransactionType
    karigar_name: str
    item_name: str
    metal_type: MetalType
    fine_weight: Decimal
    charge_amount: Decimal
    narration: str
    stock_restored: bool
    is_deleted: bool
    created_at: datetime

    model_config = {"from_attributes": True}
