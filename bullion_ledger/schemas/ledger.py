"""
Pydantic schemas for ledger operations.

Opening balances travel as one nested object. Running
balances are read-only: only the services write them.
"""

import re
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from bullion_ledger.models.enums import LedgerType


# --- Request Schemas ---

class OpeningBalance(BaseModel):
    """Where a ledger's running balance starts."""
    amount: Decimal = Field(default=Decimal("0"), decimal_places=4)
    gold_fine_weight: Decimal = Field(default=Decimal("0"), decimal_places=4)
    silver_fine_weight: Decimal = Field(default=Decimal("0"), decimal_places=4)


class LedgerCreate(BaseModel):
    """Request to open a ledger for a counterparty."""
    name: str = Field(min_length=1, max_length=100)
    phone_number: str = Field(default="", max_length=20)
    ledger_type: LedgerType = LedgerType.REGULAR
    opening_balance: OpeningBalance = Field(default_factory=OpeningBalance)

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("phone_number")
    @classmethod
    def phone_must_be_ten_digits(cls, v: str) -> str:
        digits = re.sub(r"\D", "", v or "")
        if digits and len(digits) != 10:
            raise ValueError("Phone number must be 10 digits")
        return digits


# --- Response Schemas ---

class LedgerResponse(BaseModel):
    id: int
    name: str
    phone_number: str
    ledger_type: LedgerType
    opening_amount: Decimal
    opening_gold_fine_weight: Decimal
    opening_silver_fine_weight: Decimal
    gold_fine_weight: Decimal
    silver_fine_weight: Decimal
    cash_balance: Decimal
    credit_balance: Decimal
    amount: Decimal
    has_vouchers: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RecalculateResponse(BaseModel):
    """Response after replaying a ledger from its opening balance."""
    success: bool = True
    vouchers_fixed: int
    ledger: LedgerResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str
