"""
Pydantic schemas for stock operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class StockAddRequest(BaseModel):
    gold: Decimal = Field(default=Decimal("0"), ge=0)
    silver: Decimal = Field(default=Decimal("0"), ge=0)
    cash_amount: Decimal = Field(default=Decimal("0"), ge=0)
    date: datetime | None = None


class DailyRatesRequest(BaseModel):
    gold_rate: Decimal = Field(default=Decimal("0"), ge=0)
    silver_rate: Decimal = Field(default=Decimal("0"), ge=0)


class StockResponse(BaseModel):
    gold: Decimal
    silver: Decimal
    cash_in_hand: Decimal
    gold_rate: Decimal
    silver_rate: Decimal
    rates_updated_at: datetime | None
    updated_at: datetime

    model_config = {"from_attributes": True}
