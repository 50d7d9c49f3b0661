"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class LedgerType(str, enum.Enum):
    """GST ledgers are invoiced but never carry running balances."""
    REGULAR = "regular"
    GST = "gst"


class MetalType(str, enum.Enum):
    GOLD = "gold"
    SILVER = "silver"


class VoucherType(str, enum.Enum):
    """sale = shop sells to customer, purchase = shop buys old metal."""
    SALE = "sale"
    PURCHASE = "purchase"


class InvoiceType(str, enum.Enum):
    NORMAL = "normal"
    GST = "gst"


class PaymentType(str, enum.Enum):
    """How a voucher affects the customer's balance."""
    CASH = "cash"
    CREDIT = "credit"
    ADD_CASH = "add_cash"
    ADD_GOLD = "add_gold"
    ADD_SILVER = "add_silver"
    MONEY_TO_GOLD = "money_to_gold"
    MONEY_TO_SILVER = "money_to_silver"

    @property
    def is_billing(self) -> bool:
        return self in BILLING_PAYMENT_TYPES


BILLING_PAYMENT_TYPES = frozenset({PaymentType.CASH, PaymentType.CREDIT})


class VoucherStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class SettlementDirection(str, enum.Enum):
    """receipt = customer gave fine, payment = customer took fine."""
    RECEIPT = "receipt"
    PAYMENT = "payment"


class KarigarTransactionType(str, enum.Enum):
    GIVEN = "given"
    RECEIVED = "received"


class StockMode(str, enum.Enum):
    """In item mode vouchers do not move bulk metal stock."""
    BULK = "bulk"
    ITEM = "item"


class RecordKind(str, enum.Enum):
    """The three kinds of commercial record the core processes."""
    VOUCHER = "voucher"
    SETTLEMENT = "settlement"
    KARIGAR = "karigar"


class SettlementTarget(str, enum.Enum):
    """Which monetary field an add_cash settlement reduces."""
    CASH = "cash"
    CREDIT = "credit"
