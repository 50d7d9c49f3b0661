"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from bullion_ledger.models.base import Base
from bullion_ledger.models.enums import (
    InvoiceType,
    KarigarTransactionType,
    LedgerType,
    MetalType,
    PaymentType,
    RecordKind,
    SettlementDirection,
    StockMode,
    VoucherStatus,
    VoucherType,
)
from bullion_ledger.models.tenant import Tenant, VoucherSequence
from bullion_ledger.models.ledger import Ledger
from bullion_ledger.models.stock import Stock, StockInput
from bullion_ledger.models.voucher import Voucher, VoucherItem
from bullion_ledger.models.settlement import Settlement
from bullion_ledger.models.karigar import KarigarTransaction

__all__ = [
    "Base",
    "InvoiceType",
    "KarigarTransactionType",
    "LedgerType",
    "MetalType",
    "PaymentType",
    "RecordKind",
    "SettlementDirection",
    "StockMode",
    "VoucherStatus",
    "VoucherType",
    "Tenant",
    "VoucherSequence",
    "Ledger",
    "Stock",
    "StockInput",
    "Voucher",
    "VoucherItem",
    "Settlement",
    "KarigarTransaction",
]
