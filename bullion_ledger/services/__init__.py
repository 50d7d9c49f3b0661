"""Business logic services."""

from bullion_ledger.services.atomicity import AtomicityCoordinator
from bullion_ledger.services.ledger_service import LedgerService
from bullion_ledger.services.reversal_engine import ReversalEngine
from bullion_ledger.services.sequence_service import SequenceService
from bullion_ledger.services.stock_service import StockService
from bullion_ledger.services.transaction_processor import TransactionProcessor

__all__ = [
    "AtomicityCoordinator",
    "LedgerService",
    "ReversalEngine",
    "SequenceService",
    "StockService",
    "TransactionProcessor",
]
