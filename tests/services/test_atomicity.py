"""
Tests for the AtomicityCoordinator.

Tests cover:
- Capability detection and forced modes
- Rollback of every write when a grouped operation fails
- Stock compensation when atomic groups are unavailable
- Compensation failure reporting both errors
- Error classification
"""

from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from bullion_ledger.config import get_settings
from bullion_ledger.errors import (
    CompensationError,
    ConflictError,
    InternalError,
    InvalidError,
)
from bullion_ledger.models.settlement import Settlement
from bullion_ledger.models.stock import Stock
from bullion_ledger.models.voucher import Voucher
from bullion_ledger.services.atomicity import AtomicityCoordinator
from bullion_ledger.services.stock_service import StockService
from bullion_ledger.services.transaction_processor import TransactionProcessor

from conftest import engine, seed_stock

SALE = {
    "payment_type": "credit",
    "items": [{"item_name": "Necklace", "metal_type": "gold",
               "fine_weight": "10", "amount": "50000"}],
}


def failing_apply_delta(ledger, delta):
    raise RuntimeError("disk unavailable")


def gold_stock(db_session, tenant):
    return StockService(db_session).get_stock(tenant.id).gold


class TestSupportsAtomicGroups:

    def test_transactional_bind_supports_groups(self, db_session):
        assert AtomicityCoordinator(db_session).supports_atomic_groups() is True

    def test_autocommit_bind_does_not(self):
        session = Session(bind=engine.execution_options(isolation_level="AUTOCOMMIT"))
        try:
            assert AtomicityCoordinator(session).supports_atomic_groups() is False
        finally:
            session.close()

    def test_explicit_mode_wins(self, db_session):
        assert AtomicityCoordinator(db_session, grouped=False).supports_atomic_groups() is False

    def test_setting_forces_mode(self, db_session, monkeypatch):
        monkeypatch.setattr(get_settings(), "ATOMIC_GROUPS", "off")
        assert AtomicityCoordinator(db_session).supports_atomic_groups() is False


class TestGroupedFailure:

    def test_failure_rolls_back_stock_record_and_ledger(
        self, db_session, tenant, ledger, monkeypatch
    ):
        seed_stock(db_session, tenant, gold="10")
        monkeypatch.setattr(
            "bullion_ledger.services.transaction_processor.apply_delta",
            failing_apply_delta,
        )

        with pytest.raises(InternalError, match="disk unavailable"):
            TransactionProcessor(db_session).create_voucher(
                tenant.id, dict(SALE, ledger_id=ledger.id)
            )

        assert gold_stock(db_session, tenant) == Decimal("10")
        assert db_session.query(Voucher).count() == 0
        assert ledger.cash_balance == Decimal("0")

    def test_business_error_passes_through(self, db_session, ledger):
        def work():
            ledger.cash_balance = Decimal("999")
            db_session.flush()
            raise InvalidError("nope")

        with pytest.raises(InvalidError, match="nope"):
            AtomicityCoordinator(db_session).with_optional_atomic_group(work)

        assert ledger.cash_balance == Decimal("0")

    def test_unique_violation_becomes_conflict(self, db_session, tenant):
        seed_stock(db_session, tenant, gold="1")

        def work():
            db_session.add(Stock(tenant_id=tenant.id))
            db_session.flush()

        with pytest.raises(ConflictError):
            AtomicityCoordinator(db_session).with_optional_atomic_group(work)


class TestUngroupedCompensation:

    def processor(self, db_session):
        return TransactionProcessor(
            db_session, coordinator=AtomicityCoordinator(db_session, grouped=False)
        )

    def test_success_without_groups(self, db_session, tenant, ledger):
        seed_stock(db_session, tenant, gold="10")

        self.processor(db_session).create_voucher(tenant.id, dict(SALE, ledger_id=ledger.id))

        assert ledger.cash_balance == Decimal("50000")
        assert gold_stock(db_session, tenant) == Decimal("0")

    def test_failed_operation_returns_stock(self, db_session, tenant, ledger, monkeypatch):
        seed_stock(db_session, tenant, gold="10")
        monkeypatch.setattr(
            "bullion_ledger.services.transaction_processor.apply_delta",
            failing_apply_delta,
        )

        with pytest.raises(InternalError):
            self.processor(db_session).create_voucher(
                tenant.id, dict(SALE, ledger_id=ledger.id)
            )

        assert gold_stock(db_session, tenant) == Decimal("10")
        assert ledger.cash_balance == Decimal("0")

    def test_failed_compensation_reports_both(self, db_session, tenant, ledger, monkeypatch):
        seed_stock(db_session, tenant, gold="10")
        monkeypatch.setattr(
            "bullion_ledger.services.transaction_processor.apply_delta",
            failing_apply_delta,
        )

        def broken_restore(self, tenant_id, gold=0, silver=0):
            raise RuntimeError("stock table locked")

        monkeypatch.setattr(StockService, "restore", broken_restore)

        with pytest.raises(CompensationError) as exc_info:
            self.processor(db_session).create_voucher(
                tenant.id, dict(SALE, ledger_id=ledger.id)
            )

        assert isinstance(exc_info.value.original, InternalError)
        assert "stock table locked" in exc_info.value.message
        assert gold_stock(db_session, tenant) == Decimal("0")

    def test_failed_voucher_leaves_no_record(self, db_session, tenant, ledger, monkeypatch):
        seed_stock(db_session, tenant, gold="10")
        processor = self.processor(db_session)
        monkeypatch.setattr(
            "bullion_ledger.services.transaction_processor.apply_delta",
            failing_apply_delta,
        )

        with pytest.raises(InternalError):
            processor.create_voucher(tenant.id, dict(SALE, ledger_id=ledger.id))

        assert db_session.query(Voucher).count() == 0
        assert gold_stock(db_session, tenant) == Decimal("10")

        monkeypatch.undo()
        voucher = processor.create_voucher(tenant.id, dict(SALE, ledger_id=ledger.id))
        processor.reversal.cancel_voucher(tenant.id, voucher.id)

        assert gold_stock(db_session, tenant) == Decimal("10")
        assert ledger.cash_balance == Decimal("0")

    def test_failed_settlement_leaves_no_record(self, db_session, tenant, ledger, monkeypatch):
        seed_stock(db_session, tenant)
        monkeypatch.setattr(
            "bullion_ledger.services.transaction_processor.apply_delta",
            failing_apply_delta,
        )

        with pytest.raises(InternalError):
            self.processor(db_session).create_settlement(tenant.id, {
                "ledger_id": ledger.id, "direction": "receipt", "metal_type": "silver",
                "fine_given": "100", "metal_rate": "80",
            })

        assert db_session.query(Settlement).count() == 0
        assert StockService(db_session).get_stock(tenant.id).silver == Decimal("0")
        assert ledger.silver_fine_weight == Decimal("0")
