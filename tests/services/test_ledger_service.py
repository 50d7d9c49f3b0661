"""
Comprehensive tests for the LedgerService.

Tests cover:
- Ledger creation from an opening balance
- Opening balance updates before and after posting
- Purging a ledger's records
- Deletion rules
- Balance recomputation and total repair
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from bullion_ledger.errors import InvalidError, NotFoundError
from bullion_ledger.models.enums import LedgerType
from bullion_ledger.models.ledger import Ledger
from bullion_ledger.models.settlement import Settlement
from bullion_ledger.models.snapshot import BalanceState
from bullion_ledger.models.voucher import Voucher
from bullion_ledger.schemas.ledger import LedgerCreate, OpeningBalance
from bullion_ledger.services.balances import capture_state, restore_state
from bullion_ledger.services.ledger_service import LedgerService
from bullion_ledger.services.reversal_engine import ReversalEngine
from bullion_ledger.services.stock_service import StockService
from bullion_ledger.services.transaction_processor import TransactionProcessor

from conftest import make_ledger, make_tenant, seed_stock


def post_activity(db_session, tenant, ledger):
    """Credit sale, gold receipt, then an add_cash against the ledger."""
    processor = TransactionProcessor(db_session)
    sale = processor.create_voucher(tenant.id, {
        "ledger_id": ledger.id, "payment_type": "credit",
        "items": [{"item_name": "Ring", "metal_type": "gold",
                   "fine_weight": "10", "amount": "50000"}],
    })
    receipt = processor.create_settlement(tenant.id, {
        "ledger_id": ledger.id, "metal_type": "gold", "direction": "receipt",
        "fine_given": "2", "metal_rate": "100",
    })
    payment = processor.create_voucher(tenant.id, {
        "ledger_id": ledger.id, "payment_type": "add_cash", "cash_received": "500",
    })
    return sale, receipt, payment


# --- Creation ---

class TestCreateLedger:

    def test_balances_start_at_opening(self, db_session, tenant):
        ledger = make_ledger(db_session, tenant, amount="1500", gold="2.5", silver="40")

        assert ledger.id is not None
        assert ledger.cash_balance == Decimal("1500")
        assert ledger.credit_balance == Decimal("0")
        assert ledger.amount == Decimal("1500")
        assert ledger.gold_fine_weight == Decimal("2.5")
        assert ledger.silver_fine_weight == Decimal("40")
        assert ledger.has_vouchers is False

    def test_gst_ledger_starts_at_zero(self, db_session, tenant):
        ledger = make_ledger(db_session, tenant, amount="1500", ledger_type=LedgerType.GST)

        assert ledger.opening_amount == Decimal("1500")
        assert ledger.cash_balance == Decimal("0")
        assert ledger.amount == Decimal("0")

    def test_phone_number_is_normalised(self):
        request = LedgerCreate(name="  Ramesh ", phone_number="98765-43210")
        assert request.name == "Ramesh"
        assert request.phone_number == "9876543210"

    def test_short_phone_number_rejected(self):
        with pytest.raises(ValidationError):
            LedgerCreate(name="Ramesh", phone_number="12345")

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            LedgerCreate(name="   ")

    def test_unknown_tenant(self, db_session):
        with pytest.raises(NotFoundError):
            LedgerService(db_session).create_ledger(99, LedgerCreate(name="Ramesh"))


class TestGetLedger:

    def test_ledgers_are_tenant_scoped(self, db_session, tenant, ledger):
        other = make_tenant(db_session, name="Other")

        assert LedgerService(db_session).get_ledger(tenant.id, ledger.id).id == ledger.id
        with pytest.raises(NotFoundError):
            LedgerService(db_session).get_ledger(other.id, ledger.id)


# --- Opening balance ---

class TestUpdateOpeningBalance:

    def test_balances_follow_while_unused(self, db_session, tenant, ledger):
        LedgerService(db_session).update_opening_balance(
            tenant.id, ledger.id, OpeningBalance(amount=Decimal("700"), gold_fine_weight=Decimal("1"))
        )

        assert ledger.opening_amount == Decimal("700")
        assert ledger.cash_balance == Decimal("700")
        assert ledger.gold_fine_weight == Decimal("1")

    def test_balances_kept_once_posted(self, db_session, tenant, ledger):
        seed_stock(db_session, tenant, gold="10")
        post_activity(db_session, tenant, ledger)
        before = capture_state(ledger)

        LedgerService(db_session).update_opening_balance(
            tenant.id, ledger.id, OpeningBalance(amount=Decimal("700"))
        )

        assert ledger.opening_amount == Decimal("700")
        assert capture_state(ledger) == before


# --- Purge ---

class TestPurgeTransactions:

    def test_purge_resets_to_opening_and_keeps_stock(self, db_session, tenant):
        ledger = make_ledger(db_session, tenant, amount="1000")
        seed_stock(db_session, tenant, gold="10")
        post_activity(db_session, tenant, ledger)
        stock_before = StockService(db_session).get_stock(tenant.id).gold

        LedgerService(db_session).purge_transactions(tenant.id, ledger.id)
        db_session.expire_all()

        assert db_session.query(Voucher).count() == 0
        assert db_session.query(Settlement).count() == 0
        assert ledger.cash_balance == Decimal("1000")
        assert ledger.credit_balance == Decimal("0")
        assert ledger.gold_fine_weight == Decimal("0")
        assert ledger.has_vouchers is False
        assert StockService(db_session).get_stock(tenant.id).gold == stock_before

    def test_purge_leaves_other_ledgers(self, db_session, tenant, ledger):
        other = make_ledger(db_session, tenant, name="Suresh")
        TransactionProcessor(db_session).create_voucher(tenant.id, {
            "ledger_id": other.id, "payment_type": "add_cash", "cash_received": "10",
        })

        LedgerService(db_session).purge_transactions(tenant.id, ledger.id)

        assert db_session.query(Voucher).count() == 1


# --- Delete ---

class TestDeleteLedger:

    def test_delete_empty_ledger(self, db_session, tenant, ledger):
        ledger_id = ledger.id
        LedgerService(db_session).delete_ledger(tenant.id, ledger_id)
        assert db_session.get(Ledger, ledger_id) is None

    def test_ledger_with_vouchers_cannot_be_deleted(self, db_session, tenant, ledger):
        TransactionProcessor(db_session).create_voucher(tenant.id, {
            "ledger_id": ledger.id, "payment_type": "add_cash", "cash_received": "10",
        })

        with pytest.raises(InvalidError, match="Cannot delete ledger with transactions"):
            LedgerService(db_session).delete_ledger(tenant.id, ledger.id)

    def test_soft_deleted_settlements_do_not_block(self, db_session, tenant, ledger):
        settlement = TransactionProcessor(db_session).create_settlement(tenant.id, {
            "ledger_id": ledger.id, "metal_type": "silver", "direction": "receipt",
            "fine_given": "5",
        })
        ReversalEngine(db_session).delete_settlement(tenant.id, settlement.id)

        LedgerService(db_session).delete_ledger(tenant.id, ledger.id)

        assert db_session.query(Settlement).count() == 0
        assert db_session.query(Ledger).count() == 0


# --- Recompute ---

class TestRecomputeLedgerBalances:

    def test_replay_matches_posted_balances(self, db_session, tenant):
        ledger = make_ledger(db_session, tenant, amount="1000")
        seed_stock(db_session, tenant, gold="10")
        post_activity(db_session, tenant, ledger)
        expected = capture_state(ledger)
        assert expected == BalanceState(
            gold_fine_weight=Decimal("12"),
            silver_fine_weight=Decimal("0"),
            cash_balance=Decimal("50500"),
            credit_balance=Decimal("200"),
        )

        restore_state(ledger, BalanceState(Decimal("1"), Decimal("2"), Decimal("3"), Decimal("4")))
        db_session.commit()

        recomputed, fixed = LedgerService(db_session).recompute_ledger_balances(
            tenant.id, ledger.id
        )

        assert fixed == 0
        assert capture_state(recomputed) == expected
        assert recomputed.amount == Decimal("50700")

    def test_retired_records_are_skipped(self, db_session, tenant, ledger):
        seed_stock(db_session, tenant, gold="10")
        sale, receipt, payment = post_activity(db_session, tenant, ledger)
        engine = ReversalEngine(db_session)
        engine.cancel_voucher(tenant.id, payment.id)
        engine.delete_settlement(tenant.id, receipt.id)

        recomputed, _ = LedgerService(db_session).recompute_ledger_balances(
            tenant.id, ledger.id
        )

        assert recomputed.cash_balance == Decimal("50000")
        assert recomputed.credit_balance == Decimal("0")
        assert recomputed.gold_fine_weight == Decimal("10")
        assert recomputed.has_vouchers is True

    def test_zero_totals_are_repaired(self, db_session, tenant, ledger):
        seed_stock(db_session, tenant, gold="10")
        sale, _, _ = post_activity(db_session, tenant, ledger)
        sale.total = Decimal("0")
        db_session.commit()

        recomputed, fixed = LedgerService(db_session).recompute_ledger_balances(
            tenant.id, ledger.id
        )

        assert fixed == 1
        assert db_session.get(Voucher, sale.id).total == Decimal("50000")
        assert recomputed.cash_balance == Decimal("49500")

    def test_gst_ledger_recomputes_to_zero(self, db_session, tenant):
        ledger = make_ledger(db_session, tenant, ledger_type=LedgerType.GST)
        ledger.cash_balance = Decimal("10")
        ledger.amount = Decimal("10")
        db_session.commit()

        recomputed, _ = LedgerService(db_session).recompute_ledger_balances(
            tenant.id, ledger.id
        )

        assert recomputed.amount == Decimal("0")
        assert recomputed.cash_balance == Decimal("0")
