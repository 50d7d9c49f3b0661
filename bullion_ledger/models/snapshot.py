"""
Reversal snapshot shared by every balance-bearing record.

A record stores the exact ledger balances it found before applying
its own effect, plus the stock adjustment it made. Undoing the record
later restores those values instead of computing an inverse.

Records written before snapshots existed have NULL snapshot columns;
the reversal engine falls back to arithmetic for them.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import Boolean, Numeric
from sqlalchemy.orm import Mapped, mapped_column


@dataclass(frozen=True)
class BalanceState:
    """An immutable copy of a ledger's balances."""
    gold_fine_weight: Decimal
    silver_fine_weight: Decimal
    cash_balance: Decimal
    credit_balance: Decimal

    @property
    def amount(self) -> Decimal:
        return self.cash_balance + self.credit_balance

    def as_dict(self) -> dict:
        return {
            "gold_fine_weight": self.gold_fine_weight,
            "silver_fine_weight": self.silver_fine_weight,
            "cash_balance": self.cash_balance,
            "credit_balance": self.credit_balance,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class StockAdjustment:
    """Signed fine weight moved per metal by one record."""
    gold: Decimal = Decimal("0")
    silver: Decimal = Decimal("0")

    @property
    def is_zero(self) -> bool:
        return self.gold == 0 and self.silver == 0


class ReversalSnapshotMixin:
    prev_gold_fine_weight: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    prev_silver_fine_weight: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    prev_cash_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    prev_credit_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    prev_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )

    stock_adjusted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    stock_adjustment_gold: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    stock_adjustment_silver: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    # Set once the stock adjustment has been undone; guards double reversal
    stock_restored: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    @property
    def previous_ledger_state(self) -> BalanceState | None:
        if self.prev_cash_balance is None:
            return None
        return BalanceState(
            gold_fine_weight=self.prev_gold_fine_weight or Decimal("0"),
            silver_fine_weight=self.prev_silver_fine_weight or Decimal("0"),
            cash_balance=self.prev_cash_balance,
            credit_balance=self.prev_credit_balance or Decimal("0"),
        )

    @previous_ledger_state.setter
    def previous_ledger_state(self, state: BalanceState | None) -> None:
        if state is None:
            self.prev_gold_fine_weight = None
            self.prev_silver_fine_weight = None
            self.prev_cash_balance = None
            self.prev_credit_balance = None
            self.prev_amount = None
            return
        self.prev_gold_fine_weight = state.gold_fine_weight
        self.prev_silver_fine_weight = state.silver_fine_weight
        self.prev_cash_balance = state.cash_balance
        self.prev_credit_balance = state.credit_balance
        self.prev_amount = state.amount

    @property
    def stored_stock_adjustment(self) -> StockAdjustment | None:
        if self.stock_adjustment_gold is None and self.stock_adjustment_silver is None:
            return None
        return StockAdjustment(
            gold=self.stock_adjustment_gold or Decimal("0"),
            silver=self.stock_adjustment_silver or Decimal("0"),
        )

    def record_stock_adjustment(self, adjustment: StockAdjustment) -> None:
        self.stock_adjustment_gold = adjustment.gold
        self.stock_adjustment_silver = adjustment.silver
        self.stock_adjusted = not adjustment.is_zero
        self.stock_restored = False
