"""
Balance model — the only code that writes ledger balance columns.

A ledger balance has four independent fields (cash, credit, gold
fine weight, silver fine weight) and one derived field,
amount = cash_balance + credit_balance. Every mutator here
re-derives amount and then checks the invariant.
"""

from dataclasses import dataclass
from decimal import Decimal

from bullion_ledger.errors import InternalError
from bullion_ledger.models.enums import SettlementTarget
from bullion_ledger.models.ledger import Ledger
from bullion_ledger.models.snapshot import BalanceState
from bullion_ledger.numeric import ZERO, quantize


@dataclass(frozen=True)
class BalanceDelta:
    """Signed change to each independent balance field."""
    cash: Decimal = ZERO
    credit: Decimal = ZERO
    gold: Decimal = ZERO
    silver: Decimal = ZERO

    @property
    def is_zero(self) -> bool:
        return not (self.cash or self.credit or self.gold or self.silver)

    def inverted(self) -> "BalanceDelta":
        return BalanceDelta(
            cash=-self.cash,
            credit=-self.credit,
            gold=-self.gold,
            silver=-self.silver,
        )


def capture_state(ledger: Ledger) -> BalanceState:
    """Copy the ledger's current balances."""
    return BalanceState(
        gold_fine_weight=ledger.gold_fine_weight or ZERO,
        silver_fine_weight=ledger.silver_fine_weight or ZERO,
        cash_balance=ledger.cash_balance or ZERO,
        credit_balance=ledger.credit_balance or ZERO,
    )


def check_invariant(ledger: Ledger) -> None:
    """Raise InternalError if amount drifted from cash + credit."""
    expected = (ledger.cash_balance or ZERO) + (ledger.credit_balance or ZERO)
    if ledger.amount != expected:
        raise InternalError(
            f"Ledger {ledger.id} amount {ledger.amount} does not equal "
            f"cash {ledger.cash_balance} + credit {ledger.credit_balance}"
        )


def _write(
    ledger: Ledger,
    gold: Decimal,
    silver: Decimal,
    cash: Decimal,
    credit: Decimal,
) -> None:
    ledger.gold_fine_weight = quantize(gold)
    ledger.silver_fine_weight = quantize(silver)
    ledger.cash_balance = quantize(cash)
    ledger.credit_balance = quantize(credit)
    ledger.amount = ledger.cash_balance + ledger.credit_balance
    check_invariant(ledger)


def apply_delta(ledger: Ledger, delta: BalanceDelta) -> None:
    """Add the delta to the four independent fields."""
    current = capture_state(ledger)
    _write(
        ledger,
        gold=current.gold_fine_weight + delta.gold,
        silver=current.silver_fine_weight + delta.silver,
        cash=current.cash_balance + delta.cash,
        credit=current.credit_balance + delta.credit,
    )


def restore_state(ledger: Ledger, state: BalanceState) -> None:
    """Overwrite the balances verbatim with a stored snapshot."""
    _write(
        ledger,
        gold=state.gold_fine_weight,
        silver=state.silver_fine_weight,
        cash=state.cash_balance,
        credit=state.credit_balance,
    )


def opening_state(ledger: Ledger) -> BalanceState:
    """
    The state a ledger starts from.

    Cash takes the opening amount and credit always starts at zero.
    GST ledgers never carry balances.
    """
    if ledger.is_gst:
        return BalanceState(ZERO, ZERO, ZERO, ZERO)
    return BalanceState(
        gold_fine_weight=ledger.opening_gold_fine_weight or ZERO,
        silver_fine_weight=ledger.opening_silver_fine_weight or ZERO,
        cash_balance=ledger.opening_amount or ZERO,
        credit_balance=ZERO,
    )


def reset_to_zero(ledger: Ledger) -> None:
    restore_state(ledger, BalanceState(ZERO, ZERO, ZERO, ZERO))


def reset_to_opening(ledger: Ledger) -> None:
    if ledger.is_gst:
        reset_to_zero(ledger)
        return
    restore_state(ledger, opening_state(ledger))


def choose_settlement_target(ledger: Ledger) -> SettlementTarget:
    """
    Pick the monetary field an add_cash settlement reduces.

    Cash wins unless cash is exactly zero while credit is not.
    """
    cash = ledger.cash_balance or ZERO
    credit = ledger.credit_balance or ZERO
    if cash != 0 or credit == 0:
        return SettlementTarget.CASH
    return SettlementTarget.CREDIT
