"""
Effect table — what each kind of record does to a ledger and to stock.

Pure functions only: no session, no I/O. The transaction processor
applies these effects, the legacy reversal path inverts them, and
ledger recomputation replays them.

Symbols used below:
    T = voucher total
    C = cash actually exchanged (cash_received)
    F = fine weight of the voucher's items, per metal
    R = metal rate
"""

from dataclasses import dataclass
from decimal import Decimal

from bullion_ledger.errors import InvalidError
from bullion_ledger.models.enums import (
    MetalType,
    PaymentType,
    SettlementDirection,
    SettlementTarget,
    StockMode,
    VoucherType,
)
from bullion_ledger.models.snapshot import StockAdjustment
from bullion_ledger.numeric import ZERO, quantize, to_number
from bullion_ledger.services.balances import BalanceDelta

DEFAULT_HSN_CODES = {
    MetalType.GOLD: "7108",
    MetalType.SILVER: "7106",
}


@dataclass(frozen=True)
class CleanItem:
    item_name: str
    metal_type: MetalType
    pieces: int
    gross_weight: Decimal
    less_weight: Decimal
    net_weight: Decimal
    melting: Decimal
    wastage: Decimal
    fine_weight: Decimal
    labour_rate: Decimal
    amount: Decimal
    hsn_code: str


def _metal(value) -> MetalType | None:
    try:
        return MetalType(getattr(value, "value", value))
    except ValueError:
        return None


def clean_items(raw_items: list[dict]) -> list[CleanItem]:
    """
    Normalise voucher items.

    Every item needs a name and a gold/silver metal. Pieces is at
    least 1; less weight, melting and wastage are clamped at zero.
    Weights themselves may be negative (returned goods).
    """
    cleaned = []
    for index, raw in enumerate(raw_items or [], start=1):
        name = str(raw.get("item_name") or "").strip()
        metal = _metal(raw.get("metal_type"))
        if not name or metal is None:
            raise InvalidError(f"Invalid item at row {index}")

        pieces = to_number(raw.get("pieces"), Decimal("1"))
        cleaned.append(CleanItem(
            item_name=name,
            metal_type=metal,
            pieces=max(1, int(pieces)),
            gross_weight=to_number(raw.get("gross_weight")),
            less_weight=max(ZERO, to_number(raw.get("less_weight"))),
            net_weight=to_number(raw.get("net_weight")),
            melting=max(ZERO, to_number(raw.get("melting"))),
            wastage=max(ZERO, to_number(raw.get("wastage"))),
            fine_weight=to_number(raw.get("fine_weight")),
            labour_rate=to_number(raw.get("labour_rate")),
            amount=to_number(raw.get("amount")),
            hsn_code=raw.get("hsn_code") or DEFAULT_HSN_CODES[metal],
        ))
    return cleaned


def fine_by_metal(items) -> StockAdjustment:
    """Sum the items' fine weight per metal."""
    gold = ZERO
    silver = ZERO
    for item in items:
        if item.metal_type == MetalType.GOLD:
            gold += to_number(item.fine_weight)
        elif item.metal_type == MetalType.SILVER:
            silver += to_number(item.fine_weight)
    return StockAdjustment(gold=gold, silver=silver)


def metal_adjustment(metal_type: MetalType, fine: Decimal) -> StockAdjustment:
    if metal_type == MetalType.GOLD:
        return StockAdjustment(gold=fine)
    return StockAdjustment(silver=fine)


def billing_total(
    items,
    stone_amount: Decimal = ZERO,
    fine_amount: Decimal = ZERO,
    gst_total: Decimal = ZERO,
) -> Decimal:
    """items + stone + fine adjustment + pre-computed GST."""
    items_total = sum((to_number(item.amount) for item in items), ZERO)
    return quantize(
        items_total
        + to_number(stone_amount)
        + to_number(fine_amount)
        + to_number(gst_total)
    )


def voucher_total(
    payment_type: PaymentType,
    items,
    stone_amount: Decimal,
    fine_amount: Decimal,
    gst_total: Decimal,
    cash_received: Decimal,
) -> Decimal:
    """Settlement-style vouchers carry their value in cash_received."""
    if not payment_type.is_billing:
        return to_number(cash_received)
    return billing_total(items, stone_amount, fine_amount, gst_total)


def needs_total_repair(voucher) -> bool:
    return voucher.payment_type.is_billing and not to_number(voucher.total)


def repair_total(voucher) -> bool:
    """
    Recompute a billing voucher's zero/missing total from its parts.

    Returns True if the voucher was changed.
    """
    if not needs_total_repair(voucher):
        return False
    voucher.total = billing_total(
        voucher.items, voucher.stone_amount, voucher.fine_amount, voucher.gst_total
    )
    return True


def voucher_stock_adjustment(
    payment_type: PaymentType,
    items,
    stock_mode: StockMode = StockMode.BULK,
) -> StockAdjustment:
    """Only billing vouchers move bulk stock, and not in item mode."""
    if stock_mode == StockMode.ITEM or not payment_type.is_billing:
        return StockAdjustment()
    return fine_by_metal(items)


def skips_balance(invoice_is_gst: bool, ledger_is_gst: bool) -> bool:
    """GST invoices and GST ledgers never move ledger balances."""
    return invoice_is_gst or ledger_is_gst


def voucher_delta(
    payment_type: PaymentType,
    voucher_type: VoucherType,
    total: Decimal,
    cash_received: Decimal,
    fine: StockAdjustment,
    gold_rate: Decimal = ZERO,
    silver_rate: Decimal = ZERO,
    target: SettlementTarget = SettlementTarget.CASH,
) -> BalanceDelta:
    """
    Signed balance change for one voucher.

    sale cash        cash += T - C
    sale credit      cash += T, fine += F
    purchase cash    cash -= T - C
    purchase credit  cash -= T, fine -= F
    add_cash         target -= T
    add_gold/silver  fine -= T
    money_to_metal   cash -= T, fine -= T / (R or 1)
    """
    total = to_number(total)
    cash_received = to_number(cash_received)
    sign = -1 if voucher_type == VoucherType.PURCHASE else 1

    if payment_type == PaymentType.CASH:
        return BalanceDelta(cash=sign * (total - cash_received))

    if payment_type == PaymentType.CREDIT:
        return BalanceDelta(
            cash=sign * total,
            gold=sign * fine.gold,
            silver=sign * fine.silver,
        )

    if payment_type == PaymentType.ADD_CASH:
        if target == SettlementTarget.CREDIT:
            return BalanceDelta(credit=-total)
        return BalanceDelta(cash=-total)

    if payment_type == PaymentType.ADD_GOLD:
        return BalanceDelta(gold=-total)

    if payment_type == PaymentType.ADD_SILVER:
        return BalanceDelta(silver=-total)

    if payment_type == PaymentType.MONEY_TO_GOLD:
        rate = to_number(gold_rate) or Decimal("1")
        return BalanceDelta(cash=-total, gold=-quantize(total / rate))

    if payment_type == PaymentType.MONEY_TO_SILVER:
        rate = to_number(silver_rate) or Decimal("1")
        return BalanceDelta(cash=-total, silver=-quantize(total / rate))

    raise InvalidError(f"Invalid payment type: {payment_type}")


def settlement_amount(
    fine_given: Decimal,
    metal_rate: Decimal,
    is_money_conversion: bool,
    requested_amount: Decimal = ZERO,
) -> Decimal:
    if is_money_conversion:
        return to_number(requested_amount)
    return quantize(to_number(fine_given) * to_number(metal_rate))


def settlement_delta(
    direction: SettlementDirection,
    metal_type: MetalType,
    fine_given: Decimal,
    amount: Decimal,
    is_money_conversion: bool = False,
) -> BalanceDelta:
    """
    receipt           credit += amount, fine += given
    payment           credit -= amount, fine -= given
    money conversion  credit -= amount, fine += given
    """
    if is_money_conversion:
        fine_sign, amount_sign = 1, -1
    elif direction == SettlementDirection.RECEIPT:
        fine_sign, amount_sign = 1, 1
    else:
        fine_sign, amount_sign = -1, -1

    fine = fine_sign * to_number(fine_given)
    return BalanceDelta(
        credit=amount_sign * to_number(amount),
        gold=fine if metal_type == MetalType.GOLD else ZERO,
        silver=fine if metal_type == MetalType.SILVER else ZERO,
    )


def settlement_stock_adjustment(
    direction: SettlementDirection,
    metal_type: MetalType,
    fine_given: Decimal,
    is_money_conversion: bool = False,
) -> StockAdjustment:
    """
    Signed adjustment in sale orientation: positive leaves stock.

    A payment hands metal out; a receipt or a money conversion
    brings it in.
    """
    fine = to_number(fine_given)
    if direction == SettlementDirection.PAYMENT and not is_money_conversion:
        return metal_adjustment(metal_type, fine)
    return metal_adjustment(metal_type, -fine)
