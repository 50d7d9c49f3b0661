"""
Safe numeric coercion for untrusted input.

All money and weight arithmetic runs on Decimal quantized to four
places, matching the Numeric(19, 4) storage columns.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from bullion_ledger.errors import InvalidError

FOUR_PLACES = Decimal("0.0001")
ZERO = Decimal("0")


def quantize(value: Decimal) -> Decimal:
    """Round to four decimal places."""
    return value.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)


def _coerce(value) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not number.is_finite():
            return None
        return quantize(number)
    except (InvalidOperation, ValueError):
        # unparsable, or too large to hold four decimal places
        return None


def to_number(value, fallback=ZERO) -> Decimal | None:
    """
    Coerce a value to a finite Decimal.

    Anything unparsable, infinite or NaN yields the fallback,
    which may be None so callers can tell "missing" apart from zero.
    """
    number = _coerce(value)
    return fallback if number is None else number


def pick_number(*values) -> Decimal:
    """Return the first value that coerces to a finite number, else 0."""
    for value in values:
        number = _coerce(value)
        if number is not None:
            return number
    return ZERO


def require_number(value, field: str) -> Decimal:
    """Coerce a required numeric field or raise InvalidError."""
    number = _coerce(value)
    if number is None:
        raise InvalidError(f"Invalid {field} value")
    return number
