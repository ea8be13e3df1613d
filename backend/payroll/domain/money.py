from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer

ZERO = Decimal("0")
CENT = Decimal("0.01")
# Numeric(12, 2) columns hold at most ten integer digits
MAX_AMOUNT = Decimal("1e10")


def to_decimal(value: Any) -> Decimal:
    """Coerce a number or numeric string to ``Decimal``.

    Anything that cannot be read as a finite number (``None``, garbage
    strings, NaN, infinities, containers) becomes zero instead of raising.
    So does anything too large to store as an amount.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO
    if not number.is_finite() or abs(number) >= MAX_AMOUNT:
        return ZERO
    return number


def finite(value: Decimal) -> Decimal:
    """Treat NaN and infinities as zero."""
    return value if value.is_finite() else ZERO


def cents(value: Decimal) -> Decimal:
    return finite(value).quantize(CENT, rounding=ROUND_HALF_UP)


# Decimal on the way in (coerce-or-zero), plain float in JSON responses
Money = Annotated[
    Decimal,
    BeforeValidator(to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]
