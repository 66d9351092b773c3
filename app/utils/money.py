from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def round_currency(value) -> Decimal:
    """Round half-up to cents. round_currency(round_currency(x)) == round_currency(x)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def ceil_whole(value) -> Decimal:
    return to_decimal(value).to_integral_value(rounding=ROUND_CEILING)


def floor_whole(value) -> Decimal:
    return to_decimal(value).to_integral_value(rounding=ROUND_FLOOR)
