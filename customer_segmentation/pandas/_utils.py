"""Money conversions between PurchaseRecord amounts and DataFrame columns."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def amount_to_float(amount: Decimal) -> float:
    return float(amount)


def float_to_amount(value: float) -> Decimal:
    """Read a DataFrame amount back as a Decimal rounded to the cent.

    The float goes through its shortest string form first, so values that
    were cents to begin with come back exactly.

    Raises:
        TypeError: If value is not numeric

    Example:
        >>> float_to_amount(123.455)
        Decimal('123.46')
    """
    if not isinstance(value, (int, float)):
        raise TypeError(f"Expected numeric amount, got {type(value)}")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
