# marketplace/utils/money.py
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")
MINOR_UNITS_PER_UNIT = 100


def quantize_amount(value) -> Decimal:
    """
    Normalizuje kwote do 2 miejsc po przecinku.
    SQLite zwraca SUM() jako float, dlatego przechodzimy przez str.
    """
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Decimal (np. 150.25 NGN) -> int w kobo (15025), round-half-up."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * MINOR_UNITS_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    return quantize_amount(Decimal(int(minor)) / MINOR_UNITS_PER_UNIT)
