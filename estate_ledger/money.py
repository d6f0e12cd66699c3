"""Integer cent arithmetic.

All monetary values inside the ledger are ``int`` minor units (cents).
Rates and intermediate products are ``Decimal``; :func:`round_cents` is the
single point where a fractional amount becomes cents again.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ONE = Decimal("1")
HUNDRED = Decimal("100")
TWO_PLACES = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a rate or quantity to ``Decimal`` without binary float error.

    Floats go through ``str`` so ``6.5`` becomes ``Decimal("6.5")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc


def round_cents(value: Decimal | int) -> int:
    """Round a fractional cent amount to the nearest cent, halves up."""
    if isinstance(value, int):
        return value
    return int(value.quantize(ONE, rounding=ROUND_HALF_UP))


def to_cents(amount: Decimal | int | str) -> int:
    """Parse a dollar amount (``"1,234.56"``, ``Decimal("12.5")``) into cents."""
    if isinstance(amount, str):
        amount = amount.replace(",", "").replace("$", "").strip()
    return round_cents(to_decimal(amount) * HUNDRED)


def format_cents(cents: int) -> str:
    """Format cents for display, e.g. ``123456`` -> ``"$1,234.56"``."""
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), 100)
    return f"{sign}${dollars:,}.{remainder:02d}"


def percent_of(part: int, whole: int) -> Decimal:
    """Return ``part / whole`` as a percentage with two decimal places."""
    if whole == 0:
        return Decimal("0.00")
    return (Decimal(part) * HUNDRED / Decimal(whole)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
