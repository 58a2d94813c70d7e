"""Money helpers."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_money(value: Decimal | int | str | float | None) -> Decimal:
    """
    Round an amount to 2 decimal places for presentation.

    Ledger rows keep full precision; call this only on values leaving a
    service.
    """
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
