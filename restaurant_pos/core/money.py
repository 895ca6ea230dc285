"""
Money helpers.

All amounts are ``Decimal`` rounded half-up to cents.
"""

from decimal import Decimal, ROUND_HALF_UP

from restaurant_pos.core.config import get_settings

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    """``1234.5`` -> ``"$ 1,234.50"`` using the configured currency symbol."""
    return f"{get_settings().currency_symbol} {to_money(value):,.2f}"


def percentage(part, whole) -> float:
    """Share of ``part`` in ``whole`` as a percentage with one decimal, 0 when whole is 0."""
    whole = Decimal(str(whole or 0))
    if whole == 0:
        return 0.0
    return round(float(Decimal(str(part or 0)) / whole * 100), 1)


def growth(current, previous) -> float:
    """Percent change from ``previous`` to ``current``, 0 when there is no base."""
    previous = Decimal(str(previous or 0))
    if previous == 0:
        return 0.0
    return round(float((Decimal(str(current or 0)) - previous) / previous * 100), 1)
