"""
Values -- Decimal money helpers shared by every layer.

Responsibility:
    Converts boundary inputs (str, int, float, Decimal) into Decimal amounts,
    rounds currency to cents, and provides the epsilon used for currency
    comparisons.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Monetary arithmetic is Decimal-only. Floats are converted through
      ``str()`` so ``0.1`` becomes ``Decimal("0.1")``, never its binary
      expansion.
    - Non-finite amounts (NaN, Infinity) never enter arithmetic.
    - Currency outputs are rounded to cents with ROUND_HALF_UP.

Failure modes:
    - ValueError from ``to_decimal`` for values that cannot be parsed.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# Absorbs floating-point rounding noise carried in from stored amounts.
MONEY_EPSILON = Decimal("0.009")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a boundary value to Decimal.

    Preconditions:
        - ``value`` is a Decimal, int, float or numeric string.
    Postconditions:
        - Returns a Decimal (possibly non-finite; see ``is_finite_amount``).
    Raises:
        ValueError: if the value cannot be parsed as a number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, (int, float, str)):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    raise ValueError(f"Invalid amount: {value!r}")


def is_finite_amount(value: Any) -> bool:
    """True if ``value`` parses to a finite Decimal."""
    try:
        return to_decimal(value).is_finite()
    except ValueError:
        return False


def finite_or(value: Any, fallback: Decimal | None) -> Decimal | None:
    """Return ``value`` as Decimal when finite, else ``fallback``."""
    if value is None:
        return fallback
    try:
        d = to_decimal(value)
    except ValueError:
        return fallback
    return d if d.is_finite() else fallback


def non_negative(value: Any, fallback: Decimal = ZERO) -> Decimal:
    """Finite, clamped-at-zero Decimal; ``fallback`` for missing/invalid input."""
    d = finite_or(value, None)
    if d is None:
        return fallback
    return max(ZERO, d)


def round_money(value: Decimal) -> Decimal:
    """Round to cents (ROUND_HALF_UP), keeping every integer digit of large amounts."""
    if not value.is_finite():
        return ZERO.quantize(CENT)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """``amount * percent / 100`` without rounding."""
    return amount * percent / HUNDRED


def money_gte(left: Decimal, right: Decimal) -> bool:
    """``left >= right`` within ``MONEY_EPSILON``."""
    return left + MONEY_EPSILON >= right


def money_positive(value: Decimal) -> bool:
    """``value > 0`` beyond ``MONEY_EPSILON``."""
    return value > MONEY_EPSILON
