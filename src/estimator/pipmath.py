"""Fixed-point arithmetic on integer pips.

Every price, quantity and fraction handled by the estimator is a Python int
scaled by 10**8 ("pips"). Intermediate ratios that would otherwise truncate
can be lifted to 10**16 ("double pips"). Conversions between scales, and
between pips and Decimal, are always explicit function calls.

Division truncates toward zero unless a Rounding mode says otherwise.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from enum import Enum

from estimator.exceptions import InvalidAmountError

PIP_DECIMALS = 8
ONE_IN_PIPS = 10**PIP_DECIMALS

DOUBLE_PIP_DECIMALS = 16
ONE_IN_DOUBLE_PIPS = 10**DOUBLE_PIP_DECIMALS

PIPS_TO_DOUBLE_PIPS_FACTOR = ONE_IN_DOUBLE_PIPS // ONE_IN_PIPS

_PIP_QUANTUM = Decimal(1).scaleb(-PIP_DECIMALS)


class Rounding(str, Enum):
    """Rounding applied to an integer quotient."""

    TRUNCATE = "truncate"
    ROUND_UP = "round_up"
    ROUND_DOWN = "round_down"


def decimal_to_pip(value: str | Decimal | int) -> int:
    """Convert a decimal value to pips, dropping digits beyond 8 places.

    Args:
        value: Decimal string (e.g. "0.03"), Decimal, or whole-unit int.

    Returns:
        The value in pips, truncated toward zero.

    Raises:
        InvalidAmountError: If the value is not a finite number.
    """
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidAmountError(f"Not a decimal amount: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"Not a finite amount: {value!r}")

    return int(amount.scaleb(PIP_DECIMALS).to_integral_value(rounding=ROUND_DOWN))


def pip_to_decimal(pips: int) -> Decimal:
    """Convert pips to a Decimal with exactly 8 fractional digits."""
    return Decimal(pips).scaleb(-PIP_DECIMALS).quantize(_PIP_QUANTUM)


def pip_to_string(pips: int) -> str:
    """Format pips the way the exchange API does ("1.50000000")."""
    return f"{pip_to_decimal(pips):f}"


def divide_int(
    dividend: int,
    divisor: int,
    rounding: Rounding = Rounding.TRUNCATE,
) -> int:
    """Integer division with an explicit rounding mode.

    Python's // floors, so the truncating quotient is derived from the
    absolute values and the sign is reapplied.

    Raises:
        InvalidAmountError: If the divisor is negative.
        ZeroDivisionError: If the divisor is zero.
    """
    if divisor < 0:
        raise InvalidAmountError(
            f"Division by negative numbers is not supported (got {dividend}/{divisor})"
        )
    quotient = abs(dividend) // divisor
    if dividend < 0:
        quotient = -quotient

    if quotient * divisor == dividend:
        return quotient
    if rounding is Rounding.ROUND_UP and dividend > 0:
        return quotient + 1
    if rounding is Rounding.ROUND_DOWN and dividend < 0:
        return quotient - 1
    return quotient


def multiply_pips(pips_a: int, pips_b: int, round_up: bool = False) -> int:
    """Multiply two pip values, truncating back to pip scale."""
    return divide_int(
        pips_a * pips_b,
        ONE_IN_PIPS,
        Rounding.ROUND_UP if round_up else Rounding.TRUNCATE,
    )


def divide_pips(value_pips: int, divisor_pips: int) -> int:
    """Divide two pip values; a non-positive divisor yields zero."""
    if divisor_pips <= 0:
        return 0
    return divide_int(value_pips * ONE_IN_PIPS, divisor_pips)


def pips_to_double_pips(pips: int) -> int:
    """Lift a pip value to the 16-digit double-pip scale (exact)."""
    return pips * PIPS_TO_DOUBLE_PIPS_FACTOR


def double_pips_to_pips(double_pips: int) -> int:
    """Rescale a double-pip value to pips, truncating toward zero."""
    return divide_int(double_pips, PIPS_TO_DOUBLE_PIPS_FACTOR)

