"""Fixed two-decimal money arithmetic.

Every monetary value leaving this module is a ``Decimal`` quantized to cents
with ROUND_HALF_UP (ties away from zero). Float operands are converted through
their shortest repr, so ``0.1`` enters as ``Decimal("0.1")`` and binary drift
never reaches a result.
"""

import logging
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import DivisionByZero
from .models import SplitValidation, SumValidation

logger = logging.getLogger(__name__)

Money = Decimal | int | float | str

CENT = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def to_decimal(value: Money) -> Decimal:
    """Convert an operand to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_money(value: Money) -> Decimal:
    """
    Round to 2 decimal places, half-up.

    Args:
        value: Amount to round

    Returns:
        Amount quantized to cents (``10.125 -> 10.13``, ``-10.125 -> -10.13``)
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_to(value: Money, places: int = 2) -> Decimal:
    """Round to an arbitrary number of decimal places, half-up."""
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def to_cents(value: Money) -> int:
    """Convert an amount to integer minor units (cents)."""
    return int(round_money(value) * 100)


def sum_money(values: Sequence[Money]) -> Decimal:
    """Sum amounts exactly, rounding only the final result."""
    total = Decimal("0")
    for value in values:
        total += to_decimal(value)
    return round_money(total)


def subtract(a: Money, b: Money) -> Decimal:
    """Return ``a - b`` rounded to cents."""
    return round_money(to_decimal(a) - to_decimal(b))


def multiply(a: Money, b: Money) -> Decimal:
    """Return ``a * b`` rounded to cents."""
    return round_money(to_decimal(a) * to_decimal(b))


def divide(a: Money, b: Money) -> Decimal:
    """
    Return ``a / b`` rounded to cents.

    Args:
        a: Dividend
        b: Divisor

    Returns:
        Quotient rounded to cents

    Raises:
        DivisionByZero: If the divisor is zero
    """
    divisor = to_decimal(b)
    if divisor == 0:
        raise DivisionByZero(a)
    return round_money(to_decimal(a) / divisor)


def equals(a: Money, b: Money, tolerance: Money = DEFAULT_TOLERANCE) -> bool:
    """Return True when ``|a - b| <= tolerance``."""
    return abs(to_decimal(a) - to_decimal(b)) <= to_decimal(tolerance)


def validate_sum(
    values: Sequence[Money],
    expected_total: Money,
    tolerance: Money = DEFAULT_TOLERANCE,
) -> SumValidation:
    """Check that ``values`` add up to ``expected_total`` within tolerance."""
    actual_sum = sum_money(values)
    difference = abs(subtract(actual_sum, expected_total))
    return SumValidation(
        valid=difference <= to_decimal(tolerance),
        actual_sum=actual_sum,
        difference=difference,
    )


def validate_splits(splits: Sequence[Money], total: Money) -> SplitValidation:
    """
    Validate split allocations against the transaction total.

    Splits are valid when their sum is within one cent of ``total``. Invalid
    splits come back with a normalized alternative that sums to ``total``
    exactly.

    Args:
        splits: Allocated amounts, one per member
        total: Transaction amount

    Returns:
        Validation result with the signed difference ``sum(splits) - total``
    """
    difference = subtract(sum_money(splits), total)

    if abs(difference) <= DEFAULT_TOLERANCE:
        return SplitValidation(valid=True, difference=difference)

    return SplitValidation(
        valid=False,
        difference=difference,
        normalized=normalize_splits(splits, total),
    )


def normalize_splits(splits: Sequence[Money], total: Money) -> list[Decimal]:
    """
    Rescale split allocations so they sum to ``total`` exactly.

    When the current allocations sum to zero the total is divided evenly.
    Otherwise every split is scaled proportionally. In both cases the rounding
    residual lands on the last split.

    Args:
        splits: Allocated amounts, one per member
        total: Target total

    Returns:
        Normalized amounts, same length and order as ``splits``
    """
    if not splits:
        return []

    target = round_money(total)
    current_sum = sum_money(splits)

    if current_sum == 0:
        share = divide(target, len(splits))
        normalized = [share] * len(splits)
    else:
        ratio = target / current_sum
        normalized = [round_money(to_decimal(split) * ratio) for split in splits]

    residual = target - sum(normalized, Decimal("0"))
    if residual != 0:
        normalized[-1] = round_money(normalized[-1] + residual)
        logger.debug(f"Assigned split residual {residual} to last allocation")

    return normalized


def calculate_pmt(principal: Money, periodic_rate: Money, periods: int) -> Decimal:
    """
    Amortized payment per period (the PMT formula).

    Args:
        principal: Financed amount
        periodic_rate: Interest rate per period as a fraction (0.01 = 1%)
        periods: Number of payments

    Returns:
        Payment per period, rounded to cents

    Raises:
        DivisionByZero: If ``periods`` is zero
    """
    principal_dec = to_decimal(principal)
    rate = to_decimal(periodic_rate)

    if rate == 0:
        return divide(principal_dec, periods)

    factor = (1 + rate) ** periods
    denominator = factor - 1
    if denominator == 0:
        raise DivisionByZero(principal_dec)

    return round_money(principal_dec * rate * factor / denominator)


def compound_interest(principal: Money, rate: Money, periods: int) -> Decimal:
    """Return ``principal * (1 + rate) ** periods`` rounded to cents."""
    rate_dec = to_decimal(rate)
    if rate_dec == 0:
        return round_money(principal)
    return round_money(to_decimal(principal) * (1 + rate_dec) ** periods)


def future_value(present: Money, rate: Money, periods: int) -> Decimal:
    """Value of ``present`` after compounding for ``periods``."""
    return compound_interest(present, rate, periods)


def present_value(future: Money, rate: Money, periods: int) -> Decimal:
    """Discount ``future`` back ``periods`` at ``rate``."""
    growth = (1 + to_decimal(rate)) ** periods
    if growth == 0:
        raise DivisionByZero(future)
    return round_money(to_decimal(future) / growth)


def format_currency(value: Money, currency: str = "BRL") -> str:
    """
    Format an amount for display.

    BRL uses Brazilian separators (``R$ 1.234,56``); every other currency uses
    ``1,234.56`` with its symbol, or the ISO code when no symbol is known.
    """
    amount = round_money(value)
    sign = "-" if amount < 0 else ""
    digits = f"{abs(amount):,.2f}"

    if currency == "BRL":
        digits = digits.replace(",", "_").replace(".", ",").replace("_", ".")
        return f"{sign}R$ {digits}"

    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{sign}{symbol}{digits}"
    return f"{sign}{currency} {digits}"
