# Ledger primitives for Revu
# Money is always an int in minor units; fee rates are Decimals in [0, 1].

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from core.errors import ValidationError

Rate = Union[Decimal, float, int, str]

ZERO_RATE = Decimal("0")
FULL_RATE = Decimal("1")


def to_rate(value: Rate) -> Decimal:
    """Parse a fee rate and check it lies in [0, 1]."""
    try:
        # str() first so floats like 0.1 don't drag binary noise along
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid fee rate: {value!r}")

    if not rate.is_finite() or rate < ZERO_RATE or rate > FULL_RATE:
        raise ValidationError(f"Fee rate must be between 0 and 1, got {value}")
    return rate


def round_amount(value: Decimal) -> int:
    """Round half away from zero to a whole minor unit."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apply_rate(amount: int, rate: Rate) -> int:
    """round(amount × rate). Symmetric for negative amounts."""
    return round_amount(Decimal(int(amount)) * to_rate(rate))


def split_fee(gross_amount: int, rate: Rate) -> tuple[int, int]:
    """Return (fee, net) for a gross amount so that fee + net == gross."""
    fee = apply_rate(gross_amount, rate)
    return fee, int(gross_amount) - fee


def gross_with_fee(amount: int, rate: Rate) -> int:
    """Amount a payer owes when the fee is charged on top."""
    return int(amount) + apply_rate(amount, rate)


def ensure_positive(amount, field: str = "amount") -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{field} must be an integer amount in minor units")
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return amount
