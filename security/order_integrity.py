import secrets
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real
from typing import Optional

TOTAL_TOLERANCE = 0.01

EMPTY_ORDER_ERROR = "Order must contain at least one item"

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class TotalCheck:
    is_valid: bool
    calculated_total: float
    difference: float
    error: Optional[str] = None


def _round2(value) -> Decimal:
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def _field(item, name):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _positive_number(value) -> Decimal:
    """Positive finite numbers pass through, anything else counts as zero."""
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        return Decimal(0)
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)
    if not number.is_finite() or number <= 0:
        return Decimal(0)
    return number


def _claimed(value) -> Decimal:
    """Numbers and numeric strings such as "25.00" are read, anything else is zero."""
    if isinstance(value, str):
        value = value.strip() or "0"
    elif isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        return Decimal(0)
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)
    return number if number.is_finite() else Decimal(0)


def validate_and_recalculate_total(items, claimed_total, tolerance: float = TOTAL_TOLERANCE) -> TotalCheck:
    """
    Recompute an order total from its line items and compare it with the
    total the client claims.

    Callers persist ``calculated_total`` and discard the claim. A malformed
    price or quantity contributes nothing instead of failing the whole order.
    """
    if not isinstance(items, (list, tuple)) or not items:
        return TotalCheck(
            is_valid=False,
            calculated_total=0.0,
            difference=float(_round2(abs(_claimed(claimed_total)))),
            error=EMPTY_ORDER_ERROR,
        )

    subtotal = sum(
        (_positive_number(_field(item, "price")) * _positive_number(_field(item, "quantity")) for item in items),
        Decimal(0),
    )
    calculated = _round2(subtotal)
    difference = _round2(abs(calculated - _claimed(claimed_total)))
    is_valid = difference <= Decimal(str(tolerance))

    error = None
    if not is_valid:
        error = (
            f"Claimed total ({claimed_total}) does not match the calculated total "
            f"({calculated}). Difference: {difference}"
        )

    return TotalCheck(
        is_valid=is_valid,
        calculated_total=float(calculated),
        difference=float(difference),
        error=error,
    )


def generate_order_id() -> str:
    """ORD-{epoch_ms}-{8 random hex chars}"""
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"
