"""Server-side price integrity checks"""

import logging
from datetime import date
from typing import Optional

from ...config import PRICE_TOLERANCE
from ...shared.exceptions import PriceMismatchError
from .generator import generate
from .patterns import RecurrenceRule

logger = logging.getLogger(__name__)


def expected_total(
    rule: Optional[RecurrenceRule],
    start_date: date,
    end_date: Optional[date],
    unit_price: float,
) -> float:
    """
    Recompute what the owner must pay.

    One-time bookings cost one unit price; recurring bookings cost the unit
    price times the number of sessions generate() materializes for the same
    rule and range.
    """
    if rule is None:
        return round(unit_price, 2)

    if end_date is None:
        return 0.0

    return round(unit_price * len(generate(rule, start_date, end_date)), 2)


def validate_price(expected: float, declared: float, tolerance: float = PRICE_TOLERANCE) -> None:
    """Fail closed when the declared total is off by more than the tolerance"""
    if declared is None or abs(expected - declared) > tolerance + 1e-9:
        logger.warning(f"❌ Price mismatch detected! expected={expected} declared={declared}")
        raise PriceMismatchError(expected=expected, declared=declared)
