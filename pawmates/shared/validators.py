"""Shared validation utilities"""

import re
from typing import Optional

TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def validate_time_of_day(value: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a time of day.

    Args:
        value: Time string such as "9:30" or "09:30"

    Returns:
        Zero-padded HH:MM string

    Raises:
        ValueError: If the time is not a valid 24h time
    """
    if value is None:
        return value

    value = value.strip()
    if re.match(r"^\d:\d\d$", value):
        value = f"0{value}"

    if not TIME_OF_DAY_RE.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    return value


def to_minor_units(amount: float) -> int:
    """Convert a currency amount to minor units (paise)"""
    return int(round(amount * 100))
