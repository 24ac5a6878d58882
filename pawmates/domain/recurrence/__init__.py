"""Recurrence domain - pattern parsing, session date generation, price integrity"""

from .generator import SessionSlot, generate, nth_weekday_of_month, occurrence_in_month
from .patterns import RecurrenceRule, describe_rule, parse_pattern
from .pricing import expected_total, validate_price

__all__ = [
    "RecurrenceRule",
    "SessionSlot",
    "describe_rule",
    "expected_total",
    "generate",
    "nth_weekday_of_month",
    "occurrence_in_month",
    "parse_pattern",
    "validate_price",
]
