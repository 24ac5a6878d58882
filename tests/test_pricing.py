from datetime import date

import pytest

from pawmates.domain.recurrence import expected_total, generate, parse_pattern, validate_price
from pawmates.shared.exceptions import PriceMismatchError

JANUARY = (date(2024, 1, 1), date(2024, 1, 31))


def test_recurring_total_is_unit_price_times_sessions():
    rule = parse_pattern("weekly_1_monday,thursday")

    assert expected_total(rule, *JANUARY, 500.0) == 4500.0


def test_one_time_total_is_unit_price():
    assert expected_total(None, date(2024, 1, 1), None, 499.99) == 499.99


def test_recurring_without_end_date_costs_nothing():
    assert expected_total(parse_pattern("weekly_1_monday"), date(2024, 1, 1), None, 500.0) == 0.0


@pytest.mark.parametrize(
    "pattern", ["weekly_2_friday", "monthly_1_last_tuesday,saturday", "weekly_1_sunday,wednesday"]
)
def test_total_reconciles_with_generated_sessions(pattern):
    rule = parse_pattern(pattern)
    start, end = date(2024, 3, 10), date(2024, 11, 2)

    total = expected_total(rule, start, end, 333.33)

    assert abs(total - 333.33 * len(generate(rule, start, end))) < 0.01


def test_matching_declared_total_passes():
    validate_price(4500.0, 4500.0)
    validate_price(4500.0, 4500.01)


def test_tampered_total_is_rejected():
    with pytest.raises(PriceMismatchError) as exc_info:
        validate_price(4500.0, 4000.0)

    assert exc_info.value.expected == 4500.0
    assert exc_info.value.declared == 4000.0


def test_deviation_beyond_tolerance_is_rejected():
    with pytest.raises(PriceMismatchError):
        validate_price(4500.0, 4500.02)
