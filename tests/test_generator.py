from datetime import date

import pytest

from pawmates.domain.recurrence import generate, nth_weekday_of_month, occurrence_in_month, parse_pattern
from pawmates.domain.recurrence.generator import sunday_based_weekday


def dates_of(pattern, start, end):
    return [slot.date for slot in generate(parse_pattern(pattern), start, end)]


def test_weekly_monday_thursday_january():
    result = dates_of("weekly_1_monday,thursday", date(2024, 1, 1), date(2024, 1, 31))

    assert [d.day for d in result] == [1, 4, 8, 11, 15, 18, 22, 25, 29]


def test_sequence_numbers_are_chronological_from_one():
    slots = generate(parse_pattern("weekly_1_thursday,monday"), date(2024, 1, 1), date(2024, 1, 31))

    assert [s.sequence_number for s in slots] == list(range(1, 10))
    assert [s.date for s in slots] == sorted(s.date for s in slots)


def test_biweekly_counts_weeks_from_start_week():
    result = dates_of("weekly_2_monday", date(2024, 1, 1), date(2024, 2, 5))

    assert result == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 1, 29)]


def test_biweekly_starting_mid_week():
    # Week 0 is Dec 31 - Jan 6; Monday Jan 1 is before the start date
    result = dates_of("weekly_2_monday,friday", date(2024, 1, 3), date(2024, 1, 20))

    assert result == [date(2024, 1, 5), date(2024, 1, 15), date(2024, 1, 19)]


def test_weekly_dates_match_rule_and_range():
    rule = parse_pattern("weekly_3_tuesday,saturday")
    start, end = date(2024, 2, 7), date(2024, 8, 30)
    slots = generate(rule, start, end)

    assert slots
    for slot in slots:
        assert start <= slot.date <= end
        assert sunday_based_weekday(slot.date) in rule.weekdays

    tuesdays = [s.date for s in slots if sunday_based_weekday(s.date) == 2]
    for earlier, later in zip(tuesdays, tuesdays[1:]):
        assert (later - earlier).days % 21 == 0


def test_monthly_second_saturday():
    result = dates_of("monthly_1_2_saturday", date(2024, 1, 1), date(2024, 3, 31))

    assert result == [date(2024, 1, 13), date(2024, 2, 10), date(2024, 3, 9)]


def test_monthly_skips_occurrence_before_start():
    result = dates_of("monthly_1_2_saturday", date(2024, 1, 20), date(2024, 3, 31))

    assert result == [date(2024, 2, 10), date(2024, 3, 9)]


def test_monthly_last_friday_falls_back_to_fourth():
    result = dates_of("monthly_1_last_friday", date(2024, 1, 1), date(2024, 3, 31))

    # February 2024 has only four Fridays
    assert result == [date(2024, 1, 26), date(2024, 2, 23), date(2024, 3, 29)]


def test_monthly_interval_steps_months():
    result = dates_of("monthly_2_1_monday", date(2024, 1, 1), date(2024, 6, 30))

    assert result == [date(2024, 1, 1), date(2024, 3, 4), date(2024, 5, 6)]


def test_monthly_multiple_weekdays_sorted_by_date():
    slots = generate(parse_pattern("monthly_1_1_friday,monday"), date(2024, 1, 1), date(2024, 1, 31))

    assert slots[0].date == date(2024, 1, 1)
    assert slots[0].sequence_number == 1
    assert slots[1].date == date(2024, 1, 5)
    assert slots[1].sequence_number == 2


def test_monthly_crosses_year_boundary():
    result = dates_of("monthly_1_1_wednesday", date(2024, 11, 1), date(2025, 2, 28))

    assert result == [date(2024, 11, 6), date(2024, 12, 4), date(2025, 1, 1), date(2025, 2, 5)]


@pytest.mark.parametrize("end", [date(2024, 1, 1), date(2023, 12, 1)])
def test_end_on_or_before_start_is_empty(end):
    assert generate(parse_pattern("weekly_1_monday"), date(2024, 1, 1), end) == []


def test_generate_is_repeatable():
    rule = parse_pattern("monthly_1_last_sunday,wednesday")
    start, end = date(2024, 1, 1), date(2024, 12, 31)

    assert generate(rule, start, end) == generate(rule, start, end)


def test_nth_weekday_of_month():
    # Sunday=0 numbering: Friday is 5
    assert nth_weekday_of_month(2024, 3, 5, 5) == date(2024, 3, 29)
    assert nth_weekday_of_month(2024, 2, 5, 5) is None
    assert nth_weekday_of_month(2024, 9, 0, 1) == date(2024, 9, 1)


def test_occurrence_in_month_last():
    assert occurrence_in_month(2024, 2, 5, "last") == date(2024, 2, 23)
    assert occurrence_in_month(2024, 3, 5, "last") == date(2024, 3, 29)


def test_monthly_runs_to_last_month_of_calendar():
    result = dates_of("monthly_1_1_monday", date(9999, 1, 1), date(9999, 12, 31))

    assert len(result) == 12
    assert [d.month for d in result] == list(range(1, 13))
    assert all(d.weekday() == 0 and d.day <= 7 for d in result)


def test_weekly_runs_to_calendar_edges():
    assert dates_of("weekly_1_friday", date(9999, 12, 20), date.max) == [date(9999, 12, 24), date.max]
    assert dates_of("weekly_1_monday", date.min, date(1, 1, 15)) == [date(1, 1, 1), date(1, 1, 8), date(1, 1, 15)]
