import pytest

from pawmates.domain.recurrence import describe_rule, parse_pattern
from pawmates.shared.exceptions import InvalidPatternError


def test_parse_weekly_pattern():
    rule = parse_pattern("weekly_1_monday,thursday")

    assert rule.kind == "weekly"
    assert rule.interval == 1
    assert rule.weekdays == (1, 4)
    assert rule.nth_occurrence is None


def test_parse_monthly_pattern():
    rule = parse_pattern("monthly_3_last_friday")

    assert rule.kind == "monthly"
    assert rule.interval == 3
    assert rule.nth_occurrence == "last"
    assert rule.weekdays == (5,)


def test_parse_monthly_numeric_occurrence():
    assert parse_pattern("monthly_1_2_saturday").nth_occurrence == 2


def test_weekday_names_are_case_insensitive_and_deduplicated():
    rule = parse_pattern("weekly_2_ Monday,SUNDAY,monday")
    assert rule.weekdays == (1, 0)


@pytest.mark.parametrize(
    "pattern",
    [
        "",
        "daily_1_monday",
        "weekly_0_monday",
        "weekly_-1_monday",
        "weekly_x_monday",
        "weekly_1_",
        "weekly_1_funday",
        "weekly_1",
        "monthly_1_5_friday",
        "monthly_1_first_friday",
        "monthly_1_2",
        "monthly_1_2_",
    ],
)
def test_invalid_patterns_are_rejected(pattern):
    with pytest.raises(InvalidPatternError):
        parse_pattern(pattern)


def test_to_pattern_is_canonical():
    assert parse_pattern("weekly_2_Thursday,monday").to_pattern() == "weekly_2_thursday,monday"
    assert parse_pattern("MONTHLY_1_LAST_friday").to_pattern() == "monthly_1_last_friday"


@pytest.mark.parametrize(
    "pattern, description",
    [
        ("weekly_1_monday,tuesday,wednesday,thursday,friday", "Every weekday"),
        ("weekly_1_saturday,sunday", "Every weekend"),
        ("weekly_1_sunday,monday,tuesday,wednesday,thursday,friday,saturday", "Every day"),
        ("weekly_1_monday,thursday", "Every week on Monday, Thursday"),
        ("weekly_2_monday,thursday", "Every 2 weeks on Monday, Thursday"),
        ("monthly_1_2_saturday", "Every month on the 2nd Saturday"),
        ("monthly_3_last_friday", "Every 3 months on the Last Friday"),
    ],
)
def test_describe_rule(pattern, description):
    assert describe_rule(parse_pattern(pattern)) == description
