"""
Recurrence pattern parsing

Pattern strings come from the booking form:
    weekly_<interval>_<day>,<day>,...        e.g. weekly_2_monday,thursday
    monthly_<interval>_<nth>_<day>,<day>,... e.g. monthly_1_last_friday

Weekdays are numbered Sunday=0 .. Saturday=6.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from ...shared.exceptions import InvalidPatternError

WEEKDAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)
WEEKDAY_BY_NAME = {name: index for index, name in enumerate(WEEKDAY_NAMES)}

WEEKLY = "weekly"
MONTHLY = "monthly"
LAST = "last"

WEEKDAYS_SET = {1, 2, 3, 4, 5}
WEEKEND_SET = {0, 6}


class RecurrenceRule(BaseModel):
    """Structured recurrence; weekdays keep the order they were listed in"""

    model_config = ConfigDict(frozen=True)

    kind: str
    interval: int
    weekdays: tuple[int, ...]
    nth_occurrence: Optional[Union[int, str]] = None

    def to_pattern(self) -> str:
        """Canonical pattern string for this rule"""
        days = ",".join(WEEKDAY_NAMES[d] for d in self.weekdays)
        if self.kind == WEEKLY:
            return f"{WEEKLY}_{self.interval}_{days}"
        return f"{MONTHLY}_{self.interval}_{self.nth_occurrence}_{days}"


def _parse_interval(raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise InvalidPatternError(f"Interval must be a positive integer, got '{raw}'")
    interval = int(raw)
    if interval < 1:
        raise InvalidPatternError(f"Interval must be a positive integer, got '{raw}'")
    return interval


def _parse_weekdays(raw: str) -> tuple[int, ...]:
    names = [part.strip().lower() for part in raw.split(",") if part.strip()]
    if not names:
        raise InvalidPatternError("At least one weekday is required")

    weekdays: list[int] = []
    for name in names:
        if name not in WEEKDAY_BY_NAME:
            raise InvalidPatternError(f"Unrecognized weekday '{name}'")
        day = WEEKDAY_BY_NAME[name]
        if day not in weekdays:
            weekdays.append(day)
    return tuple(weekdays)


def _parse_nth(raw: str) -> Union[int, str]:
    value = raw.strip().lower()
    if value == LAST:
        return LAST
    if value in {"1", "2", "3", "4"}:
        return int(value)
    raise InvalidPatternError(f"Occurrence must be one of 1, 2, 3, 4 or last, got '{raw}'")


def parse_pattern(pattern: str) -> RecurrenceRule:
    """
    Decode a recurrence pattern string into a RecurrenceRule.

    Raises:
        InvalidPatternError: unknown kind, non-positive interval, empty or
            unrecognized weekdays, or a monthly occurrence outside 1-4/last
    """
    if not pattern or not isinstance(pattern, str):
        raise InvalidPatternError("Recurrence pattern is required")

    parts = pattern.strip().split("_")
    kind = parts[0].lower()

    if kind == WEEKLY:
        if len(parts) != 3:
            raise InvalidPatternError(
                "Weekly pattern must look like weekly_<interval>_<days>"
            )
        return RecurrenceRule(
            kind=WEEKLY,
            interval=_parse_interval(parts[1]),
            weekdays=_parse_weekdays(parts[2]),
        )

    if kind == MONTHLY:
        if len(parts) != 4:
            raise InvalidPatternError(
                "Monthly pattern must look like monthly_<interval>_<nth>_<days>"
            )
        return RecurrenceRule(
            kind=MONTHLY,
            interval=_parse_interval(parts[1]),
            nth_occurrence=_parse_nth(parts[2]),
            weekdays=_parse_weekdays(parts[3]),
        )

    raise InvalidPatternError(f"Unknown recurrence kind '{parts[0]}'")


def _ordinal(nth: Union[int, str]) -> str:
    if nth == LAST:
        return "Last"
    return {1: "1st", 2: "2nd", 3: "3rd", 4: "4th"}[nth]


def describe_rule(rule: RecurrenceRule) -> str:
    """Human readable description shown next to estimates"""
    day_labels = ", ".join(WEEKDAY_NAMES[d].capitalize() for d in rule.weekdays)

    if rule.kind == MONTHLY:
        every = "month" if rule.interval == 1 else f"{rule.interval} months"
        return f"Every {every} on the {_ordinal(rule.nth_occurrence)} {day_labels}"

    days = set(rule.weekdays)
    if len(days) == 7:
        return "Every day" if rule.interval == 1 else f"Every {rule.interval} weeks, all days"
    if days == WEEKDAYS_SET:
        return "Every weekday" if rule.interval == 1 else f"Every {rule.interval} weeks on weekdays"
    if days == WEEKEND_SET:
        return "Every weekend" if rule.interval == 1 else f"Every {rule.interval} weeks on weekends"

    every = "Every week" if rule.interval == 1 else f"Every {rule.interval} weeks"
    return f"{every} on {day_labels}"
