"""
Session date generation

The one implementation of the recurrence math. Estimates, payment-order
validation and session materialization all call generate(); nothing else
expands patterns.
"""

import calendar
from datetime import date
from typing import NamedTuple, Optional, Union

from .patterns import LAST, MONTHLY, WEEKLY, RecurrenceRule


class SessionSlot(NamedTuple):
    date: date
    sequence_number: int


def sunday_based_weekday(day: date) -> int:
    """Weekday with Sunday=0 .. Saturday=6"""
    return (day.weekday() + 1) % 7


def nth_weekday_of_month(year: int, month: int, weekday: int, nth: int) -> Optional[date]:
    """
    Date of the nth occurrence of a weekday (Sunday=0) in a month.

    Returns None when the occurrence falls outside the month.
    """
    first_weekday = sunday_based_weekday(date(year, month, 1))
    day = 1 + (7 + weekday - first_weekday) % 7 + 7 * (nth - 1)
    if day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, day)


def occurrence_in_month(
    year: int, month: int, weekday: int, nth: Union[int, str]
) -> Optional[date]:
    """nth occurrence, where "last" is the 5th when the month has one, else the 4th"""
    if nth == LAST:
        return nth_weekday_of_month(year, month, weekday, 5) or nth_weekday_of_month(
            year, month, weekday, 4
        )
    return nth_weekday_of_month(year, month, weekday, nth)


def _weekly_dates(rule: RecurrenceRule, start: date, end: date) -> list[date]:
    # Weeks run Sunday..Saturday; week 0 is the one containing start.
    # Ordinals keep the walk inside the calendar at date.min and date.max.
    first_week_start = start.toordinal() - sunday_based_weekday(start)
    weekdays = set(rule.weekdays)

    dates = []
    for ordinal in range(start.toordinal(), end.toordinal() + 1):
        current = date.fromordinal(ordinal)
        week_index = (ordinal - first_week_start) // 7
        if week_index % rule.interval == 0 and sunday_based_weekday(current) in weekdays:
            dates.append(current)
    return dates


def _add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _monthly_dates(rule: RecurrenceRule, start: date, end: date) -> list[date]:
    dates = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        for weekday in rule.weekdays:
            candidate = occurrence_in_month(year, month, weekday, rule.nth_occurrence)
            if candidate and start <= candidate <= end:
                dates.append(candidate)
        year, month = _add_months(year, month, rule.interval)
    return dates


def generate(rule: RecurrenceRule, start_date: date, end_date: date) -> list[SessionSlot]:
    """
    Expand a rule over [start_date, end_date] into chronologically ordered,
    de-duplicated session dates numbered from 1.

    An end_date on or before start_date yields an empty list.
    """
    if end_date <= start_date:
        return []

    if rule.kind == WEEKLY:
        dates = _weekly_dates(rule, start_date, end_date)
    elif rule.kind == MONTHLY:
        dates = _monthly_dates(rule, start_date, end_date)
    else:
        raise ValueError(f"Unsupported recurrence kind: {rule.kind}")

    return [
        SessionSlot(date=day, sequence_number=index)
        for index, day in enumerate(sorted(set(dates)), start=1)
    ]
