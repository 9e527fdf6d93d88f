"""
Calendar helpers shared by the heatmap and trend calculators.
"""

import calendar
from datetime import date, datetime


class MalformedDateError(ValueError):
    """Raised when an activity record's date cannot be read as a calendar date."""

    pass


def parse_activity_date(value) -> date:
    """
    Parse an activity date into a calendar date.

    Accepts YYYY-MM-DD strings and ISO-8601 date-times (anything after the
    'T' is discarded), as well as date/datetime objects.

    Raises:
        MalformedDateError: If the value is not a parsable calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        raise MalformedDateError(f"Invalid activity date: {value!r}")

    try:
        return date.fromisoformat(value.split("T")[0])
    except ValueError as e:
        raise MalformedDateError(f"Invalid activity date: {value!r}") from e


def add_months(day: date, months: int) -> date:
    """
    Shift a date by whole calendar months.

    The day of month is clamped to the last valid day of the target month,
    so 2024-03-31 minus one month is 2024-02-29.
    """
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])
