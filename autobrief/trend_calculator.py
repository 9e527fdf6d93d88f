"""
Trend calculator for the activity trends chart.

Builds per-day category series from stored activities and filters them to a
trailing time range.
"""

import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from autobrief.date_utils import add_months, parse_activity_date

logger = logging.getLogger(__name__)

# Stored activity type -> series field
SERIES_FIELDS = {
    "commit": "commits",
    "pull_request": "pull_requests",
    "issue": "issues",
    "meeting": "meetings",
}


class TimeRange(Enum):
    """Trailing windows offered by the trends chart."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"

    @classmethod
    def from_token(cls, token: str | None) -> "TimeRange":
        """
        Resolve a range token, falling back to WEEK for anything unrecognized.
        """
        for time_range in cls:
            if time_range.value == token:
                return time_range

        logger.debug("Unknown range token %r, using week", token)
        return cls.WEEK


def range_cutoff(time_range: TimeRange, today: date) -> date:
    """
    Calculate the earliest date included in a trailing range.

    Args:
        time_range: The trailing window
        today: The reference day

    Returns:
        today - 7 days for WEEK, today minus 1 or 3 calendar months otherwise
    """
    if time_range is TimeRange.MONTH:
        return add_months(today, -1)
    if time_range is TimeRange.QUARTER:
        return add_months(today, -3)
    return today - timedelta(days=7)


def filter_by_range(
    series: list[dict],
    range_token: str | TimeRange | None,
    now: Optional[date | datetime] = None,
) -> list[dict]:
    """
    Keep only series points dated on or after the range cutoff.

    Args:
        series: ActivitySeriesPoint dicts with a 'date' key
        range_token: 'week', 'month', 'quarter' or a TimeRange; unknown
            tokens behave like 'week'
        now: Override for the current date (for testing)

    Returns:
        Points whose date is >= cutoff, in input order

    Raises:
        MalformedDateError: If a point's date cannot be parsed
    """
    if isinstance(range_token, TimeRange):
        time_range = range_token
    else:
        time_range = TimeRange.from_token(range_token)

    if now is None:
        today = date.today()
    elif isinstance(now, datetime):
        today = now.date()
    else:
        today = now

    cutoff = range_cutoff(time_range, today)
    return [point for point in series if parse_activity_date(point.get("date")) >= cutoff]


def _empty_point(day: date) -> dict:
    point = {"date": day.isoformat()}
    for field in SERIES_FIELDS.values():
        point[field] = 0
    return point


def build_activity_series(
    activities: list[dict],
    days: Optional[int] = None,
    today: Optional[date] = None,
) -> list[dict]:
    """
    Count stored activities per day and category.

    Args:
        activities: WorkActivity dicts with 'timestamp' and 'activity_type'
        days: If set, return a dense series covering the trailing number of
            days ending today; otherwise only days that have activity
        today: Override for today's date (for testing)

    Returns:
        ActivitySeriesPoint dicts sorted by date ascending
    """
    points: dict[date, dict] = {}

    if days is not None:
        if today is None:
            today = date.today()
        start = today - timedelta(days=days - 1)
        for i in range(days):
            day = start + timedelta(days=i)
            points[day] = _empty_point(day)

    for activity in activities:
        field = SERIES_FIELDS.get(activity.get("activity_type"))
        if field is None:
            continue

        day = parse_activity_date(activity.get("timestamp"))
        if day not in points:
            if days is not None:
                # Outside the dense window
                continue
            points[day] = _empty_point(day)

        points[day][field] += activity.get("count", 1)

    return [points[day] for day in sorted(points)]
