"""
Heatmap calculator for the activity calendar.

Groups daily activity counts into calendar months and assigns each day an
intensity level for a GitHub-style contribution heatmap.
"""

import math
from datetime import date, timedelta
from typing import Optional

from autobrief.date_utils import (
    add_months,
    end_of_month,
    parse_activity_date,
    start_of_month,
)

# Window sizes offered by the month selector
HEATMAP_WINDOWS = (3, 6, 12)

MAX_LEVEL = 4


def heatmap_period(months_window: int, today: Optional[date] = None) -> tuple[date, date]:
    """
    Calculate the first and last day covered by a heatmap window.

    Args:
        months_window: Number of calendar months to show (positive integer)
        today: Override for today's date (for testing)

    Returns:
        (start, end) where start is the first day of the earliest month and
        end is the last day of the current month

    Raises:
        ValueError: If months_window is not a positive integer
    """
    if isinstance(months_window, bool) or not isinstance(months_window, int):
        raise ValueError(f"months_window must be an integer, got {months_window!r}")
    if months_window < 1:
        raise ValueError(f"months_window must be positive, got {months_window}")

    if today is None:
        today = date.today()

    start = start_of_month(add_months(today, -(months_window - 1)))
    return start, end_of_month(today)


def sum_counts_by_day(records: list[dict]) -> dict[date, int]:
    """
    Sum activity counts per calendar day.

    Records sharing a date are added together, never overwritten.

    Raises:
        MalformedDateError: If a record's date cannot be parsed
    """
    counts: dict[date, int] = {}
    for record in records:
        day = parse_activity_date(record.get("date"))
        counts[day] = counts.get(day, 0) + record.get("count", 0)
    return counts


def bucket_by_month(
    records: list[dict],
    months_window: int,
    today: Optional[date] = None,
) -> list[dict]:
    """
    Build a dense calendar of daily counts grouped by month.

    Args:
        records: ActivityCount dicts with 'date' and 'count' keys
        months_window: Number of calendar months to show
        today: Override for today's date (for testing)

    Returns:
        List of month buckets, oldest first. Each bucket has:
            - month: 'YYYY-MM'
            - label: e.g. 'January 2024'
            - leading_blanks: empty cells before day 1 in a Sunday-first grid
            - days: list of {date, count} for every day of the month in range
    """
    start, end = heatmap_period(months_window, today)
    counts = sum_counts_by_day(records)

    months: list[dict] = []
    current = start
    while current <= end:
        month_key = current.strftime("%Y-%m")
        if not months or months[-1]["month"] != month_key:
            months.append({
                "month": month_key,
                "label": current.strftime("%B %Y"),
                # Python weekday() is Monday=0; shift so Sunday is column 0
                "leading_blanks": (current.weekday() + 1) % 7,
                "days": [],
            })

        months[-1]["days"].append({
            "date": current.isoformat(),
            "count": counts.get(current, 0),
        })
        current += timedelta(days=1)

    return months


def intensity_level(count: int, max_count: int) -> int:
    """
    Calculate intensity level for heatmap coloring.

    Args:
        count: Activity count for the day
        max_count: Highest daily count in the displayed data (floored at 1)

    Returns:
        0 for no activity, otherwise ceil(count / max_count * 4) clamped to 1-4
    """
    if count <= 0:
        return 0

    max_count = max(max_count, 1)
    level = math.ceil((count / max_count) * MAX_LEVEL)
    return min(max(level, 1), MAX_LEVEL)


def build_heatmap(
    records: list[dict],
    months_window: int = 6,
    today: Optional[date] = None,
) -> dict:
    """
    Calculate the full heatmap payload for display.

    Args:
        records: ActivityCount dicts with 'date' and 'count' keys
        months_window: Number of calendar months to show (default 6)
        today: Override for today's date (for testing)

    Returns:
        Dictionary with:
            - months: Month buckets whose days carry {date, count, level}
            - max_count: Highest daily count inside the window (at least 1)
            - total: Sum of counts inside the window
            - active_days: Days with a non-zero count
            - period: Start/end dates, total days and months shown
            - legend: The available intensity levels
    """
    months = bucket_by_month(records, months_window, today)
    all_days = [day for month in months for day in month["days"]]

    max_count = max([day["count"] for day in all_days] + [1])

    for day in all_days:
        day["level"] = intensity_level(day["count"], max_count)

    return {
        "months": months,
        "max_count": max_count,
        "total": sum(day["count"] for day in all_days),
        "active_days": sum(1 for day in all_days if day["count"] > 0),
        "period": {
            "start": all_days[0]["date"],
            "end": all_days[-1]["date"],
            "total_days": len(all_days),
            "months": months_window,
        },
        "legend": list(range(MAX_LEVEL + 1)),
    }
