"""
Calculate weekly activity statistics, integration breakdown and streaks.
"""

from datetime import date, timedelta
from typing import Optional

from autobrief.date_utils import parse_activity_date

WEEKDAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


def calculate_weekly_stats(activities: list[dict], today: Optional[date] = None) -> dict:
    """
    Calculate activity statistics for the trailing 7 days.

    Args:
        activities: WorkActivity dicts with 'timestamp' and optional 'count'
        today: Override today's date for testing. Defaults to current date.

    Returns:
        Dictionary with:
        - total_activities: Activity count over the last 7 days (today included)
        - avg_per_day: total_activities / 7, rounded to one decimal
        - most_active_day: Weekday name of the busiest day, or None if idle
    """
    if today is None:
        today = date.today()

    week_start = today - timedelta(days=6)  # Include today = 7 days

    per_day: dict[date, int] = {}
    for activity in activities:
        day = parse_activity_date(activity.get("timestamp"))
        if week_start <= day <= today:
            per_day[day] = per_day.get(day, 0) + activity.get("count", 1)

    total = sum(per_day.values())

    most_active_day = None
    if total:
        # Earliest day wins a tie
        busiest = max(sorted(per_day), key=lambda d: per_day[d])
        most_active_day = WEEKDAY_NAMES[busiest.weekday()]

    return {
        "total_activities": total,
        "avg_per_day": round(total / 7, 1),
        "most_active_day": most_active_day,
    }


def calculate_integration_breakdown(activities: list[dict]) -> list[dict]:
    """
    Count activities per integration provider.

    Returns:
        List of {name, count} sorted by count descending, then name
    """
    counts: dict[str, int] = {}
    for activity in activities:
        provider = activity.get("provider") or "unknown"
        counts[provider] = counts.get(provider, 0) + activity.get("count", 1)

    return [
        {"name": name, "count": count}
        for name, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def calculate_streak_days(activities: list[dict], today: Optional[date] = None) -> int:
    """
    Calculate the current run of consecutive active days.

    The streak starts from today or yesterday (grace period) and counts
    consecutive days backwards.
    """
    if today is None:
        today = date.today()

    active_days = {parse_activity_date(activity.get("timestamp")) for activity in activities}
    if not active_days:
        return 0

    yesterday = today - timedelta(days=1)
    if today in active_days:
        current = today
    elif yesterday in active_days:
        current = yesterday
    else:
        return 0

    streak = 0
    while current in active_days:
        streak += 1
        current -= timedelta(days=1)

    return streak
