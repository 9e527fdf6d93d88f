"""
CLI display functions for autobrief.
"""

# Cell symbol per intensity level 0-4
LEVEL_SYMBOLS = [" .", " ░", " ▒", " ▓", " █"]

DAY_HEADER = " S M T W T F S"


def format_month_grid(month: dict) -> list[str]:
    """
    Render one month bucket as rows of a Sunday-first calendar grid.

    Args:
        month: Month bucket from build_heatmap() whose days carry a 'level'

    Returns:
        List of lines: the label, the weekday header, then one line per week
    """
    lines = [month["label"], DAY_HEADER]

    cells = ["  "] * month["leading_blanks"]
    cells += [LEVEL_SYMBOLS[day["level"]] for day in month["days"]]

    for i in range(0, len(cells), 7):
        lines.append("".join(cells[i:i + 7]).rstrip())

    return lines


def display_heatmap(heatmap: dict) -> None:
    """
    Display the activity heatmap to the console.

    Args:
        heatmap: Dictionary from build_heatmap()
    """
    period = heatmap["period"]
    total = heatmap["total"]
    label = "activity" if total == 1 else "activities"

    print(f"Activity Heatmap ({period['months']} months: {period['start']} to {period['end']})")
    print(f"   {total} {label} on {heatmap['active_days']} active days, busiest day {heatmap['max_count']}")
    print()

    for month in heatmap["months"]:
        for line in format_month_grid(month):
            print(f"  {line}")
        print()

    print("  Less" + "".join(LEVEL_SYMBOLS) + "  More")
    print()


def format_series_point(point: dict) -> str:
    """Format one trend point as a table row."""
    return (
        f"  {point['date']}  {point['commits']:>7}  {point['pull_requests']:>3}"
        f"  {point['issues']:>6}  {point['meetings']:>8}"
    )


def display_trends(points: list[dict], range_name: str) -> None:
    """
    Display the activity trend table for a range.

    Args:
        points: Filtered ActivitySeriesPoint dicts
        range_name: The resolved range ('week', 'month' or 'quarter')
    """
    print(f"📈 Activity Trends (last {range_name}):")
    if not points:
        print("   No activity in this range.")
        print()
        return

    print("  DATE        COMMITS  PRS  ISSUES  MEETINGS")
    print("  " + "-" * 43)
    for point in points:
        print(format_series_point(point))
    print()
