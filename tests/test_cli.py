"""
Tests for CLI display functions.
"""

import io
from contextlib import redirect_stdout
from datetime import date

from autobrief.cli import (
    DAY_HEADER,
    display_heatmap,
    display_trends,
    format_month_grid,
    format_series_point,
)
from autobrief.heatmap_calculator import build_heatmap


class TestFormatMonthGrid:
    """Tests for month grid rendering."""

    def test_grid_layout(self):
        # September 2024 starts on a Sunday and has 30 days
        heatmap = build_heatmap([{"date": "2024-09-01", "count": 2}], 1, today=date(2024, 9, 10))
        lines = format_month_grid(heatmap["months"][0])

        assert lines[0] == "September 2024"
        assert lines[1] == DAY_HEADER
        assert len(lines) == 2 + 5  # five week rows
        assert lines[2].startswith(" █")

    def test_leading_blanks(self):
        # October 2024 starts on a Tuesday
        heatmap = build_heatmap([], 1, today=date(2024, 10, 3))
        first_week = format_month_grid(heatmap["months"][0])[2]
        assert first_week == "     . . . . ."


class TestDisplayHeatmap:
    """Tests for heatmap display."""

    def test_summary_line_and_months(self):
        records = [{"date": "2024-02-15", "count": 1}]
        heatmap = build_heatmap(records, 3, today=date(2024, 2, 20))

        output = io.StringIO()
        with redirect_stdout(output):
            display_heatmap(heatmap)
        result = output.getvalue()

        assert "3 months: 2023-12-01 to 2024-02-29" in result
        assert "1 activity on 1 active days" in result
        assert "December 2023" in result
        assert "February 2024" in result
        assert "Less" in result and "More" in result


class TestDisplayTrends:
    """Tests for trend display."""

    def test_empty(self):
        output = io.StringIO()
        with redirect_stdout(output):
            display_trends([], "week")
        assert "No activity in this range." in output.getvalue()

    def test_rows(self):
        points = [
            {"date": "2024-03-01", "commits": 3, "pull_requests": 1, "issues": 0, "meetings": 2},
        ]
        output = io.StringIO()
        with redirect_stdout(output):
            display_trends(points, "month")
        result = output.getvalue()

        assert "last month" in result
        assert format_series_point(points[0]) in result

    def test_format_series_point(self):
        row = format_series_point(
            {"date": "2024-03-01", "commits": 12, "pull_requests": 1, "issues": 4, "meetings": 0}
        )
        assert row.split() == ["2024-03-01", "12", "1", "4", "0"]
