"""
autobrief: team work-summary analytics

Console entry point: syncs GitHub activity and prints the heatmap and trends.
"""

import argparse
from datetime import date

from autobrief.cli import display_heatmap, display_trends
from autobrief.config import (
    DEFAULT_HEATMAP_MONTHS,
    GITHUB_TOKEN,
    GITHUB_USERNAME,
    configure_logging,
    validate_config,
)
from autobrief.github_client import GitHubClient, GitHubClientError
from autobrief.heatmap_calculator import HEATMAP_WINDOWS, build_heatmap, heatmap_period
from autobrief.storage import ActivityStorage, sync_github_activity
from autobrief.trend_calculator import (
    TimeRange,
    build_activity_series,
    filter_by_range,
    range_cutoff,
)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="autobrief", description="Show your activity heatmap and trends.")
    parser.add_argument(
        "--months",
        type=int,
        default=None,
        help=(
            f"Heatmap window in months (offered: {', '.join(map(str, HEATMAP_WINDOWS))}). "
            f"Defaults to the saved window, else {DEFAULT_HEATMAP_MONTHS}"
        ),
    )
    parser.add_argument(
        "--save-months",
        action="store_true",
        help="Remember --months as the default window for the console and the API",
    )
    parser.add_argument(
        "--range",
        dest="range_token",
        default="week",
        help="Trend range: week, month or quarter (anything else means week)",
    )
    parser.add_argument("--no-sync", action="store_true", help="Skip fetching from GitHub")
    args = parser.parse_args(argv)
    if args.months is not None and args.months < 1:
        parser.error("--months must be a positive integer")
    if args.save_months and args.months is None:
        parser.error("--save-months requires --months")
    return args


def main(argv: list[str] | None = None, storage: ActivityStorage | None = None) -> int:
    args = _parse_args(argv)
    configure_logging()

    print("autobrief - Your work at a glance")
    print("-" * 50)

    # Validate configuration
    try:
        validate_config()
    except ValueError as e:
        print(f"\nConfiguration Error:\n{e}")
        return 1

    if storage is None:
        storage = ActivityStorage()
    user_id = storage.resolve_user_id(f"github:{GITHUB_USERNAME}")

    if args.save_months:
        storage.set_heatmap_months(args.months)
        print(f"Saved default heatmap window: {args.months} months")
    months = args.months or storage.get_heatmap_months(DEFAULT_HEATMAP_MONTHS)

    if not args.no_sync:
        client = GitHubClient(GITHUB_TOKEN, GITHUB_USERNAME)
        try:
            print(f"\nFetching recent activity for {GITHUB_USERNAME}...\n")
            inserted = sync_github_activity(client, storage, user_id)
            print(f"Stored {inserted} new activities.\n")
        except GitHubClientError as e:
            print(f"\nError: {e}")
            return 1

    today = date.today()

    start, _ = heatmap_period(months, today)
    counts = storage.get_activity_counts(user_id, since=start)
    display_heatmap(build_heatmap(counts, months, today))

    time_range = TimeRange.from_token(args.range_token)
    activities = storage.get_activities_between(user_id, range_cutoff(time_range, today), today)
    series = build_activity_series(activities)
    display_trends(filter_by_range(series, time_range, now=today), time_range.value)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
