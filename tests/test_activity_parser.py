"""
Tests for GitHub event parsing.
"""

import pytest

from autobrief.activity_parser import parse_github_events


def _push(event_id="1", size=None, commits=None, created_at="2026-01-22T10:00:00Z"):
    payload = {"ref": "refs/heads/main", "commits": commits or []}
    if size is not None:
        payload["size"] = size
    return {
        "id": event_id,
        "type": "PushEvent",
        "created_at": created_at,
        "repo": {"name": "user/repo"},
        "payload": payload,
    }


class TestPushEvents:
    """Tests for PushEvent parsing."""

    def test_push_becomes_commit_activity(self):
        events = [_push(commits=[{"sha": "abc1234567", "message": "Fix bug\n\nDetails"}])]
        result = parse_github_events(events, user_id=7)

        assert len(result) == 1
        activity = result[0]
        assert activity["user_id"] == 7
        assert activity["provider"] == "github"
        assert activity["activity_type"] == "commit"
        assert activity["external_id"] == "1"
        assert activity["timestamp"] == "2026-01-22T10:00:00Z"
        assert activity["count"] == 1
        assert activity["title"] == "Pushed 1 commit to user/repo (main)"
        assert activity["description"] == "Fix bug"

    def test_size_takes_precedence_over_commit_list(self):
        events = [_push(size=5, commits=[{"sha": "a", "message": "one"}])]
        assert parse_github_events(events, user_id=1)[0]["count"] == 5

    def test_commit_list_length_used_without_size(self):
        commits = [{"sha": "a", "message": "one"}, {"sha": "b", "message": "two"}]
        activity = parse_github_events([_push(commits=commits)], user_id=1)[0]
        assert activity["count"] == 2
        assert "2 commits" in activity["title"]

    def test_push_without_details_counts_one(self):
        assert parse_github_events([_push()], user_id=1)[0]["count"] == 1


class TestOtherEvents:
    """Tests for pull request and issue events."""

    def test_opened_pull_request(self):
        event = {
            "id": "99",
            "type": "PullRequestEvent",
            "created_at": "2026-01-22T10:00:00Z",
            "repo": {"name": "org/app"},
            "payload": {"action": "opened", "number": 12, "pull_request": {"title": "Add heatmap"}},
        }
        activity = parse_github_events([event], user_id=1)[0]

        assert activity["activity_type"] == "pull_request"
        assert activity["title"] == "Opened PR #12 in org/app: Add heatmap"

    def test_opened_issue(self):
        event = {
            "id": "100",
            "type": "IssuesEvent",
            "created_at": "2026-01-22T10:00:00Z",
            "repo": {"name": "org/app"},
            "payload": {"action": "opened", "issue": {"number": 3, "title": "Crash", "body": "Steps"}},
        }
        activity = parse_github_events([event], user_id=1)[0]

        assert activity["activity_type"] == "issue"
        assert activity["title"] == "Opened issue #3 in org/app: Crash"
        assert activity["description"] == "Steps"

    @pytest.mark.parametrize("title", ["Fix:", "Trailing space ", "WIP: "])
    def test_title_punctuation_is_kept(self, title):
        events = [
            {
                "id": "102",
                "type": "PullRequestEvent",
                "created_at": "2026-01-22T10:00:00Z",
                "repo": {"name": "org/app"},
                "payload": {"action": "opened", "number": 7, "pull_request": {"title": title}},
            },
            {
                "id": "103",
                "type": "IssuesEvent",
                "created_at": "2026-01-22T10:00:00Z",
                "repo": {"name": "org/app"},
                "payload": {"action": "opened", "issue": {"number": 8, "title": title}},
            },
        ]
        pull_request, issue = parse_github_events(events, user_id=1)

        assert pull_request["title"] == f"Opened PR #7 in org/app: {title}"
        assert issue["title"] == f"Opened issue #8 in org/app: {title}"

    @pytest.mark.parametrize("payload_title", [None, ""])
    def test_missing_title_has_no_separator(self, payload_title):
        event = {
            "id": "104",
            "type": "IssuesEvent",
            "created_at": "2026-01-22T10:00:00Z",
            "repo": {"name": "org/app"},
            "payload": {"action": "opened", "issue": {"number": 9, "title": payload_title}},
        }
        activity = parse_github_events([event], user_id=1)[0]

        assert activity["title"] == "Opened issue #9 in org/app"

    def test_closed_pull_request_is_skipped(self):
        event = {
            "id": "101",
            "type": "PullRequestEvent",
            "created_at": "2026-01-22T10:00:00Z",
            "payload": {"action": "closed", "number": 12},
        }
        assert parse_github_events([event], user_id=1) == []

    def test_unhandled_event_types_are_skipped(self):
        events = [
            {"id": "1", "type": "WatchEvent", "created_at": "2026-01-22T10:00:00Z"},
            {"id": "2", "type": "CreateEvent", "created_at": "2026-01-22T10:00:00Z"},
        ]
        assert parse_github_events(events, user_id=1) == []

    def test_events_without_id_or_timestamp_are_skipped(self):
        no_id = _push(event_id=None)
        no_time = _push(created_at="")
        assert parse_github_events([no_id, no_time], user_id=1) == []

    def test_empty_input(self):
        assert parse_github_events([], user_id=1) == []
