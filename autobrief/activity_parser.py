"""
Parse work activities from GitHub API events.
"""

PROVIDER = "github"


def _titled(prefix: str, title: str | None) -> str:
    return f"{prefix}: {title}" if title else prefix


def _push_activity(event: dict) -> dict:
    payload = event.get("payload", {})
    commits = payload.get("commits", [])
    # Use size if explicitly provided, otherwise count commits
    # Default to 1 if no commit info available (API sometimes omits details)
    if "size" in payload:
        commit_count = payload["size"]
    elif commits:
        commit_count = len(commits)
    else:
        commit_count = 1

    repo = event.get("repo", {}).get("name", "unknown")
    branch = payload.get("ref", "").removeprefix("refs/heads/")
    first_message = commits[0].get("message", "").split("\n")[0] if commits else ""

    plural = "commit" if commit_count == 1 else "commits"
    title = f"Pushed {commit_count} {plural} to {repo}"
    if branch:
        title = f"{title} ({branch})"

    return {
        "activity_type": "commit",
        "title": title,
        "description": first_message or None,
        "count": commit_count,
    }


def _pull_request_activity(event: dict) -> dict | None:
    payload = event.get("payload", {})
    if payload.get("action") != "opened":
        return None

    pull_request = payload.get("pull_request", {})
    repo = event.get("repo", {}).get("name", "unknown")
    return {
        "activity_type": "pull_request",
        "title": _titled(f"Opened PR #{payload.get('number', '?')} in {repo}", pull_request.get("title")),
        "description": pull_request.get("body") or None,
        "count": 1,
    }


def _issue_activity(event: dict) -> dict | None:
    payload = event.get("payload", {})
    if payload.get("action") != "opened":
        return None

    issue = payload.get("issue", {})
    repo = event.get("repo", {}).get("name", "unknown")
    return {
        "activity_type": "issue",
        "title": _titled(f"Opened issue #{issue.get('number', '?')} in {repo}", issue.get("title")),
        "description": issue.get("body") or None,
        "count": 1,
    }


_HANDLERS = {
    "PushEvent": _push_activity,
    "PullRequestEvent": _pull_request_activity,
    "IssuesEvent": _issue_activity,
}


def parse_github_events(events: list[dict], user_id: int) -> list[dict]:
    """
    Parse work activities from GitHub API events.

    Handles PushEvent (commits), opened PullRequestEvent and opened
    IssuesEvent. Other event types are skipped.

    Args:
        events: List of GitHub API event dictionaries
        user_id: Owner of the resulting activities

    Returns:
        List of WorkActivity dicts ready for ActivityStorage.save_activities
    """
    activities = []

    for event in events:
        handler = _HANDLERS.get(event.get("type"))
        if handler is None:
            continue

        # Events without a timestamp or id can't be placed or de-duplicated
        created_at = event.get("created_at")
        event_id = event.get("id")
        if not created_at or not event_id:
            continue

        activity = handler(event)
        if activity is None:
            continue

        activity.update({
            "user_id": user_id,
            "provider": PROVIDER,
            "external_id": str(event_id),
            "timestamp": created_at,
        })
        activities.append(activity)

    return activities
