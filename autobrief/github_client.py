"""
GitHub API client for fetching user activity.
"""

import logging

import requests

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """Base exception for failures fetching activity from an integration."""

    pass


class GitHubClientError(NetworkError):
    """Base exception for GitHub client errors."""

    pass


class GitHubClient:
    """Client for interacting with the GitHub API."""

    BASE_URL = "https://api.github.com"

    def __init__(self, token: str, username: str, timeout: float = 10.0):
        """
        Initialize the GitHub client.

        Args:
            token: GitHub personal access token
            username: GitHub username to fetch events for
            timeout: Per-request timeout in seconds
        """
        self.token = token
        self.username = username
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )

    def _get(self, url: str, params: dict) -> requests.Response:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise GitHubClientError(f"Could not reach GitHub: {e}") from e

        if response.status_code == 401:
            raise GitHubClientError(
                "Authentication failed. Check your GITHUB_TOKEN is valid."
            )
        elif response.status_code == 404:
            raise GitHubClientError(f"User '{self.username}' not found on GitHub.")
        elif response.status_code == 403:
            # Check for rate limiting
            remaining = response.headers.get("X-RateLimit-Remaining", "unknown")
            raise GitHubClientError(
                f"API rate limit exceeded or access forbidden. "
                f"Remaining requests: {remaining}"
            )
        elif not response.ok:
            raise GitHubClientError(
                f"GitHub API error: {response.status_code} - {response.text}"
            )

        return response

    def get_user_events(self, per_page: int = 100, pages: int = 1) -> list[dict]:
        """
        Fetch recent events for the configured user.

        Args:
            per_page: Number of events per page (max 100)
            pages: Number of pages to fetch; stops early on a short page

        Returns:
            List of event dictionaries from the GitHub API

        Raises:
            GitHubClientError: If the API request fails
        """
        url = f"{self.BASE_URL}/users/{self.username}/events"
        per_page = min(per_page, 100)

        events: list[dict] = []
        for page in range(1, pages + 1):
            response = self._get(url, {"per_page": per_page, "page": page})
            batch = response.json()
            events.extend(batch)
            if len(batch) < per_page:
                break

        logger.info("Fetched %d GitHub events for %s", len(events), self.username)
        return events
