"""
Tests for the GitHub client and configuration.
"""

import os
import pytest
from unittest.mock import patch, MagicMock

import requests

from autobrief.config import validate_config
from autobrief.github_client import GitHubClient, GitHubClientError, NetworkError


def _response(status_code=200, json_data=None, headers=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = json_data if json_data is not None else []
    response.headers = headers or {}
    response.text = text
    return response


class TestConfig:
    """Tests for configuration validation."""

    def test_validate_config_missing_token(self):
        """Should raise error when token is missing."""
        with patch.dict(os.environ, {"GITHUB_TOKEN": "", "GITHUB_USERNAME": "testuser"}):
            with patch("autobrief.config.GITHUB_TOKEN", ""):
                with patch("autobrief.config.GITHUB_USERNAME", "testuser"):
                    with pytest.raises(ValueError, match="GITHUB_TOKEN"):
                        validate_config()

    def test_validate_config_missing_username(self):
        """Should raise error when username is missing."""
        with patch("autobrief.config.GITHUB_TOKEN", "valid_token"):
            with patch("autobrief.config.GITHUB_USERNAME", ""):
                with pytest.raises(ValueError, match="GITHUB_USERNAME"):
                    validate_config()

    def test_validate_config_placeholder_values(self):
        """Should reject placeholder values from .env.example."""
        with patch("autobrief.config.GITHUB_TOKEN", "your_token_here"):
            with patch("autobrief.config.GITHUB_USERNAME", "your_username_here"):
                with pytest.raises(ValueError):
                    validate_config()

    def test_validate_config_ok(self):
        with patch("autobrief.config.GITHUB_TOKEN", "valid_token"):
            with patch("autobrief.config.GITHUB_USERNAME", "someone"):
                validate_config()


class TestGitHubClient:
    """Tests for the GitHub API client."""

    def test_client_initialization(self):
        """Client should store credentials and set up session."""
        client = GitHubClient("test_token", "test_user")

        assert client.token == "test_token"
        assert client.username == "test_user"
        assert "Bearer test_token" in client.session.headers["Authorization"]
        assert client.session.headers["Accept"] == "application/vnd.github+json"

    @patch("requests.Session.get")
    def test_get_user_events_success(self, mock_get):
        """Should return events on successful API call."""
        mock_get.return_value = _response(json_data=[{"type": "PushEvent"}])

        client = GitHubClient("test_token", "test_user")
        events = client.get_user_events()

        assert events == [{"type": "PushEvent"}]
        mock_get.assert_called_once()
        assert mock_get.call_args.kwargs["params"] == {"per_page": 100, "page": 1}

    @patch("requests.Session.get")
    def test_pagination_stops_on_short_page(self, mock_get):
        mock_get.side_effect = [
            _response(json_data=[{"id": str(i)} for i in range(2)]),
            _response(json_data=[{"id": "last"}]),
        ]

        client = GitHubClient("test_token", "test_user")
        events = client.get_user_events(per_page=2, pages=5)

        assert len(events) == 3
        assert mock_get.call_count == 2

    @patch("requests.Session.get")
    def test_per_page_capped_at_100(self, mock_get):
        mock_get.return_value = _response(json_data=[])

        GitHubClient("t", "u").get_user_events(per_page=500)
        assert mock_get.call_args.kwargs["params"]["per_page"] == 100

    @pytest.mark.parametrize(
        "status,match",
        [
            (401, "Authentication failed"),
            (404, "not found"),
            (403, "rate limit"),
            (500, "GitHub API error: 500"),
        ],
    )
    @patch("requests.Session.get")
    def test_http_errors(self, mock_get, status, match):
        mock_get.return_value = _response(
            status_code=status, headers={"X-RateLimit-Remaining": "0"}, text="boom"
        )

        client = GitHubClient("test_token", "test_user")
        with pytest.raises(GitHubClientError, match=match):
            client.get_user_events()

    @patch("requests.Session.get")
    def test_transport_failure_is_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("no route")

        client = GitHubClient("test_token", "test_user")
        with pytest.raises(NetworkError, match="Could not reach GitHub"):
            client.get_user_events()

    def test_client_error_is_network_error(self):
        assert issubclass(GitHubClientError, NetworkError)
