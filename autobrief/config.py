"""
Configuration management for autobrief.

Loads integration credentials and service settings from environment variables.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
load_dotenv()

GITHUB_TOKEN = os.getenv("GITHUB_TOKEN")
GITHUB_USERNAME = os.getenv("GITHUB_USERNAME")

AUTOBRIEF_DB_PATH = os.getenv("AUTOBRIEF_DB_PATH")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEFAULT_HEATMAP_MONTHS = int(os.getenv("DEFAULT_HEATMAP_MONTHS", "6"))


def get_db_path() -> Path:
    """Get the SQLite database path, honoring AUTOBRIEF_DB_PATH."""
    if AUTOBRIEF_DB_PATH:
        return Path(AUTOBRIEF_DB_PATH)
    return Path.home() / ".autobrief" / "activity.db"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the service or console entry point."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def validate_config():
    """Validate that required configuration is present."""
    missing = []

    if not GITHUB_TOKEN or GITHUB_TOKEN == "your_token_here":
        missing.append("GITHUB_TOKEN")

    if not GITHUB_USERNAME or GITHUB_USERNAME == "your_username_here":
        missing.append("GITHUB_USERNAME")

    if missing:
        raise ValueError(
            f"Missing required configuration: {', '.join(missing)}\n"
            "Please copy .env.example to .env and fill in your values.\n"
            "Get a GitHub token at: https://github.com/settings/tokens"
        )
