"""
SQLite-based storage for work activity history.

Provides persistent storage to track activities beyond the integrations'
limited event history, plus the user identity table.
"""

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path

from autobrief.config import get_db_path
from autobrief.date_utils import parse_activity_date
from autobrief.github_client import GitHubClient
from autobrief.activity_parser import parse_github_events

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ("commit", "pull_request", "issue", "meeting", "message", "task")

REQUIRED_FIELDS = ("user_id", "provider", "activity_type", "title", "external_id", "timestamp")

ACTIVITY_COLUMNS = (
    "id, user_id, provider, activity_type, title, description, "
    "external_id, count, timestamp, created_at"
)

SUMMARY_COLUMNS = (
    "id, user_id, date, summary, tasks_completed, meetings_attended, "
    "code_commits, blockers, metadata, created_at"
)

INTEGRATION_COLUMNS = (
    "id, user_id, provider, is_connected, provider_username, metadata, "
    "last_sync_at, created_at, updated_at"
)

INTEGRATION_FIELDS = ("is_connected", "provider_username", "metadata")

HEATMAP_MONTHS_KEY = "heatmap_months"


class DuplicateIntegrationError(ValueError):
    """Raised when a user already has an integration for a provider."""


def _summary_row(row: sqlite3.Row) -> dict:
    summary = dict(row)
    summary["metadata"] = json.loads(summary["metadata"]) if summary["metadata"] else None
    return summary


def _integration_row(row: sqlite3.Row) -> dict:
    integration = dict(row)
    integration["is_connected"] = bool(integration["is_connected"])
    integration["metadata"] = json.loads(integration["metadata"]) if integration["metadata"] else None
    return integration


class ActivityStorage:
    """SQLite-based storage for work activities."""

    def __init__(self, db_path: str | Path | None = None):
        """
        Initialize the activity storage.

        Args:
            db_path: Path to the SQLite database file.
                     Defaults to AUTOBRIEF_DB_PATH or ~/.autobrief/activity.db
        """
        if db_path is None:
            db_path = get_db_path()
        self.db_path = Path(db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create tables and indexes if they don't exist."""
        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS work_activities (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    provider TEXT NOT NULL,
                    activity_type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    external_id TEXT NOT NULL,
                    count INTEGER NOT NULL DEFAULT 1,
                    timestamp TEXT NOT NULL,
                    day TEXT NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(user_id, provider, external_id)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_activities_user_day
                ON work_activities(user_id, day)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    external_uid TEXT NOT NULL UNIQUE,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS daily_summaries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    summary TEXT NOT NULL,
                    tasks_completed INTEGER NOT NULL DEFAULT 0,
                    meetings_attended INTEGER NOT NULL DEFAULT 0,
                    code_commits INTEGER NOT NULL DEFAULT 0,
                    blockers TEXT,
                    metadata TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(user_id, date)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS integrations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    provider TEXT NOT NULL,
                    is_connected INTEGER NOT NULL DEFAULT 0,
                    provider_username TEXT,
                    metadata TEXT,
                    last_sync_at TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(user_id, provider)
                )
            """)
            conn.commit()

    @staticmethod
    def _validate(activity: dict) -> None:
        missing = [field for field in REQUIRED_FIELDS if activity.get(field) in (None, "")]
        if missing:
            raise ValueError(f"Activity is missing required fields: {', '.join(missing)}")

        if activity["activity_type"] not in ACTIVITY_TYPES:
            raise ValueError(f"Unknown activity type: {activity['activity_type']!r}")

        count = activity.get("count", 1)
        if not isinstance(count, int) or count < 0:
            raise ValueError(f"Activity count must be a non-negative integer, got {count!r}")

    def _insert(self, conn: sqlite3.Connection, activity: dict) -> sqlite3.Cursor:
        day = parse_activity_date(activity["timestamp"])
        return conn.execute(
            """
            INSERT OR IGNORE INTO work_activities
                (user_id, provider, activity_type, title, description,
                 external_id, count, timestamp, day)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                activity["user_id"],
                activity["provider"],
                activity["activity_type"],
                activity["title"],
                activity.get("description"),
                str(activity["external_id"]),
                activity.get("count", 1),
                str(activity["timestamp"]),
                day.isoformat(),
            ),
        )

    def save_activity(self, activity: dict) -> tuple[dict, bool]:
        """
        Save a single activity and return the stored row.

        If the activity already exists (same user, provider and external id)
        the existing row is returned unchanged.

        Returns:
            Tuple of (row, created) where created is False for a duplicate

        Raises:
            ValueError: If required fields are missing or the type is unknown
            MalformedDateError: If the timestamp cannot be parsed
        """
        self._validate(activity)
        with self._connect() as conn:
            created = self._insert(conn, activity).rowcount == 1
            conn.commit()
            row = conn.execute(
                f"""
                SELECT {ACTIVITY_COLUMNS} FROM work_activities
                WHERE user_id = ? AND provider = ? AND external_id = ?
                """,
                (activity["user_id"], activity["provider"], str(activity["external_id"])),
            ).fetchone()
        return dict(row), created

    def save_activities(self, activities: list[dict]) -> int:
        """
        Save activities to the database.

        Uses INSERT OR IGNORE to skip duplicates.

        Args:
            activities: WorkActivity dicts, e.g. from parse_github_events

        Returns:
            Number of new activities inserted
        """
        for activity in activities:
            self._validate(activity)

        inserted = 0
        with self._connect() as conn:
            for activity in activities:
                cursor = self._insert(conn, activity)
                inserted += cursor.rowcount
            conn.commit()

        logger.debug("Inserted %d of %d activities", inserted, len(activities))
        return inserted

    def get_user_activities(self, user_id: int, limit: int = 50) -> list[dict]:
        """
        Retrieve a user's most recent activities, newest first.
        """
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {ACTIVITY_COLUMNS} FROM work_activities
                WHERE user_id = ?
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [dict(row) for row in rows]

    def get_activities_between(self, user_id: int, start: date, end: date) -> list[dict]:
        """
        Retrieve a user's activities whose day falls in [start, end].

        Returns:
            Activities sorted by timestamp ascending.
        """
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {ACTIVITY_COLUMNS} FROM work_activities
                WHERE user_id = ? AND day >= ? AND day <= ?
                ORDER BY timestamp, id
                """,
                (user_id, start.isoformat(), end.isoformat()),
            ).fetchall()
        return [dict(row) for row in rows]

    def get_activity_counts(
        self,
        user_id: int,
        since: date | None = None,
        activity_type: str | None = None,
    ) -> list[dict]:
        """
        Get daily activity counts grouped by day and type.

        Args:
            user_id: Owner of the activities
            since: Only include days on or after this date
            activity_type: Only include this activity type

        Returns:
            List of {date, count, type} dicts sorted by date.
        """
        query = """
            SELECT day, activity_type, SUM(count) AS total
            FROM work_activities
            WHERE user_id = ?
        """
        params: list = [user_id]
        if since is not None:
            query += " AND day >= ?"
            params.append(since.isoformat())
        if activity_type is not None:
            query += " AND activity_type = ?"
            params.append(activity_type)
        query += " GROUP BY day, activity_type ORDER BY day, activity_type"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            {"date": row["day"], "count": row["total"], "type": row["activity_type"]}
            for row in rows
        ]

    def clear_user_activities(self, user_id: int) -> int:
        """Delete all activities for a user. Returns the number deleted."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM work_activities WHERE user_id = ?", (user_id,)
            )
            conn.commit()
        logger.info("Cleared %d activities for user %d", cursor.rowcount, user_id)
        return cursor.rowcount

    def resolve_user_id(self, external_uid: str) -> int:
        """
        Map an external auth identifier to a stable integer user id.

        Ids are assigned sequentially on first sight, so two identifiers
        never share an id.

        Raises:
            ValueError: If external_uid is empty
        """
        if not external_uid or not external_uid.strip():
            raise ValueError("external_uid must be a non-empty string")

        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO users (external_uid) VALUES (?)",
                (external_uid,),
            )
            conn.commit()
            row = conn.execute(
                "SELECT id FROM users WHERE external_uid = ?", (external_uid,)
            ).fetchone()
        return row["id"]

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        """
        Get a setting value by key.

        Args:
            key: The setting key
            default: Default value if key doesn't exist

        Returns:
            The setting value or default
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?",
                (key,),
            ).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        """
        Set a setting value (upserts).
        """
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )
            conn.commit()

    def get_heatmap_months(self, default: int) -> int:
        """Return the saved heatmap window, or default when unset or invalid."""
        value = self.get_setting(HEATMAP_MONTHS_KEY)
        if value and value.isdigit() and int(value) > 0:
            return int(value)
        return default

    def set_heatmap_months(self, months: int) -> None:
        """
        Persist the preferred heatmap window.

        Raises:
            ValueError: If months is not a positive integer
        """
        if isinstance(months, bool) or not isinstance(months, int) or months < 1:
            raise ValueError(f"Heatmap window must be a positive integer, got {months!r}")
        self.set_setting(HEATMAP_MONTHS_KEY, str(months))

    def save_daily_summary(self, summary: dict) -> tuple[dict, bool]:
        """
        Save a user's summary for one day, replacing any earlier one.

        Args:
            summary: Dict with user_id, date and summary, plus optional
                tasks_completed, meetings_attended, code_commits, blockers
                and metadata (any JSON-serializable dict)

        Returns:
            Tuple of (row, created) where created is False when an existing
            summary for that day was replaced

        Raises:
            ValueError: If required fields are missing or a count is negative
            MalformedDateError: If the date cannot be parsed
        """
        missing = [f for f in ("user_id", "date", "summary") if summary.get(f) in (None, "")]
        if missing:
            raise ValueError(f"Summary is missing required fields: {', '.join(missing)}")

        counts = {}
        for field in ("tasks_completed", "meetings_attended", "code_commits"):
            value = summary.get(field) or 0
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{field} must be a non-negative integer, got {value!r}")
            counts[field] = value

        day = parse_activity_date(summary["date"]).isoformat()
        metadata = summary.get("metadata")

        with self._connect() as conn:
            existing = conn.execute(
                "SELECT id FROM daily_summaries WHERE user_id = ? AND date = ?",
                (summary["user_id"], day),
            ).fetchone()
            conn.execute(
                """
                INSERT INTO daily_summaries
                    (user_id, date, summary, tasks_completed, meetings_attended,
                     code_commits, blockers, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, date) DO UPDATE SET
                    summary = excluded.summary,
                    tasks_completed = excluded.tasks_completed,
                    meetings_attended = excluded.meetings_attended,
                    code_commits = excluded.code_commits,
                    blockers = excluded.blockers,
                    metadata = excluded.metadata
                """,
                (
                    summary["user_id"],
                    day,
                    summary["summary"],
                    counts["tasks_completed"],
                    counts["meetings_attended"],
                    counts["code_commits"],
                    summary.get("blockers"),
                    json.dumps(metadata) if metadata is not None else None,
                ),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {SUMMARY_COLUMNS} FROM daily_summaries WHERE user_id = ? AND date = ?",
                (summary["user_id"], day),
            ).fetchone()

        return _summary_row(row), existing is None

    def get_daily_summary(self, user_id: int, day: date | str) -> dict | None:
        """Get a user's summary for one day, or None if there is none."""
        day = parse_activity_date(day)
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {SUMMARY_COLUMNS} FROM daily_summaries WHERE user_id = ? AND date = ?",
                (user_id, day.isoformat()),
            ).fetchone()
        return _summary_row(row) if row else None

    def get_user_daily_summaries(self, user_id: int, limit: int = 30) -> list[dict]:
        """Get a user's most recent daily summaries, newest date first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {SUMMARY_COLUMNS} FROM daily_summaries
                WHERE user_id = ?
                ORDER BY date DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [_summary_row(row) for row in rows]

    def create_integration(
        self,
        user_id: int,
        provider: str,
        is_connected: bool = False,
        provider_username: str | None = None,
        metadata: dict | None = None,
    ) -> dict:
        """
        Register an integration for a user.

        Raises:
            ValueError: If provider is empty
            DuplicateIntegrationError: If the user already has this provider
        """
        if not provider or not provider.strip():
            raise ValueError("provider must be a non-empty string")

        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO integrations
                        (user_id, provider, is_connected, provider_username, metadata)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        provider,
                        int(is_connected),
                        provider_username,
                        json.dumps(metadata) if metadata is not None else None,
                    ),
                )
            except sqlite3.IntegrityError:
                raise DuplicateIntegrationError(
                    f"User {user_id} already has a {provider} integration"
                )
            conn.commit()
            integration_id = cursor.lastrowid

        logger.info("Registered %s integration %d for user %d", provider, integration_id, user_id)
        return self.get_integration(integration_id)

    def get_integration(self, integration_id: int) -> dict | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {INTEGRATION_COLUMNS} FROM integrations WHERE id = ?",
                (integration_id,),
            ).fetchone()
        return _integration_row(row) if row else None

    def get_user_integrations(self, user_id: int) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {INTEGRATION_COLUMNS} FROM integrations WHERE user_id = ? ORDER BY provider",
                (user_id,),
            ).fetchall()
        return [_integration_row(row) for row in rows]

    def update_integration(self, integration_id: int, updates: dict) -> dict | None:
        """
        Update an integration's connection state, username or metadata.

        Returns:
            The updated integration, or None if it doesn't exist

        Raises:
            ValueError: If updates names a field that can't be changed
        """
        unknown = set(updates) - set(INTEGRATION_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update integration fields: {', '.join(sorted(unknown))}")

        values = dict(updates)
        if "is_connected" in values:
            values["is_connected"] = int(bool(values["is_connected"]))
        if values.get("metadata") is not None:
            values["metadata"] = json.dumps(values["metadata"])

        # Column names come from INTEGRATION_FIELDS only
        assignments = "".join(f"{field} = ?, " for field in values)
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE integrations SET {assignments}updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (*values.values(), integration_id),
            )
            conn.commit()
        if cursor.rowcount == 0:
            return None
        return self.get_integration(integration_id)

    def delete_integration(self, integration_id: int) -> bool:
        """Delete an integration. Returns False if it didn't exist."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM integrations WHERE id = ?", (integration_id,))
            conn.commit()
        return cursor.rowcount > 0

    def mark_integration_synced(self, integration_id: int) -> str:
        """Record a successful sync and return its UTC timestamp."""
        synced_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE integrations
                SET last_sync_at = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (synced_at, integration_id),
            )
            conn.commit()
        return synced_at


def sync_github_activity(
    client: GitHubClient,
    storage: ActivityStorage,
    user_id: int,
    pages: int = 3,
) -> int:
    """
    Fetch GitHub events, convert them to activities and store them.

    Args:
        client: GitHub client for fetching events
        storage: Activity storage instance
        user_id: Owner of the stored activities
        pages: Number of event pages to request

    Returns:
        Number of newly stored activities

    Raises:
        GitHubClientError: If the GitHub request fails
    """
    events = client.get_user_events(per_page=100, pages=pages)
    activities = parse_github_events(events, user_id)
    inserted = storage.save_activities(activities)
    logger.info(
        "GitHub sync for user %d: %d events, %d new activities",
        user_id, len(events), inserted,
    )
    return inserted
