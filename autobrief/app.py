"""
FastAPI web application for autobrief.

Provides REST API endpoints for activities, heatmap, trends, analytics,
daily summaries and integrations.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from autobrief.config import (
    DEFAULT_HEATMAP_MONTHS,
    GITHUB_TOKEN,
    GITHUB_USERNAME,
    configure_logging,
    validate_config,
)
from autobrief.activity_parser import PROVIDER
from autobrief.date_utils import MalformedDateError, parse_activity_date
from autobrief.github_client import GitHubClient, GitHubClientError
from autobrief.heatmap_calculator import build_heatmap, heatmap_period
from autobrief.stats_calculator import (
    calculate_integration_breakdown,
    calculate_streak_days,
    calculate_weekly_stats,
)
from autobrief.storage import (
    ACTIVITY_TYPES,
    ActivityStorage,
    DuplicateIntegrationError,
    sync_github_activity,
)
from autobrief.trend_calculator import (
    TimeRange,
    build_activity_series,
    filter_by_range,
    range_cutoff,
)

logger = logging.getLogger(__name__)

# Long enough to cover the quarter range plus its calendar-month slack
TREND_HISTORY_DAYS = 93


class UserResolve(BaseModel):
    """Request model for mapping an auth identifier to a user id."""

    external_uid: str = Field(..., min_length=1, max_length=256, description="External auth identifier")


class ActivityCreate(BaseModel):
    """Request model for recording a work activity."""

    user_id: int = Field(..., ge=1)
    provider: str = Field(..., min_length=1, max_length=50, description="Integration name, e.g. 'github'")
    activity_type: str = Field(..., description=f"One of: {', '.join(ACTIVITY_TYPES)}")
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(None, max_length=5000)
    external_id: str = Field(..., min_length=1, max_length=200, description="ID from the external service")
    count: int = Field(1, ge=0, le=10000)
    timestamp: str = Field(..., description="ISO-8601 date or date-time")


class HeatmapSettingUpdate(BaseModel):
    """Request model for updating the default heatmap window."""

    months: int = Field(..., ge=1, le=120, description="Heatmap window in months (1-120)")


class DailySummaryCreate(BaseModel):
    """Request model for saving a user's summary of one day."""

    user_id: int = Field(..., ge=1)
    date: str = Field(..., description="Day summarised, YYYY-MM-DD")
    summary: str = Field(..., min_length=1, max_length=10000)
    tasks_completed: int = Field(0, ge=0)
    meetings_attended: int = Field(0, ge=0)
    code_commits: int = Field(0, ge=0)
    blockers: str | None = Field(None, max_length=5000)
    metadata: dict | None = None


class IntegrationCreate(BaseModel):
    """Request model for registering an integration."""

    user_id: int = Field(..., ge=1)
    provider: str = Field(..., min_length=1, max_length=50, description="Integration name, e.g. 'github'")
    is_connected: bool = False
    provider_username: str | None = Field(None, max_length=200)
    metadata: dict | None = None


class IntegrationUpdate(BaseModel):
    """Request model for changing an integration. Omitted fields are kept."""

    is_connected: bool | None = None
    provider_username: str | None = Field(None, max_length=200)
    metadata: dict | None = None


def get_storage(request: Request) -> ActivityStorage:
    return request.app.state.storage


def get_github_client(request: Request) -> GitHubClient:
    """Return the injected GitHub client, building one from config if absent."""
    client = request.app.state.github_client
    if client is None:
        try:
            validate_config()
        except ValueError as e:
            raise HTTPException(status_code=500, detail=f"Configuration error: {e}")
        client = GitHubClient(GITHUB_TOKEN, GITHUB_USERNAME)
        request.app.state.github_client = client
    return client


def _parse_query_date(value: str, name: str) -> date:
    try:
        return parse_activity_date(value)
    except MalformedDateError:
        raise HTTPException(status_code=422, detail=f"Invalid {name}: {value!r}")


def create_app(
    storage: ActivityStorage | None = None,
    github_client: GitHubClient | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        storage: Activity storage to serve from. Created from config on
            startup when not provided.
        github_client: GitHub client used for syncs. Created from config on
            first sync when not provided.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        if app.state.storage is None:
            app.state.storage = ActivityStorage()
            logger.info("Using activity database at %s", app.state.storage.db_path)
        yield

    app = FastAPI(
        title="autobrief",
        description="Team work-summary analytics",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.github_client = github_client

    @app.exception_handler(MalformedDateError)
    async def malformed_date_handler(request: Request, exc: MalformedDateError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/users/resolve")
    def resolve_user(body: UserResolve, storage: ActivityStorage = Depends(get_storage)):
        """Map an external auth identifier to the internal user id."""
        try:
            user_id = storage.resolve_user_id(body.external_uid)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"user_id": user_id}

    @app.get("/api/activities")
    def list_activities(
        user_id: int = Query(..., ge=1),
        limit: int = Query(50, ge=1, le=500),
        storage: ActivityStorage = Depends(get_storage),
    ):
        """Get a user's most recent activities."""
        return storage.get_user_activities(user_id, limit)

    @app.get("/api/activities/range")
    def list_activities_in_range(
        user_id: int = Query(..., ge=1),
        start_date: str = Query(...),
        end_date: str = Query(...),
        storage: ActivityStorage = Depends(get_storage),
    ):
        """Get a user's activities between two dates (inclusive)."""
        start = _parse_query_date(start_date, "start_date")
        end = _parse_query_date(end_date, "end_date")
        if start > end:
            raise HTTPException(status_code=400, detail="start_date must not be after end_date")
        return storage.get_activities_between(user_id, start, end)

    @app.post("/api/activities", status_code=201)
    def create_activity(
        activity: ActivityCreate,
        response: Response,
        storage: ActivityStorage = Depends(get_storage),
    ):
        """
        Record a single work activity.

        Responds 201 with the new row, or 200 with the stored row when the
        activity was already recorded.
        """
        try:
            row, created = storage.save_activity(activity.model_dump())
        except MalformedDateError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not created:
            response.status_code = 200
        return row

    @app.delete("/api/activities/user/{user_id}", status_code=204)
    def clear_activities(user_id: int, storage: ActivityStorage = Depends(get_storage)):
        """Delete every activity belonging to a user."""
        storage.clear_user_activities(user_id)
        return Response(status_code=204)

    @app.get("/api/heatmap")
    def get_heatmap(
        user_id: int = Query(..., ge=1),
        months: int | None = Query(None, ge=1, le=120),
        activity_type: str | None = Query(None, alias="type", description="Restrict to one activity type"),
        storage: ActivityStorage = Depends(get_storage),
    ):
        """
        Get the month-grouped activity heatmap.

        Returns:
            JSON from build_heatmap()
        """
        if months is None:
            months = storage.get_heatmap_months(DEFAULT_HEATMAP_MONTHS)

        start, _ = heatmap_period(months)
        counts = storage.get_activity_counts(user_id, since=start, activity_type=activity_type)
        return build_heatmap(counts, months)

    @app.get("/api/settings/heatmap_months")
    def get_heatmap_months(storage: ActivityStorage = Depends(get_storage)):
        """Get the heatmap window used when a request gives none."""
        return {"months": storage.get_heatmap_months(DEFAULT_HEATMAP_MONTHS)}

    @app.put("/api/settings/heatmap_months")
    def set_heatmap_months(
        update: HeatmapSettingUpdate,
        storage: ActivityStorage = Depends(get_storage),
    ):
        """
        Set the default heatmap window.

        Args:
            update: HeatmapSettingUpdate with months (1-120)
        """
        storage.set_heatmap_months(update.months)
        return {"months": update.months}

    @app.get("/api/trends")
    def get_trends(
        user_id: int = Query(..., ge=1),
        range_token: str = Query("week", alias="range", description="'week', 'month' or 'quarter'"),
        storage: ActivityStorage = Depends(get_storage),
    ):
        """
        Get the per-category activity series for a trailing range.

        Unknown range values are served as 'week'.
        """
        today = date.today()
        time_range = TimeRange.from_token(range_token)

        activities = storage.get_activities_between(
            user_id, today - timedelta(days=TREND_HISTORY_DAYS), today
        )
        series = build_activity_series(activities)
        return {
            "range": time_range.value,
            "cutoff": range_cutoff(time_range, today).isoformat(),
            "points": filter_by_range(series, time_range, now=today),
        }

    @app.get("/api/analytics/{user_id}")
    def get_analytics(user_id: int, storage: ActivityStorage = Depends(get_storage)):
        """Get the analytics summary shown on the dashboard."""
        today = date.today()
        recent = storage.get_activities_between(user_id, today - timedelta(days=6), today)
        history = storage.get_activities_between(
            user_id, today - timedelta(days=TREND_HISTORY_DAYS), today
        )

        return {
            "daily_activity": build_activity_series(recent, days=7, today=today),
            "weekly_stats": calculate_weekly_stats(recent, today=today),
            "integration_breakdown": calculate_integration_breakdown(history),
            "streak_days": calculate_streak_days(history, today=today),
        }

    @app.get("/api/analytics/{user_id}/export")
    def export_analytics(user_id: int, storage: ActivityStorage = Depends(get_storage)):
        """Download every activity for a user as a JSON attachment."""
        activities = storage.get_activities_between(user_id, date.min, date.max)
        filename = f"autobrief-data-{date.today().isoformat()}.json"
        body = json.dumps(
            {"user_id": user_id, "exported_at": date.today().isoformat(), "activities": activities},
            indent=2,
        )
        return Response(
            content=body,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/api/integrations/github/sync")
    def sync_github(
        user_id: int = Query(..., ge=1),
        storage: ActivityStorage = Depends(get_storage),
        client: GitHubClient = Depends(get_github_client),
    ):
        """Pull recent GitHub events into the activity store."""
        try:
            inserted = sync_github_activity(client, storage, user_id)
        except GitHubClientError as e:
            logger.warning("GitHub sync failed for user %d: %s", user_id, e)
            raise HTTPException(status_code=502, detail=str(e))
        return {"provider": "github", "inserted": inserted}

    @app.get("/api/summaries")
    def list_summaries(
        user_id: int = Query(..., ge=1),
        limit: int = Query(30, ge=1, le=365),
        storage: ActivityStorage = Depends(get_storage),
    ):
        """Get a user's daily summaries, newest day first."""
        return storage.get_user_daily_summaries(user_id, limit)

    @app.get("/api/summaries/{day}")
    def get_summary(
        day: str,
        user_id: int = Query(..., ge=1),
        storage: ActivityStorage = Depends(get_storage),
    ):
        """Get a user's summary for one day (YYYY-MM-DD)."""
        summary = storage.get_daily_summary(user_id, _parse_query_date(day, "date"))
        if summary is None:
            raise HTTPException(status_code=404, detail="Summary not found")
        return summary

    @app.post("/api/summaries", status_code=201)
    def save_summary(
        body: DailySummaryCreate,
        response: Response,
        storage: ActivityStorage = Depends(get_storage),
    ):
        """
        Save a daily summary.

        Responds 201 for a new day, 200 when the day's summary was replaced.
        """
        try:
            summary, created = storage.save_daily_summary(body.model_dump())
        except MalformedDateError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not created:
            response.status_code = 200
        return summary

    @app.get("/api/integrations")
    def list_integrations(
        user_id: int = Query(..., ge=1),
        storage: ActivityStorage = Depends(get_storage),
    ):
        """Get the integrations registered for a user."""
        return storage.get_user_integrations(user_id)

    @app.post("/api/integrations", status_code=201)
    def create_integration(body: IntegrationCreate, storage: ActivityStorage = Depends(get_storage)):
        """Register an integration for a user."""
        try:
            return storage.create_integration(**body.model_dump())
        except DuplicateIntegrationError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.patch("/api/integrations/{integration_id}")
    def update_integration(
        integration_id: int,
        body: IntegrationUpdate,
        storage: ActivityStorage = Depends(get_storage),
    ):
        """Change an integration's connection state, username or metadata."""
        integration = storage.update_integration(integration_id, body.model_dump(exclude_unset=True))
        if integration is None:
            raise HTTPException(status_code=404, detail="Integration not found")
        return integration

    @app.delete("/api/integrations/{integration_id}", status_code=204)
    def delete_integration(integration_id: int, storage: ActivityStorage = Depends(get_storage)):
        """Remove an integration. Stored activities are kept."""
        if not storage.delete_integration(integration_id):
            raise HTTPException(status_code=404, detail="Integration not found")
        return Response(status_code=204)

    @app.post("/api/integrations/{integration_id}/sync")
    def sync_integration(
        integration_id: int,
        request: Request,
        storage: ActivityStorage = Depends(get_storage),
    ):
        """
        Pull recent events for a registered integration.

        Only connected GitHub integrations can be synced.
        """
        integration = storage.get_integration(integration_id)
        if integration is None:
            raise HTTPException(status_code=404, detail="Integration not found")
        if not integration["is_connected"]:
            raise HTTPException(status_code=400, detail="Integration is not connected")
        if integration["provider"] != PROVIDER:
            raise HTTPException(
                status_code=400,
                detail=f"Sync not supported for provider: {integration['provider']}",
            )

        client = get_github_client(request)
        user_id = integration["user_id"]
        try:
            inserted = sync_github_activity(client, storage, user_id)
        except GitHubClientError as e:
            logger.warning("GitHub sync failed for integration %d: %s", integration_id, e)
            raise HTTPException(status_code=502, detail=str(e))

        return {
            "success": True,
            "inserted": inserted,
            "last_sync_at": storage.mark_integration_synced(integration_id),
        }

    return app


app = create_app()
