"""Analytics router: public event tracking and daily rollups."""
from datetime import date

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from podslice.config import settings
from podslice.database import get_db
from podslice.errors import ValidationFailed
from podslice.models.user import User
from podslice.rate_limit import limiter
from podslice.auth.dependencies import get_current_active_user, ensure_organization_admin
from podslice.schemas.analytics import (
    AggregateRequest, AggregateResponse,
    DailyAnalyticsListResponse, DailyAnalyticsResponse,
    TrackEventRequest, TrackEventResponse,
)
from podslice.services.analytics import aggregate_daily_analytics, list_daily_analytics, record_event

router = APIRouter()


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else None)


@router.post("/api/analytics/track", response_model=TrackEventResponse)
@limiter.limit(settings.TRACKING_RATE_LIMIT)
async def track_event(
    request: Request,
    event: TrackEventRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Record one analytics event. Public; called by summary pages and the player.

    - view / share also bump the summary's display counters
    """
    recorded = await record_event(
        db,
        summary_id=event.summary_id,
        event_type=event.event_type,
        metadata=event.metadata,
        duration_ms=event.duration_ms,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )
    return TrackEventResponse(event_id=recorded.uuid)


@router.post("/api/analytics/aggregate", response_model=AggregateResponse)
async def aggregate(
    request_data: AggregateRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Roll raw events up into daily counters for an organization (admins only).

    Additive unless ``replace`` is set: re-running over the same window
    without it double-counts.
    """
    ensure_organization_admin(current_user, request_data.organization_id)

    written = await aggregate_daily_analytics(
        db,
        request_data.organization_id,
        request_data.from_time,
        request_data.to_time,
        replace=request_data.replace,
    )
    return AggregateResponse(rollups_written=written)


@router.get("/api/analytics/daily", response_model=DailyAnalyticsListResponse)
async def get_daily_analytics(
    from_day: date = Query(..., alias="from"),
    to_day: date = Query(..., alias="to"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Daily rollups of the current user's organization between two days."""
    if to_day < from_day:
        raise ValidationFailed("'to' must not be earlier than 'from'")

    rollups = await list_daily_analytics(db, current_user.organization_id, from_day, to_day)
    return DailyAnalyticsListResponse(
        rollups=[DailyAnalyticsResponse.model_validate(r) for r in rollups],
        total=len(rollups),
    )
