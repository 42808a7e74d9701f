"""Schemas for analytics tracking and aggregation endpoints."""
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


EventType = Literal["view", "share", "click", "download", "play", "complete"]


class TrackEventRequest(BaseModel):
    """A single interaction reported by the web player or public pages."""

    summary_id: str = Field(..., min_length=1, description="Summary the event belongs to")
    event_type: EventType
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form context, e.g. traffic source")
    duration_ms: Optional[int] = Field(None, ge=0, description="Listen time for play/complete events")


class TrackEventResponse(BaseModel):
    success: bool = True
    event_id: str


class AggregateRequest(BaseModel):
    """Roll events between two instants up into daily counters (whole UTC days)."""

    organization_id: str
    from_time: datetime = Field(..., alias="from")
    to_time: datetime = Field(..., alias="to")
    replace: bool = Field(False, description="Recompute touched days instead of incrementing")

    model_config = {"populate_by_name": True}


class AggregateResponse(BaseModel):
    success: bool = True
    rollups_written: int


class DailyAnalyticsResponse(BaseModel):
    summary_id: str
    day: date
    views: int
    shares: int
    clicks: int
    plays: int
    completes: int
    listen_ms_total: int
    completion_rate: float

    class Config:
        from_attributes = True


class DailyAnalyticsListResponse(BaseModel):
    rollups: List[DailyAnalyticsResponse]
    total: int
