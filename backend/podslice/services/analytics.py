"""Event ingestion and daily rollup aggregation.

Aggregation is additive by default: every pass increments existing rollups by
the counts it sees, so running it twice over the same window double-counts.
Pass ``replace=True`` to overwrite each touched day with totals recomputed from
that day's full event set instead; that path is safe to re-run.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from podslice.errors import CalculationError, NotFoundError, ValidationFailed
from podslice.models.analytics import AnalyticsEvent, DailyAnalytics, EVENT_TYPES
from podslice.models.content import Episode, Podcast, Summary

logger = logging.getLogger(__name__)

# Event type -> rollup counter. "download" counts as a click.
COUNTER_FOR_EVENT = {
    "view": "views",
    "share": "shares",
    "click": "clicks",
    "download": "clicks",
    "play": "plays",
    "complete": "completes",
}

# Event type -> denormalized counter on the summary
SUMMARY_COUNTER_FOR_EVENT = {
    "view": "view_count",
    "share": "share_count",
}

PLAYBACK_EVENTS = ("play", "complete")


@dataclass
class DayTotals:
    views: int = 0
    shares: int = 0
    clicks: int = 0
    plays: int = 0
    completes: int = 0
    listen_ms_total: int = 0

    def add(self, event_type: str, duration_ms: Optional[int]) -> None:
        counter = COUNTER_FOR_EVENT.get(event_type)
        if counter:
            setattr(self, counter, getattr(self, counter) + 1)
        # Any event carrying a duration contributes, not only play/complete
        if duration_ms:
            self.listen_ms_total += duration_ms

    def as_values(self) -> Dict[str, int]:
        return {
            "views": self.views,
            "shares": self.shares,
            "clicks": self.clicks,
            "plays": self.plays,
            "completes": self.completes,
            "listen_ms_total": self.listen_ms_total,
        }


def completion_rate(plays: int, completes: int) -> float:
    """completes / plays, or 0 with no plays. Not clamped to 1."""
    if plays > 0:
        return completes / plays
    return 0.0


def utc_day_bounds(from_time: datetime, to_time: datetime) -> Tuple[datetime, datetime]:
    """Widen a time range to whole UTC days.

    Timezone-aware inputs are converted to UTC first; naive inputs are taken
    as UTC already.
    """
    from_time = _as_naive_utc(from_time)
    to_time = _as_naive_utc(to_time)
    start = datetime.combine(from_time.date(), time.min)
    end = datetime.combine(to_time.date(), time.max)
    return start, end


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value - value.utcoffset()
        value = value.replace(tzinfo=None)
    return value


def _duration_from_metadata(event_type: str, metadata: Optional[dict]) -> Optional[int]:
    """The web player reports listen time as ``session_ms`` on play/complete events."""
    if event_type not in PLAYBACK_EVENTS or not metadata:
        return None
    value = metadata.get("session_ms")
    if isinstance(value, (int, float)) and value >= 0:
        return int(value)
    return None


async def record_event(
    db: AsyncSession,
    summary_id: str,
    event_type: str,
    metadata: Optional[dict] = None,
    duration_ms: Optional[int] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    referrer: Optional[str] = None,
) -> AnalyticsEvent:
    """
    Append one analytics event and bump the summary's display counter.

    Raises ValidationFailed for a missing summary id or unknown event type and
    NotFoundError if the summary does not exist.
    """
    if not summary_id or not event_type:
        raise ValidationFailed("Missing required fields")
    if event_type not in EVENT_TYPES:
        raise ValidationFailed(f"Unknown event type: {event_type}")
    if duration_ms is not None and duration_ms < 0:
        raise ValidationFailed("duration_ms must be non-negative")

    result = await db.execute(select(Summary.uuid).where(Summary.uuid == summary_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Summary not found")

    if duration_ms is None:
        duration_ms = _duration_from_metadata(event_type, metadata)

    event = AnalyticsEvent(
        summary_id=summary_id,
        event_type=event_type,
        occurred_at=datetime.utcnow(),
        duration_ms=duration_ms,
        event_metadata=metadata or {},
        ip_address=ip_address,
        user_agent=user_agent,
        referrer=referrer,
    )
    db.add(event)

    counter = SUMMARY_COUNTER_FOR_EVENT.get(event_type)
    if counter:
        column = getattr(Summary, counter)
        await db.execute(
            update(Summary)
            .where(Summary.uuid == summary_id)
            .values({counter: column + 1})
        )

    await db.commit()
    return event


async def _fetch_day_totals(
    db: AsyncSession,
    organization_id: str,
    start: datetime,
    end: datetime,
) -> Dict[Tuple[str, date], DayTotals]:
    result = await db.execute(
        select(
            AnalyticsEvent.summary_id,
            AnalyticsEvent.event_type,
            AnalyticsEvent.occurred_at,
            AnalyticsEvent.duration_ms,
        )
        .join(Summary, Summary.uuid == AnalyticsEvent.summary_id)
        .join(Episode, Episode.uuid == Summary.episode_id)
        .join(Podcast, Podcast.uuid == Episode.podcast_id)
        .where(
            Podcast.organization_id == organization_id,
            AnalyticsEvent.occurred_at >= start,
            AnalyticsEvent.occurred_at <= end,
        )
        .order_by(AnalyticsEvent.occurred_at)
    )

    groups: Dict[Tuple[str, date], DayTotals] = {}
    for summary_id, event_type, occurred_at, duration_ms in result.all():
        key = (summary_id, occurred_at.date())
        groups.setdefault(key, DayTotals()).add(event_type, duration_ms)
    return groups


async def _write_rollup(
    db: AsyncSession,
    summary_id: str,
    day: date,
    totals: DayTotals,
    replace: bool,
) -> DailyAnalytics:
    result = await db.execute(
        select(DailyAnalytics).where(
            DailyAnalytics.summary_id == summary_id,
            DailyAnalytics.day == day,
        )
    )
    rollup = result.scalar_one_or_none()
    values = totals.as_values()

    if rollup is None:
        rollup = DailyAnalytics(summary_id=summary_id, day=day, completion_rate=0.0, **values)
        db.add(rollup)
    elif replace:
        await db.execute(
            update(DailyAnalytics).where(DailyAnalytics.uuid == rollup.uuid).values(**values)
        )
    else:
        await db.execute(
            update(DailyAnalytics)
            .where(DailyAnalytics.uuid == rollup.uuid)
            .values({name: getattr(DailyAnalytics, name) + delta for name, delta in values.items()})
        )
    await db.commit()
    await db.refresh(rollup)

    # Second step: derived rate from the merged counters
    rollup.completion_rate = completion_rate(rollup.plays, rollup.completes)
    await db.commit()
    return rollup


async def aggregate_daily_analytics(
    db: AsyncSession,
    organization_id: str,
    from_time: datetime,
    to_time: datetime,
    replace: bool = False,
) -> int:
    """
    Roll raw events of an organization up into per-summary daily counters.

    Each (summary, day) row is committed on its own: if a write fails midway the
    rows already written stay, and CalculationError is raised.

    Returns the number of rollup rows written.
    """
    start, end = utc_day_bounds(from_time, to_time)
    if end < start:
        raise ValidationFailed("'to' must not be earlier than 'from'")

    try:
        groups = await _fetch_day_totals(db, organization_id, start, end)

        written = 0
        for (summary_id, day), totals in groups.items():
            await _write_rollup(db, summary_id, day, totals, replace)
            written += 1
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Daily aggregation failed for organization {organization_id}: {e}")
        raise CalculationError("Failed to aggregate analytics") from e

    logger.info(
        f"Aggregated {written} daily rollups for organization {organization_id} "
        f"({start.date()} - {end.date()}, replace={replace})"
    )
    return written


async def list_daily_analytics(
    db: AsyncSession,
    organization_id: str,
    from_day: date,
    to_day: date,
) -> list[DailyAnalytics]:
    """Rollups of an organization's summaries between two days, inclusive."""
    result = await db.execute(
        select(DailyAnalytics)
        .join(Summary, Summary.uuid == DailyAnalytics.summary_id)
        .join(Episode, Episode.uuid == Summary.episode_id)
        .join(Podcast, Podcast.uuid == Episode.podcast_id)
        .where(
            Podcast.organization_id == organization_id,
            DailyAnalytics.day >= from_day,
            DailyAnalytics.day <= to_day,
        )
        .order_by(DailyAnalytics.day, DailyAnalytics.summary_id)
    )
    return list(result.scalars().all())
