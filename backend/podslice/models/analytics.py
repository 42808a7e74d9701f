"""Raw analytics events and their daily rollups."""
from datetime import date, datetime
from uuid import uuid4
from sqlalchemy import String, Integer, Float, Date, DateTime, JSON, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from podslice.database import Base


EVENT_TYPES = ("view", "share", "click", "download", "play", "complete")


class AnalyticsEvent(Base):
    """One interaction with a summary. Append-only; never updated."""

    __tablename__ = "analytics_events"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    summary_id: Mapped[str] = mapped_column(String(36), ForeignKey("summaries.uuid", ondelete="CASCADE"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(20), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Request context
    event_metadata: Mapped[dict] = mapped_column("metadata", JSON, default=dict)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    referrer: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    summary: Mapped["Summary"] = relationship("Summary", foreign_keys=[summary_id])

    __table_args__ = (
        Index("idx_analytics_event_summary_occurred", "summary_id", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<AnalyticsEvent(uuid={self.uuid}, summary_id={self.summary_id}, event_type={self.event_type})>"


class DailyAnalytics(Base):
    """Counters for one (summary, UTC day) pair."""

    __tablename__ = "daily_analytics"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    summary_id: Mapped[str] = mapped_column(String(36), ForeignKey("summaries.uuid", ondelete="CASCADE"), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)

    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shares: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    plays: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    listen_ms_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # completes / plays; 0 when there are no plays
    completion_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    summary: Mapped["Summary"] = relationship("Summary", foreign_keys=[summary_id])

    __table_args__ = (
        UniqueConstraint("summary_id", "day", name="uq_daily_analytics_summary_day"),
        Index("idx_daily_analytics_day", "day"),
    )

    def __repr__(self) -> str:
        return f"<DailyAnalytics(summary_id={self.summary_id}, day={self.day}, views={self.views})>"
