"""Podcast, episode and summary models.

Summaries are the unit royalties are paid on. They reach their organization
through the chain summary -> episode -> podcast -> organization.
"""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from podslice.database import Base


class Podcast(Base):
    __tablename__ = "podcasts"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), ForeignKey("organizations.uuid"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    organization: Mapped["Organization"] = relationship("Organization", foreign_keys=[organization_id])

    __table_args__ = (
        Index("idx_podcast_organization_id", "organization_id"),
    )

    def __repr__(self) -> str:
        return f"<Podcast(uuid={self.uuid}, title={self.title})>"


class Episode(Base):
    __tablename__ = "episodes"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    podcast_id: Mapped[str] = mapped_column(String(36), ForeignKey("podcasts.uuid", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    podcast: Mapped["Podcast"] = relationship("Podcast", foreign_keys=[podcast_id])

    __table_args__ = (
        Index("idx_episode_podcast_id", "podcast_id"),
    )

    def __repr__(self) -> str:
        return f"<Episode(uuid={self.uuid}, title={self.title})>"


class Summary(Base):
    """One piece of AI-generated content derived from an episode.

    ``view_count`` and ``share_count`` are denormalized lifetime counters
    bumped by the tracking endpoint for fast display.
    """

    __tablename__ = "summaries"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    episode_id: Mapped[str] = mapped_column(String(36), ForeignKey("episodes.uuid", ondelete="CASCADE"), nullable=False)
    variant: Mapped[str] = mapped_column(String(50), default="short")  # "short" | "long" | "social"
    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Engagement counters
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    share_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    episode: Mapped["Episode"] = relationship("Episode", foreign_keys=[episode_id])

    __table_args__ = (
        Index("idx_summary_episode_id", "episode_id"),
        Index("idx_summary_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Summary(uuid={self.uuid}, views={self.view_count}, shares={self.share_count})>"
