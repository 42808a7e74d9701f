"""Database models for the Podslice royalties backend."""
from podslice.models.organization import Organization
from podslice.models.user import User
from podslice.models.content import Podcast, Episode, Summary
from podslice.models.analytics import AnalyticsEvent, DailyAnalytics
from podslice.models.royalty import RoyaltyStatement, RoyaltyLineItem

__all__ = [
    "Organization",
    "User",
    "Podcast",
    "Episode",
    "Summary",
    "AnalyticsEvent",
    "DailyAnalytics",
    "RoyaltyStatement",
    "RoyaltyLineItem",
]
