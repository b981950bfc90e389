"""
Shared dataclasses and enums used across the dub schedule pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FeedSource(str, Enum):
    """Upstream feed an airing was reported by."""
    CURRENT_SCHEDULE = "current-schedule"
    HISTORICAL_FEED = "historical-feed"


class MediaFormat(str, Enum):
    MOVIE = "MOVIE"
    OTHER = "OTHER"


class FilterMode(str, Enum):
    """Which schedule entries the user wants to see."""
    ALL = "all"
    DUB = "dub"
    SUB = "sub"
    PREFER_DUB = "prefer-dub"


class DubPrefixStyle(str, Enum):
    """Marker prefixed to dub titles."""
    ICON_AND_TEXT = "icon"
    BRACKET = "bracket"
    ICON_ONLY = "icon-only"


class ItemOrigin(str, Enum):
    SUB = "sub"
    DUB = "dub"


@dataclass(slots=True, frozen=True)
class CanonicalAiring:
    """A confirmed airing normalized from either upstream feed."""
    media_id: int
    episode_number: int
    airing_instant: datetime
    source: FeedSource = FeedSource.CURRENT_SCHEDULE

    @property
    def key(self) -> tuple[int, int]:
        return (self.media_id, self.episode_number)


@dataclass(slots=True, frozen=True)
class AnimeMetadata:
    """Display metadata recovered from the user's tracked collection."""
    media_id: int
    display_title: str
    cover_image_url: str | None = None
    total_episodes: int | None = None
    format: MediaFormat = MediaFormat.OTHER

    @property
    def is_movie(self) -> bool:
        return self.format is MediaFormat.MOVIE


@dataclass(slots=True, frozen=True)
class ScheduleItem:
    """One displayable schedule entry, as exchanged with the host."""
    media_id: int
    title: str
    time_of_day: str
    airing_instant: datetime | None
    cover_image_url: str | None
    episode_number: int
    is_movie: bool = False
    is_season_finale: bool = False

    @property
    def key(self) -> tuple[int, int]:
        return (self.media_id, self.episode_number)


@dataclass(slots=True, frozen=True)
class Preferences:
    """User display preferences read at the start of every pass."""
    filter_mode: FilterMode = FilterMode.ALL
    dub_prefix_style: DubPrefixStyle = DubPrefixStyle.ICON_AND_TEXT


__all__ = [
    "AnimeMetadata",
    "CanonicalAiring",
    "DubPrefixStyle",
    "FeedSource",
    "FilterMode",
    "ItemOrigin",
    "MediaFormat",
    "Preferences",
    "ScheduleItem",
]
