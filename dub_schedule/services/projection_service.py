"""
Projection Service

Builds schedule items for resolved airings: the confirmed entry itself and
the not-yet-aired remainder of the season extrapolated at a weekly cadence.
"""
import logging
from datetime import datetime, timedelta

from dub_schedule.services.schedule_types import AnimeMetadata, CanonicalAiring, ScheduleItem
from dub_schedule.utils.timezone import format_time_of_day


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_DAYS = 7


def build_confirmed_item(
    airing: CanonicalAiring,
    anime: AnimeMetadata,
    *,
    display_timezone: str = "UTC",
) -> ScheduleItem:
    """Schedule item for an airing reported by a feed."""
    return ScheduleItem(
        media_id=anime.media_id,
        title=anime.display_title,
        time_of_day=format_time_of_day(airing.airing_instant, display_timezone),
        airing_instant=airing.airing_instant,
        cover_image_url=anime.cover_image_url,
        episode_number=airing.episode_number,
        is_movie=anime.is_movie,
        is_season_finale=is_season_finale(airing.episode_number, anime.total_episodes),
    )


def project_future_episodes(
    airing: CanonicalAiring,
    anime: AnimeMetadata,
    *,
    interval_days: int = DEFAULT_INTERVAL_DAYS,
    display_timezone: str = "UTC",
) -> list[ScheduleItem]:
    """
    Synthesize the remaining episodes of a season after a confirmed airing

    Episode ``n + i`` is placed ``interval_days * i`` days after the anchor.

    Args:
        airing: Confirmed anchor airing
        anime: Resolved metadata; nothing is projected when the total is unknown
        interval_days: Cadence between episodes
        display_timezone: Timezone used for the time-of-day label

    Returns:
        Projected items in episode order (possibly empty)
    """
    total_episodes = anime.total_episodes
    if total_episodes is None or total_episodes <= 0:
        return []

    episodes_left = total_episodes - airing.episode_number
    if episodes_left <= 0:
        return []

    projected = []
    for i in range(1, episodes_left + 1):
        future_episode = airing.episode_number + i
        future_instant: datetime = airing.airing_instant + timedelta(days=interval_days * i)
        projected.append(ScheduleItem(
            media_id=anime.media_id,
            title=anime.display_title,
            time_of_day=format_time_of_day(future_instant, display_timezone),
            airing_instant=future_instant,
            cover_image_url=anime.cover_image_url,
            episode_number=future_episode,
            is_movie=False,
            is_season_finale=future_episode == total_episodes,
        ))

    logger.debug(
        "Projected %s episode(s) for media %s after episode %s",
        len(projected),
        anime.media_id,
        airing.episode_number,
    )
    return projected


def is_season_finale(episode_number: int, total_episodes: int | None) -> bool:
    if total_episodes is None or total_episodes <= 0:
        return False
    return episode_number == total_episodes
