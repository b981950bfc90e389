"""
Data merging utilities

This module handles deduplication of airings reported by multiple feeds.
"""
import logging
from collections.abc import Iterable

from dub_schedule.services.schedule_types import CanonicalAiring

logger = logging.getLogger(__name__)


def deduplicate_airings(airings: Iterable[CanonicalAiring]) -> list[CanonicalAiring]:
    """
    Collapse airings to one entry per (media_id, episode_number).

    The first occurrence wins, so callers must pass the more authoritative
    source first.

    Args:
        airings: Normalized airings, current-schedule source first

    Returns:
        Airings in input order with later duplicates removed
    """
    seen: set[tuple[int, int]] = set()
    unique: list[CanonicalAiring] = []

    for airing in airings:
        airing_key = create_airing_key(airing)
        if airing_key in seen:
            logger.debug(
                "Skipping duplicate airing: media %s episode %s (%s)",
                airing.media_id,
                airing.episode_number,
                airing.source.value,
            )
            continue
        seen.add(airing_key)
        unique.append(airing)

    return unique


def create_airing_key(airing: CanonicalAiring) -> tuple[int, int]:
    """
    Create a unique key for an airing based on media and episode.

    Args:
        airing: CanonicalAiring instance

    Returns:
        (media_id, episode_number) tuple
    """
    return (airing.media_id, airing.episode_number)
