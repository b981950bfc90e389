from collections.abc import Iterable, Mapping
from typing import Any, Optional
import logging

from dub_schedule.services.schedule_types import CanonicalAiring, FeedSource
from dub_schedule.utils.timezone import DateFormatError, parse_iso8601_to_utc

logger = logging.getLogger(__name__)


def normalize_feed(records: Any, source: FeedSource) -> list[CanonicalAiring]:
    """
    Normalize a raw upstream feed into canonical airings

    Args:
        records: Decoded JSON payload (expected to be a list of records)
        source: Which upstream shape the records follow

    Returns:
        List of canonical airings in feed order; malformed records are dropped
    """
    if not isinstance(records, list):
        logger.warning("Feed %s is not a JSON array (got %s), treating as empty", source.value, type(records).__name__)
        return []

    normalize = _NORMALIZERS[source]
    airings = []
    dropped = 0

    for record in records:
        airing = normalize(record)
        if airing is None:
            dropped += 1
            continue
        airings.append(airing)

    if dropped:
        logger.info("Feed %s: dropped %s malformed record(s)", source.value, dropped)
    logger.debug("Feed %s: normalized %s airings", source.value, len(airings))

    return airings


def normalize_current_record(record: Any) -> Optional[CanonicalAiring]:
    """Normalize `{episodeDate, episodeNumber, media: {media: {id}}}`"""
    if not isinstance(record, Mapping):
        return None

    media_id = _get_path(record, 'media', 'media', 'id')
    return _build_airing(
        media_id,
        record.get('episodeNumber'),
        record.get('episodeDate'),
        FeedSource.CURRENT_SCHEDULE,
    )


def normalize_historical_record(record: Any) -> Optional[CanonicalAiring]:
    """Normalize `{id, episode: {aired, airedAt}}`"""
    if not isinstance(record, Mapping):
        return None

    return _build_airing(
        record.get('id'),
        _get_path(record, 'episode', 'aired'),
        _get_path(record, 'episode', 'airedAt'),
        FeedSource.HISTORICAL_FEED,
    )


def _build_airing(media_id: Any, episode_number: Any, air_date: Any, source: FeedSource) -> Optional[CanonicalAiring]:
    # Skip if missing required fields
    if not _is_int(media_id) or not _is_int(episode_number) or not isinstance(air_date, str):
        logger.debug("Skipping %s record with missing fields: id=%r episode=%r date=%r",
                     source.value, media_id, episode_number, air_date)
        return None

    try:
        airing_instant = parse_iso8601_to_utc(air_date)
    except DateFormatError:
        logger.debug("Skipping %s record with invalid date: %r", source.value, air_date)
        return None

    return CanonicalAiring(
        media_id=media_id,
        episode_number=episode_number,
        airing_instant=airing_instant,
        source=source,
    )


def _get_path(record: Mapping, *keys: str) -> Any:
    """Safely walk nested mappings"""
    current: Any = record
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


_NORMALIZERS = {
    FeedSource.CURRENT_SCHEDULE: normalize_current_record,
    FeedSource.HISTORICAL_FEED: normalize_historical_record,
}


def concatenate_feeds(current: Iterable[CanonicalAiring], historical: Iterable[CanonicalAiring]) -> list[CanonicalAiring]:
    """Current-schedule airings always come first so they take priority during deduplication."""
    return [*current, *historical]
