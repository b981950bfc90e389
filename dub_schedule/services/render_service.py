"""
Schedule Render Service

Rewrites the schedule the host is about to render: recovers the sub entries
from the incoming list, merges them with the dub snapshot under the active
filter mode and orders the result. This path never raises; on any internal
failure the original list is returned untouched.
"""
import logging
from collections.abc import Sequence

from dub_schedule.schemas import ScheduleItemSchema
from dub_schedule.services.reconciliation_service import build_display_schedule
from dub_schedule.services.schedule_types import Preferences, ScheduleItem
from dub_schedule.services.snapshot_store import DubSnapshot
from dub_schedule.utils.display_format import partition_items
from dub_schedule.utils.timezone import DateFormatError, format_iso_utc, parse_iso8601_to_utc

logger = logging.getLogger(__name__)


def render_schedule(
    incoming: Sequence[ScheduleItemSchema] | None,
    snapshot: DubSnapshot,
    preferences: Preferences,
) -> list[ScheduleItemSchema]:
    """
    Build the list the host should render instead of `incoming`

    Args:
        incoming: Host schedule entries
        snapshot: Committed dub snapshot
        preferences: Active filter mode and dub marker style

    Returns:
        Filtered, chronologically sorted entries in wire format
    """
    incoming = list(incoming or [])
    try:
        host_items = [to_schedule_item(schema) for schema in incoming]
        _, sub_items = partition_items(host_items, preferences.dub_prefix_style)

        final_items = build_display_schedule(sub_items, snapshot.items, preferences.filter_mode)
        logger.debug(
            "Rendered schedule: %s incoming, %s sub, %s dub -> %s (%s)",
            len(incoming),
            len(sub_items),
            len(snapshot.items),
            len(final_items),
            preferences.filter_mode.value,
        )
        return [to_schema(item) for item in final_items]
    except Exception as exc:
        logger.error("Schedule render hook failed, passing original list through: %s", exc, exc_info=True)
        return incoming


def to_schedule_item(schema: ScheduleItemSchema) -> ScheduleItem:
    airing_instant = None
    if schema.date_time:
        try:
            airing_instant = parse_iso8601_to_utc(schema.date_time)
        except DateFormatError:
            logger.debug("Ignoring unparsable dateTime %r for media %s", schema.date_time, schema.media_id)

    return ScheduleItem(
        media_id=schema.media_id,
        title=schema.title,
        time_of_day=schema.time,
        airing_instant=airing_instant,
        cover_image_url=schema.image,
        episode_number=schema.episode_number,
        is_movie=schema.is_movie,
        is_season_finale=schema.is_season_finale,
    )


def to_schema(item: ScheduleItem) -> ScheduleItemSchema:
    return ScheduleItemSchema(
        media_id=item.media_id,
        title=item.title,
        time=item.time_of_day,
        date_time=format_iso_utc(item.airing_instant) if item.airing_instant else None,
        image=item.cover_image_url,
        episode_number=item.episode_number,
        is_movie=item.is_movie,
        is_season_finale=item.is_season_finale,
    )
