"""
Reconciliation Service

Combines the host's sub schedule with the dub snapshot under the user's
filter mode and orders the result for display.
"""
import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from dub_schedule.services.schedule_types import FilterMode, ItemOrigin, ScheduleItem

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def reconcile(
    sub_items: Sequence[ScheduleItem],
    dub_items: Sequence[ScheduleItem],
    mode: FilterMode,
) -> list[ScheduleItem]:
    """
    Combine sub and dub entries according to the filter mode

    - SUB: sub entries only
    - DUB: dub entries only
    - PREFER_DUB: one entry per episode, the dub entry replacing a sub entry for the same episode
    - ALL: both versions side by side

    Args:
        sub_items: Entries from the host schedule without the dub marker
        dub_items: Current dub snapshot
        mode: Active filter mode

    Returns:
        Combined entries (unsorted)
    """
    if mode is FilterMode.SUB:
        return list(sub_items)

    if mode is FilterMode.DUB:
        return list(dub_items)

    if mode is FilterMode.PREFER_DUB:
        # Subs go in first so dubs overwrite them
        combined: dict[tuple, ScheduleItem] = {}
        for item in sub_items:
            combined[item.key] = item
        for item in dub_items:
            combined[item.key] = item
        return list(combined.values())

    combined = {}
    for item in sub_items:
        combined[(*item.key, ItemOrigin.SUB)] = item
    for item in dub_items:
        combined[(*item.key, ItemOrigin.DUB)] = item
    return list(combined.values())


def sort_chronologically(items: Sequence[ScheduleItem]) -> list[ScheduleItem]:
    """Stable ascending sort by airing instant; entries without one sort first."""
    return sorted(items, key=_sort_key)


def _sort_key(item: ScheduleItem) -> datetime:
    return item.airing_instant if item.airing_instant is not None else _EARLIEST


def build_display_schedule(
    sub_items: Sequence[ScheduleItem],
    dub_items: Sequence[ScheduleItem],
    mode: FilterMode,
) -> list[ScheduleItem]:
    """Reconcile then sort, as served to the host."""
    combined = reconcile(sub_items, dub_items, mode)
    logger.debug(
        "Reconciled %s sub + %s dub entries under '%s' -> %s entries",
        len(sub_items),
        len(dub_items),
        mode.value,
        len(combined),
    )
    return sort_chronologically(combined)
