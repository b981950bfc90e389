"""
Dub title marker utilities

The same marker that is prefixed to dub titles is used to recognize dub
entries in a combined list handed back by the host.
"""
from collections.abc import Iterable
from dataclasses import dataclass, field

from dub_schedule.services.schedule_types import DubPrefixStyle, ScheduleItem


DUB_PREFIXES: dict[DubPrefixStyle, str] = {
    DubPrefixStyle.ICON_AND_TEXT: "🎙️Dub - ",
    DubPrefixStyle.BRACKET: "[DUB] ",
    DubPrefixStyle.ICON_ONLY: "🎙️ - ",
}

DUB_PREFIX_LABELS: dict[DubPrefixStyle, str] = {
    DubPrefixStyle.ICON_AND_TEXT: "Icon & Text (🎙️Dub)",
    DubPrefixStyle.BRACKET: "Bracket ([DUB])",
    DubPrefixStyle.ICON_ONLY: "Icon Only (🎙️)",
}


@dataclass(slots=True)
class MarkerPartition:
    marked: list[str] = field(default_factory=list)
    unmarked: list[str] = field(default_factory=list)


def dub_prefix(style: DubPrefixStyle) -> str:
    return DUB_PREFIXES[style]


def apply_marker(title: str, style: DubPrefixStyle) -> str:
    return f"{dub_prefix(style)}{title}"


def strip_marker(titles: Iterable[str], style: DubPrefixStyle) -> MarkerPartition:
    """Split titles into those carrying the active style's marker and the rest."""
    prefix = dub_prefix(style)
    partition = MarkerPartition()
    for title in titles:
        if title.startswith(prefix):
            partition.marked.append(title)
        else:
            partition.unmarked.append(title)
    return partition


def partition_items(
    items: Iterable[ScheduleItem],
    style: DubPrefixStyle,
) -> tuple[list[ScheduleItem], list[ScheduleItem]]:
    """
    Split schedule items by title marker.

    Returns:
        Tuple of (dub_items, sub_items); anything not bearing the active marker is sub content
    """
    items = list(items)
    marked_titles = set(strip_marker((item.title for item in items), style).marked)
    dub_items: list[ScheduleItem] = []
    sub_items: list[ScheduleItem] = []
    for item in items:
        (dub_items if item.title in marked_titles else sub_items).append(item)
    return dub_items, sub_items
