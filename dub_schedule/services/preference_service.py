"""
Preference Service

Reads and writes the user's display preferences.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dub_schedule.config import CustomSettings
from dub_schedule.models import Preference
from dub_schedule.services.schedule_types import DubPrefixStyle, FilterMode, Preferences
from dub_schedule.utils.display_format import DUB_PREFIX_LABELS

logger = logging.getLogger(__name__)

FILTER_MODE_KEY = "schedule-filter"
DUB_PREFIX_STYLE_KEY = "dub-format"


def default_preferences(app_settings: CustomSettings) -> Preferences:
    return Preferences(
        filter_mode=FilterMode(app_settings.default_filter_mode),
        dub_prefix_style=DubPrefixStyle(app_settings.default_dub_prefix_style),
    )


async def load_preferences(db: AsyncSession, app_settings: CustomSettings) -> Preferences:
    """
    Load persisted preferences, falling back to configured defaults

    Args:
        db: Database session
        app_settings: Settings providing the defaults

    Returns:
        Preferences object for the current pass
    """
    defaults = default_preferences(app_settings)

    result = await db.execute(
        select(Preference).where(Preference.key.in_([FILTER_MODE_KEY, DUB_PREFIX_STYLE_KEY]))
    )
    stored = {row.key: row.value for row in result.scalars().all()}

    return Preferences(
        filter_mode=_coerce(FilterMode, stored.get(FILTER_MODE_KEY), defaults.filter_mode),
        dub_prefix_style=_coerce(DubPrefixStyle, stored.get(DUB_PREFIX_STYLE_KEY), defaults.dub_prefix_style),
    )


async def save_preferences(db: AsyncSession, preferences: Preferences) -> None:
    """Persist both preference values (insert or update)."""
    values = {
        FILTER_MODE_KEY: preferences.filter_mode.value,
        DUB_PREFIX_STYLE_KEY: preferences.dub_prefix_style.value,
    }
    for key, value in values.items():
        row = await db.get(Preference, key)
        if row is None:
            db.add(Preference(key=key, value=value))
        else:
            row.value = value
    await db.flush()
    logger.info(
        "Saved preferences: filter=%s prefix=%s",
        preferences.filter_mode.value,
        preferences.dub_prefix_style.value,
    )


def _coerce(enum_type, raw: str | None, fallback):
    if raw is None:
        return fallback
    try:
        return enum_type(raw)
    except ValueError:
        logger.warning("Ignoring unknown stored %s value %r, using %s", enum_type.__name__, raw, fallback.value)
        return fallback


def describe_filter_change(mode: FilterMode) -> str:
    filter_text = "Prefer Dubs" if mode is FilterMode.PREFER_DUB else mode.value.upper()
    return f"Filter set to: {filter_text}. Refreshing..."


def describe_format_change(style: DubPrefixStyle) -> str:
    return f"Dub format set to: {DUB_PREFIX_LABELS[style]}. Refreshing..."
