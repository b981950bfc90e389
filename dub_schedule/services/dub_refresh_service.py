"""
Dub Schedule Refresh Service

Coordinates fetching, normalization, resolution, projection and snapshot
replacement for one refresh cycle.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from dub_schedule.config import CustomSettings, settings
from dub_schedule.database import session_scope
from dub_schedule.services.collection_service import (
    CollectionUnavailableError,
    fetch_anime_collection,
    find_anime_in_collection,
)
from dub_schedule.services.feed_normalizer import concatenate_feeds, normalize_feed
from dub_schedule.services.preference_service import load_preferences
from dub_schedule.services.projection_service import build_confirmed_item, project_future_episodes
from dub_schedule.services.schedule_types import (
    AnimeMetadata,
    CanonicalAiring,
    FeedSource,
    Preferences,
    ScheduleItem,
)
from dub_schedule.services.snapshot_store import DubSnapshotStore, get_snapshot_store
from dub_schedule.utils.data_merging import deduplicate_airings
from dub_schedule.utils.display_format import apply_marker
from dub_schedule.utils.http_fetch import fetch_json
from dub_schedule.utils.logging_helpers import (
    log_refresh_end,
    log_refresh_start,
    log_section_end,
    log_section_start,
    log_snapshot_summary,
)


logger = logging.getLogger(__name__)


class RefreshError(RuntimeError):
    """Raised when a refresh pass must abort without touching the snapshot."""


@dataclass(slots=True)
class RefreshContext:
    generation: int
    started_at: datetime
    preferences: Preferences


@dataclass(slots=True)
class PassStats:
    current_records: int = 0
    historical_records: int = 0
    normalized: int = 0
    duplicates: int = 0
    unresolved: int = 0
    confirmed: int = 0
    projected: int = 0

    @property
    def malformed(self) -> int:
        return self.current_records + self.historical_records - self.normalized

    def to_dict(self) -> dict:
        payload = dataclasses.asdict(self)
        payload["malformed"] = self.malformed
        return payload


@dataclass(slots=True)
class BuildResult:
    items: list[ScheduleItem] = field(default_factory=list)
    stats: PassStats = field(default_factory=PassStats)


class DubRefreshPipeline:
    """Builds a complete dub snapshot and commits it in one replacement."""

    def __init__(
        self,
        app_settings: CustomSettings,
        preferences: Preferences,
        store: DubSnapshotStore,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = app_settings
        self.preferences = preferences
        self.store = store
        self._client = client

    async def run(self) -> dict:
        context = RefreshContext(
            generation=self.store.begin_pass(),
            started_at=datetime.now(timezone.utc),
            preferences=self.preferences,
        )
        logger.info(
            "Refresh pass %s: filter=%s prefix=%s",
            context.generation,
            self.preferences.filter_mode.value,
            self.preferences.dub_prefix_style.value,
        )

        try:
            current_raw, historical_raw = await self._fetch_feeds()
            collection = await self._fetch_collection()

            log_section_start(logger, "dub schedule build")
            result = self.build_items(current_raw, historical_raw, collection)
            log_section_end(logger, "dub schedule build")

            committed = await self.store.replace(
                context.generation,
                result.items,
                dub_prefix_style=self.preferences.dub_prefix_style,
                stats=result.stats.to_dict(),
            )
        finally:
            self.store.end_pass(context.generation)

        log_snapshot_summary(logger, result.stats.confirmed, result.stats.projected, result.stats.unresolved)
        return self._build_result(context, result.stats, committed)

    async def _fetch_feeds(self) -> tuple[Any, Any]:
        try:
            current_raw = await self._get_json(self.settings.current_schedule_url)
            historical_raw = await self._get_json(self.settings.historical_feed_url)
        except (httpx.HTTPError, ValueError) as exc:
            raise RefreshError(f"Failed to fetch dub feeds: {exc}") from exc
        return current_raw, historical_raw

    async def _get_json(self, url: str) -> Any:
        return await fetch_json(
            url,
            timeout=self.settings.http_timeout_sec,
            max_retries=self.settings.http_max_retries,
            backoff_factor=self.settings.http_backoff_factor,
            client=self._client,
        )

    async def _fetch_collection(self) -> dict:
        try:
            return await fetch_anime_collection(
                self.settings.anilist_api_url,
                self.settings.anilist_username,
                token=self.settings.anilist_token,
                timeout=self.settings.http_timeout_sec,
                max_retries=self.settings.http_max_retries,
                backoff_factor=self.settings.http_backoff_factor,
                client=self._client,
            )
        except (httpx.HTTPError, ValueError, CollectionUnavailableError) as exc:
            raise RefreshError(f"Failed to fetch anime collection: {exc}") from exc

    def build_items(self, current_raw: Any, historical_raw: Any, collection: Any) -> BuildResult:
        """
        Turn raw feeds and a collection snapshot into the dub item list

        Confirmed items come first in feed order, followed by projected items.
        Each (media_id, episode_number) appears once; a projection never
        replaces a confirmed airing and stops at the next confirmed episode.
        """
        stats = PassStats(
            current_records=len(current_raw) if isinstance(current_raw, list) else 0,
            historical_records=len(historical_raw) if isinstance(historical_raw, list) else 0,
        )

        combined = concatenate_feeds(
            normalize_feed(current_raw, FeedSource.CURRENT_SCHEDULE),
            normalize_feed(historical_raw, FeedSource.HISTORICAL_FEED),
        )
        stats.normalized = len(combined)

        airings = deduplicate_airings(combined)
        stats.duplicates = len(combined) - len(airings)

        confirmed: list[ScheduleItem] = []
        anchors: list[tuple[CanonicalAiring, AnimeMetadata]] = []
        timezone_name = self.settings.display_timezone

        for airing in airings:
            anime = find_anime_in_collection(airing.media_id, collection)
            if anime is None:
                stats.unresolved += 1
                continue

            confirmed.append(build_confirmed_item(airing, anime, display_timezone=timezone_name))
            if self._is_projectable(airing.source):
                anchors.append((airing, anime))

        confirmed_keys = {item.key for item in confirmed}
        emitted = set(confirmed_keys)
        projected: list[ScheduleItem] = []

        for airing, anime in anchors:
            for item in project_future_episodes(
                airing,
                anime,
                interval_days=self.settings.projection_interval_days,
                display_timezone=timezone_name,
            ):
                # A later confirmed episode takes over the projection for this show
                if item.key in confirmed_keys:
                    break
                if item.key in emitted:
                    continue
                emitted.add(item.key)
                projected.append(item)

        stats.confirmed = len(confirmed)
        stats.projected = len(projected)

        style = self.preferences.dub_prefix_style
        items = [
            dataclasses.replace(item, title=apply_marker(item.title, style))
            for item in (*confirmed, *projected)
        ]
        return BuildResult(items=items, stats=stats)

    def _is_projectable(self, source: FeedSource) -> bool:
        return source is FeedSource.CURRENT_SCHEDULE or self.settings.project_historical_airings

    def _build_result(self, context: RefreshContext, stats: PassStats, committed: bool) -> dict:
        return {
            "status": "success" if committed else "superseded",
            "generation": context.generation,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "started_at": context.started_at.isoformat(),
            "filter_mode": context.preferences.filter_mode.value,
            "dub_prefix_style": context.preferences.dub_prefix_style.value,
            "items": stats.confirmed + stats.projected,
            **stats.to_dict(),
        }


async def refresh_dub_schedule(
    preferences: Preferences | None = None,
    store: DubSnapshotStore | None = None,
    *,
    app_settings: CustomSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> dict:
    """
    Main entry point for a dub schedule refresh.

    A failed pass leaves the previous snapshot active.

    Returns:
        Dictionary with pass statistics or an error message.
    """
    log_refresh_start(logger)
    app_settings = app_settings or settings
    store = store or get_snapshot_store()

    try:
        if preferences is None:
            async with session_scope() as session:
                preferences = await load_preferences(session, app_settings)

        pipeline = DubRefreshPipeline(app_settings, preferences, store, client=client)
        result = await pipeline.run()
        log_refresh_end(logger)
        return result
    except RefreshError as exc:
        logger.error("Dub schedule refresh failed, keeping previous snapshot: %s", exc, exc_info=True)
        return {"error": str(exc)}
    except Exception as exc:  # Catch-all to ensure API stability
        logger.error("Unexpected error during dub schedule refresh: %s", exc, exc_info=True)
        return {"error": str(exc)}
