"""
Invalidation notifications

Tells the host to re-render its schedule after a new dub snapshot is committed.
"""
import logging

import httpx

from dub_schedule.services.snapshot_store import DubSnapshot
from dub_schedule.utils.http_fetch import post_json
from dub_schedule.utils.timezone import format_iso_utc

logger = logging.getLogger(__name__)

SCHEDULE_QUERY_KEY = ["GetAnimeSchedule"]


class InvalidationNotifier:
    """Snapshot listener that logs and optionally forwards invalidations to a webhook."""

    def __init__(self, webhook_url: str | None = None, *, client: httpx.AsyncClient | None = None):
        self.webhook_url = webhook_url
        self._client = client
        self.sent = 0

    async def __call__(self, snapshot: DubSnapshot) -> None:
        logger.info(
            "Schedule invalidated: generation %s with %s dub items",
            snapshot.generation,
            len(snapshot.items),
        )
        if not self.webhook_url:
            return

        payload = {
            "event": "schedule-invalidated",
            "queryKey": SCHEDULE_QUERY_KEY,
            "generation": snapshot.generation,
            "items": len(snapshot.items),
            "builtAt": format_iso_utc(snapshot.built_at) if snapshot.built_at else None,
        }
        if await post_json(self.webhook_url, payload, client=self._client):
            self.sent += 1
