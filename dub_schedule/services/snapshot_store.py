"""
Dub Snapshot Store

Holds the current dub schedule snapshot and arbitrates between overlapping
refresh passes. Each pass takes a generation ticket when it starts; only a
result newer than the committed one may replace the snapshot, so a slow
earlier pass can never overwrite a later pass's result.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable

from dub_schedule.services.schedule_types import DubPrefixStyle, ScheduleItem


logger = logging.getLogger(__name__)

SnapshotListener = Callable[["DubSnapshot"], Awaitable[None] | None]


@dataclass(slots=True, frozen=True)
class DubSnapshot:
    """Immutable replacement unit for the dub schedule."""
    items: tuple[ScheduleItem, ...] = ()
    generation: int = 0
    built_at: datetime | None = None
    dub_prefix_style: DubPrefixStyle | None = None
    stats: dict = field(default_factory=dict)


class DubSnapshotStore:
    """
    Shared holder of the committed dub snapshot.

    Writes are a single reference swap performed once per completed pass,
    so readers always see a complete snapshot.
    """

    def __init__(self):
        """Initialize the store with an empty snapshot."""
        self._snapshot = DubSnapshot()
        self._issued_generation = 0
        self._active_passes = 0
        self._listeners: list[SnapshotListener] = []

    @property
    def snapshot(self) -> DubSnapshot:
        return self._snapshot

    def begin_pass(self) -> int:
        """
        Issue a generation ticket for a starting refresh pass.

        Returns:
            Monotonically increasing generation number
        """
        self._issued_generation += 1
        self._active_passes += 1
        logger.debug("Refresh pass %s started (%s active)", self._issued_generation, self._active_passes)
        return self._issued_generation

    def end_pass(self, generation: int) -> None:
        """Mark a pass finished, whether or not it committed."""
        self._active_passes = max(0, self._active_passes - 1)
        logger.debug("Refresh pass %s finished (%s active)", generation, self._active_passes)

    def is_refreshing(self) -> bool:
        """
        Check if a refresh pass is currently in progress.

        Returns:
            True if at least one pass is running, False otherwise
        """
        return self._active_passes > 0

    async def replace(
        self,
        generation: int,
        items: list[ScheduleItem],
        *,
        dub_prefix_style: DubPrefixStyle | None = None,
        stats: dict | None = None,
    ) -> bool:
        """
        Atomically replace the snapshot with a pass's complete result.

        Args:
            generation: Ticket obtained from begin_pass()
            items: Complete dub item list of the pass
            dub_prefix_style: Marker style the titles were built with
            stats: Pass statistics kept alongside the snapshot

        Returns:
            True if committed, False if a newer pass already committed
        """
        if generation <= self._snapshot.generation:
            logger.info(
                "Discarding result of refresh pass %s (pass %s already committed)",
                generation,
                self._snapshot.generation,
            )
            return False

        self._snapshot = DubSnapshot(
            items=tuple(items),
            generation=generation,
            built_at=datetime.now(timezone.utc),
            dub_prefix_style=dub_prefix_style,
            stats=dict(stats or {}),
        )
        logger.info("Committed dub snapshot generation %s (%s items)", generation, len(items))

        await self._notify(self._snapshot)
        return True

    def subscribe(self, listener: SnapshotListener) -> None:
        """Register a callback invoked after every committed replacement."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self, snapshot: DubSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Snapshot listener %r failed: %s", listener, exc, exc_info=True)


# Global singleton instance
_store: DubSnapshotStore | None = None


def get_snapshot_store() -> DubSnapshotStore:
    """
    Get or create the global snapshot store singleton.

    Returns:
        The global DubSnapshotStore instance
    """
    global _store
    if _store is None:
        _store = DubSnapshotStore()
    return _store


def reset_snapshot_store() -> None:
    """
    Reset the snapshot store (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _store
    _store = None
