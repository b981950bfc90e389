import asyncio

from dub_schedule.services.schedule_types import DubPrefixStyle
from dub_schedule.services.snapshot_store import DubSnapshotStore, get_snapshot_store, reset_snapshot_store

from factories import make_item


def test_replace_commits_complete_snapshot():
    store = DubSnapshotStore()
    generation = store.begin_pass()
    items = [make_item(1, 1), make_item(1, 2)]

    committed = asyncio.run(store.replace(generation, items, dub_prefix_style=DubPrefixStyle.BRACKET))

    assert committed
    assert store.snapshot.items == tuple(items)
    assert store.snapshot.generation == generation
    assert store.snapshot.dub_prefix_style is DubPrefixStyle.BRACKET
    assert store.snapshot.built_at is not None


def test_later_started_pass_wins_over_delayed_earlier_pass():
    store = DubSnapshotStore()
    early = store.begin_pass()
    late = store.begin_pass()

    async def run():
        assert await store.replace(late, [make_item(2, 1)])
        assert not await store.replace(early, [make_item(1, 1)])

    asyncio.run(run())

    assert [item.media_id for item in store.snapshot.items] == [2]
    assert store.snapshot.generation == late


def test_in_order_completion_commits_both():
    store = DubSnapshotStore()
    first = store.begin_pass()
    second = store.begin_pass()

    async def run():
        assert await store.replace(first, [make_item(1, 1)])
        assert await store.replace(second, [make_item(2, 1)])

    asyncio.run(run())

    assert store.snapshot.generation == second


def test_refreshing_flag_tracks_active_passes():
    store = DubSnapshotStore()
    assert not store.is_refreshing()

    generation = store.begin_pass()
    assert store.is_refreshing()

    store.end_pass(generation)
    assert not store.is_refreshing()


def test_listeners_notified_only_on_commit():
    store = DubSnapshotStore()
    received = []

    async def async_listener(snapshot):
        received.append(("async", snapshot.generation))

    store.subscribe(async_listener)
    store.subscribe(lambda snapshot: received.append(("sync", snapshot.generation)))

    early = store.begin_pass()
    late = store.begin_pass()

    async def run():
        await store.replace(late, [])
        await store.replace(early, [])

    asyncio.run(run())

    assert received == [("async", late), ("sync", late)]


def test_failing_listener_does_not_block_commit():
    store = DubSnapshotStore()

    def broken(snapshot):
        raise RuntimeError("host unreachable")

    store.subscribe(broken)
    generation = store.begin_pass()

    assert asyncio.run(store.replace(generation, [make_item(1, 1)]))
    assert store.snapshot.generation == generation


def test_singleton_reset():
    store = get_snapshot_store()
    assert get_snapshot_store() is store

    reset_snapshot_store()

    assert get_snapshot_store() is not store
