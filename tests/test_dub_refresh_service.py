import asyncio
from datetime import timedelta

from dub_schedule.services.dub_refresh_service import DubRefreshPipeline, refresh_dub_schedule
from dub_schedule.services.reconciliation_service import reconcile
from dub_schedule.services.schedule_types import DubPrefixStyle, FilterMode, Preferences
from dub_schedule.services.snapshot_store import DubSnapshotStore

from factories import (
    CURRENT_URL,
    HISTORICAL_URL,
    current_record,
    historical_record,
    make_collection,
    make_item,
    make_media,
    mock_upstream,
    utc,
)

PREFS = Preferences(FilterMode.ALL, DubPrefixStyle.ICON_AND_TEXT)


def _refresh(app_settings, store, client, preferences=PREFS):
    async def run():
        async with client:
            return await refresh_dub_schedule(preferences, store, app_settings=app_settings, client=client)

    return asyncio.run(run())


def test_end_to_end_confirmed_and_projected(app_settings):
    store = DubSnapshotStore()
    client = mock_upstream(
        current=[current_record(99, 1, "2024-01-01T12:00:00Z")],
        collection=make_collection(make_media(99, "Show", episodes=3)),
    )

    result = _refresh(app_settings, store, client)

    assert result["status"] == "success"
    items = store.snapshot.items
    assert [(item.media_id, item.episode_number) for item in items] == [(99, 1), (99, 2), (99, 3)]
    assert [item.airing_instant for item in items] == [
        utc(2024, 1, 1, 12),
        utc(2024, 1, 8, 12),
        utc(2024, 1, 15, 12),
    ]
    assert [item.is_season_finale for item in items] == [False, False, True]
    assert all(item.title == "🎙️Dub - Show" for item in items)


def test_current_schedule_wins_over_historical_duplicate(app_settings):
    store = DubSnapshotStore()
    client = mock_upstream(
        current=[current_record(5, 2, "2024-03-08T10:00:00Z")],
        historical=[historical_record(5, 2, "2024-03-01T10:00:00Z"), historical_record(5, 1, "2024-03-01T10:00:00Z")],
        collection=make_collection(make_media(5, "Show", episodes=2)),
    )

    result = _refresh(app_settings, store, client)

    by_episode = {item.episode_number: item for item in store.snapshot.items}
    assert by_episode[2].airing_instant == utc(2024, 3, 8, 10)
    assert len(store.snapshot.items) == 2
    assert result["duplicates"] == 1


def test_historical_airings_are_not_projected_by_default(app_settings):
    store = DubSnapshotStore()
    client = mock_upstream(
        historical=[historical_record(7, 1, "2024-01-01T00:00:00Z")],
        collection=make_collection(make_media(7, "Old", episodes=4)),
    )

    _refresh(app_settings, store, client)

    assert [item.episode_number for item in store.snapshot.items] == [1]


def test_historical_projection_can_be_enabled(app_settings):
    app_settings.project_historical_airings = True
    store = DubSnapshotStore()
    client = mock_upstream(
        historical=[historical_record(7, 1, "2024-01-01T00:00:00Z")],
        collection=make_collection(make_media(7, "Old", episodes=4)),
    )

    _refresh(app_settings, store, client)

    assert [item.episode_number for item in store.snapshot.items] == [1, 2, 3, 4]


def test_unresolved_and_malformed_records_are_dropped(app_settings):
    store = DubSnapshotStore()
    client = mock_upstream(
        current=[
            current_record(1, 1, "2024-01-01T00:00:00Z"),
            current_record(404, 1, "2024-01-01T00:00:00Z"),
            {"episodeNumber": 1},
        ],
        collection=make_collection(make_media(1, "Tracked", episodes=None)),
    )

    result = _refresh(app_settings, store, client)

    assert [(item.media_id, item.is_season_finale) for item in store.snapshot.items] == [(1, False)]
    assert result["unresolved"] == 1
    assert result["malformed"] == 1


def test_marker_follows_preferences(app_settings):
    store = DubSnapshotStore()
    client = mock_upstream(
        current=[current_record(1, 1, "2024-01-01T00:00:00Z")],
        collection=make_collection(make_media(1, "Show", episodes=1)),
    )

    _refresh(app_settings, store, client, Preferences(FilterMode.DUB, DubPrefixStyle.BRACKET))

    assert store.snapshot.items[0].title == "[DUB] Show"
    assert store.snapshot.dub_prefix_style is DubPrefixStyle.BRACKET


def test_transport_failure_keeps_previous_snapshot(app_settings):
    store = DubSnapshotStore()
    previous = [make_item(1, 1, title="🎙️Dub - Kept")]
    asyncio.run(store.replace(store.begin_pass(), previous))

    client = mock_upstream(status={HISTORICAL_URL: 503})

    result = _refresh(app_settings, store, client)

    assert "error" in result
    assert list(store.snapshot.items) == previous
    assert not store.is_refreshing()


def test_client_error_on_feed_aborts(app_settings):
    store = DubSnapshotStore()
    calls = []
    client = mock_upstream(status={CURRENT_URL: 404}, calls=calls)

    result = _refresh(app_settings, store, client)

    assert "error" in result
    assert store.snapshot.generation == 0
    assert calls == [CURRENT_URL]


def test_missing_username_aborts(app_settings):
    app_settings.anilist_username = None
    store = DubSnapshotStore()

    result = _refresh(app_settings, store, mock_upstream())

    assert "ANILIST_USERNAME" in result["error"]
    assert store.snapshot.generation == 0


def test_build_items_orders_confirmed_before_projected(app_settings):
    pipeline = DubRefreshPipeline(app_settings, PREFS, DubSnapshotStore())
    current = [current_record(1, 1, "2024-01-01T00:00:00Z"), current_record(2, 1, "2024-01-02T00:00:00Z")]
    collection = make_collection(make_media(1, "A", episodes=2), make_media(2, "B", episodes=2))

    result = pipeline.build_items(current, [], collection)

    assert [(item.media_id, item.episode_number) for item in result.items] == [(1, 1), (2, 1), (1, 2), (2, 2)]
    assert result.items[2].airing_instant - result.items[0].airing_instant == timedelta(days=7)
    assert result.stats.confirmed == 2
    assert result.stats.projected == 2


def _keys(items):
    return [(item.media_id, item.episode_number) for item in items]


def test_projection_stops_at_next_confirmed_episode(app_settings):
    pipeline = DubRefreshPipeline(app_settings, PREFS, DubSnapshotStore())
    current = [current_record(7, 1, "2024-01-01T00:00:00Z"), current_record(7, 2, "2024-01-10T00:00:00Z")]

    result = pipeline.build_items(current, [], make_collection(make_media(7, "Show", episodes=3)))

    assert _keys(result.items) == [(7, 1), (7, 2), (7, 3)]
    assert result.items[1].airing_instant == utc(2024, 1, 10)
    assert result.items[2].airing_instant == utc(2024, 1, 17)
    assert result.stats.projected == 1


def test_overlapping_anchors_keep_confirmed_time_and_unique_keys(app_settings):
    app_settings.project_historical_airings = True
    pipeline = DubRefreshPipeline(app_settings, PREFS, DubSnapshotStore())
    current = [current_record(7, 2, "2024-01-10T00:00:00Z")]
    historical = [historical_record(7, 1, "2024-01-01T00:00:00Z")]

    result = pipeline.build_items(current, historical, make_collection(make_media(7, "Show", episodes=4)))

    keys = _keys(result.items)
    assert keys == [(7, 2), (7, 1), (7, 3), (7, 4)]
    assert len(set(keys)) == len(keys)

    sub = [make_item(7, episode, title="Show", instant=utc(2024, 1, episode)) for episode in range(1, 5)]
    merged = reconcile(sub, result.items, FilterMode.ALL)
    assert len(merged) == len(sub) + len(result.items)

    dub_episode_two = [item for item in reconcile(sub, result.items, FilterMode.PREFER_DUB) if item.key == (7, 2)]
    assert [item.airing_instant for item in dub_episode_two] == [utc(2024, 1, 10)]
