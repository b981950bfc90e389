from dub_schedule.services.feed_normalizer import (
    concatenate_feeds,
    normalize_current_record,
    normalize_feed,
    normalize_historical_record,
)
from dub_schedule.services.schedule_types import FeedSource

from factories import current_record, historical_record, utc


def test_current_record_is_normalized():
    airing = normalize_current_record(current_record(99, 1, "2024-01-01T12:00:00Z"))

    assert airing.media_id == 99
    assert airing.episode_number == 1
    assert airing.airing_instant == utc(2024, 1, 1, 12)
    assert airing.source is FeedSource.CURRENT_SCHEDULE


def test_historical_record_is_normalized_to_same_fields():
    airing = normalize_historical_record(historical_record(99, 1, "2024-01-01T13:00:00+01:00"))

    assert (airing.media_id, airing.episode_number) == (99, 1)
    assert airing.airing_instant == utc(2024, 1, 1, 12)
    assert airing.source is FeedSource.HISTORICAL_FEED


def test_records_missing_fields_are_dropped():
    records = [
        current_record(1, 1, "2024-01-01T00:00:00Z"),
        {"episodeNumber": 2, "episodeDate": "2024-01-01T00:00:00Z"},
        {"episodeNumber": 3, "media": {"media": {"id": 1}}},
        current_record(1, "4", "2024-01-01T00:00:00Z"),
        current_record(1, 5, "not a date"),
        "garbage",
        None,
    ]

    airings = normalize_feed(records, FeedSource.CURRENT_SCHEDULE)

    assert [a.episode_number for a in airings] == [1]


def test_historical_records_missing_episode_are_dropped():
    records = [
        {"id": 7},
        {"id": 7, "episode": {"aired": 2}},
        {"id": True, "episode": {"aired": 2, "airedAt": "2024-01-01T00:00:00Z"}},
        historical_record(7, 3, "2024-01-01T00:00:00Z"),
    ]

    airings = normalize_feed(records, FeedSource.HISTORICAL_FEED)

    assert [(a.media_id, a.episode_number) for a in airings] == [(7, 3)]


def test_non_list_payload_is_treated_as_empty():
    assert normalize_feed({"error": "rate limited"}, FeedSource.CURRENT_SCHEDULE) == []


def test_current_schedule_is_concatenated_first():
    current = normalize_feed([current_record(1, 1, "2024-01-01T00:00:00Z")], FeedSource.CURRENT_SCHEDULE)
    historical = normalize_feed([historical_record(2, 1, "2023-12-01T00:00:00Z")], FeedSource.HISTORICAL_FEED)

    combined = concatenate_feeds(current, historical)

    assert [a.source for a in combined] == [FeedSource.CURRENT_SCHEDULE, FeedSource.HISTORICAL_FEED]
