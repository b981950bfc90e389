import random

import pytest

from dub_schedule.services.reconciliation_service import (
    build_display_schedule,
    reconcile,
    sort_chronologically,
)
from dub_schedule.services.schedule_types import FilterMode

from factories import make_item, utc

SUB = [
    make_item(10, 5, title="Show", instant=utc(2024, 1, 1, 12)),
    make_item(11, 1, title="Other", instant=utc(2024, 1, 2, 12)),
]
DUB = [
    make_item(10, 5, title="[DUB] Show", instant=utc(2024, 1, 3, 12)),
    make_item(12, 2, title="[DUB] Third", instant=utc(2024, 1, 4, 12)),
]


def test_sub_and_dub_modes_pass_through():
    assert reconcile(SUB, DUB, FilterMode.SUB) == SUB
    assert reconcile(SUB, DUB, FilterMode.DUB) == DUB


def test_prefer_dub_replaces_sub_for_same_episode():
    result = reconcile(SUB, DUB, FilterMode.PREFER_DUB)

    matching = [item for item in result if item.key == (10, 5)]
    assert matching == [DUB[0]]
    assert len(result) == 3


def test_all_keeps_both_versions():
    result = reconcile(SUB, DUB, FilterMode.ALL)

    assert len(result) == len(SUB) + len(DUB)
    assert [item.title for item in result if item.key == (10, 5)] == ["Show", "[DUB] Show"]


@pytest.mark.parametrize("mode", list(FilterMode))
def test_output_is_subset_of_inputs(mode):
    result = reconcile(SUB, DUB, mode)

    assert all(item in SUB or item in DUB for item in result)


def test_sort_places_missing_instant_first_and_is_stable():
    no_time_a = make_item(1, 1, title="A")
    no_time_b = make_item(2, 1, title="B")
    same_1 = make_item(3, 1, title="sub", instant=utc(2024, 1, 1))
    same_2 = make_item(3, 1, title="dub", instant=utc(2024, 1, 1))
    later = make_item(4, 1, instant=utc(2024, 2, 1))

    result = sort_chronologically([later, same_1, no_time_a, same_2, no_time_b])

    assert result == [no_time_a, no_time_b, same_1, same_2, later]


def test_sort_is_non_decreasing_and_idempotent():
    rng = random.Random(7)
    items = [make_item(i, 1, instant=utc(2024, 1, rng.randint(1, 28))) for i in range(30)]
    items.append(make_item(99, 1))
    rng.shuffle(items)

    once = sort_chronologically(items)
    keys = [item.airing_instant or utc(1, 1, 1) for item in once]

    assert keys == sorted(keys)
    assert sort_chronologically(once) == once


def test_build_display_schedule_orders_result():
    result = build_display_schedule(SUB, DUB, FilterMode.ALL)

    assert [item.airing_instant for item in result] == sorted(item.airing_instant for item in result)
