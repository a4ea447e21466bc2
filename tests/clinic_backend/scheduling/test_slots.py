import math
from datetime import time

import pytest

from clinic_backend.scheduling.slots import (
    build_slot_grid,
    compute_slot_duration,
    compute_slot_grid,
    find_slot,
    format_slot_label,
    is_lunch_break_time,
    max_slots_for_day,
)


def test_daily_ceiling_of_twenty_gives_twenty_four_minute_slots() -> None:
    slots = compute_slot_grid(20)

    assert compute_slot_duration(20) == 24
    assert len(slots) == 20
    assert (slots[0].start, slots[0].end) == (time(8, 0), time(8, 24))
    assert (slots[9].start, slots[9].end) == (time(11, 36), time(12, 0))
    assert (slots[10].start, slots[10].end) == (time(13, 0), time(13, 24))
    assert (slots[-1].start, slots[-1].end) == (time(16, 36), time(17, 0))


def test_daily_ceiling_of_forty_eight_uses_ten_minute_slots() -> None:
    slots = compute_slot_grid(48)

    assert compute_slot_duration(48) == 10
    morning = [slot for slot in slots if slot.start < time(12, 0)]
    afternoon = [slot for slot in slots if slot.start >= time(13, 0)]
    assert len(morning) == 24
    assert len(afternoon) == 24


def test_slot_duration_never_drops_below_ten_minutes() -> None:
    assert compute_slot_duration(200) == 10


@pytest.mark.parametrize('daily_ceiling', [0, -5])
def test_non_positive_ceiling_is_treated_as_one(daily_ceiling: int) -> None:
    assert compute_slot_duration(daily_ceiling) == 480

    slots = compute_slot_grid(daily_ceiling)

    assert [(slot.start, slot.end) for slot in slots] == [
        (time(8, 0), time(12, 0)),
        (time(13, 0), time(17, 0)),
    ]


@pytest.mark.parametrize('daily_ceiling', [1, 3, 7, 13, 19, 20, 25, 36, 48, 100])
def test_slot_grid_tiles_both_halves_without_overlap(daily_ceiling: int) -> None:
    duration = compute_slot_duration(daily_ceiling)
    slots = compute_slot_grid(daily_ceiling)

    assert len(slots) == 2 * math.ceil(240 / duration)
    assert all(slot.start < slot.end for slot in slots)
    assert not any(is_lunch_break_time(slot.start) for slot in slots)

    morning = [slot for slot in slots if slot.end <= time(12, 0)]
    afternoon = [slot for slot in slots if slot.start >= time(13, 0)]
    assert len(morning) + len(afternoon) == len(slots)
    for half, first_start, last_end in ((morning, time(8, 0), time(12, 0)), (afternoon, time(13, 0), time(17, 0))):
        assert half[0].start == first_start
        assert half[-1].end == last_end
        for previous, current in zip(half, half[1:]):
            assert previous.end == current.start


def test_last_slot_of_each_half_is_truncated_to_the_boundary() -> None:
    slots = compute_slot_grid(19)

    assert compute_slot_duration(19) == 25
    morning_last = [slot for slot in slots if slot.start < time(12, 0)][-1]
    assert (morning_last.start, morning_last.end) == (time(11, 45), time(12, 0))
    assert (slots[-1].start, slots[-1].end) == (time(16, 45), time(17, 0))


def test_half_day_grid_only_has_morning_slots() -> None:
    slots = compute_slot_grid(20, half_day=True)

    assert len(slots) == 10
    assert all(slot.end <= time(12, 0) for slot in slots)


def test_max_slots_for_day_counts_whole_slots() -> None:
    assert max_slots_for_day(24) == 20
    assert max_slots_for_day(24, half_day=True) == 10
    assert max_slots_for_day(25) == 19
    assert max_slots_for_day(480, half_day=True) == 0


@pytest.mark.parametrize(
    ('value', 'label'),
    [
        (time(8, 0), '8:00 AM'),
        (time(11, 36), '11:36 AM'),
        (time(12, 48), '12:48 PM'),
        (time(13, 0), '1:00 PM'),
        (time(16, 36), '4:36 PM'),
    ],
)
def test_format_slot_label(value: time, label: str) -> None:
    assert format_slot_label(value) == label


def test_slot_labels_follow_start_times() -> None:
    slots = compute_slot_grid(20)

    assert slots[0].label == '8:00 AM'
    assert slots[10].label == '1:00 PM'


def test_find_slot_matches_exact_start() -> None:
    slots = compute_slot_grid(20)

    assert find_slot(slots, time(8, 24)).end == time(8, 48)
    assert find_slot(slots, time(8, 30)) is None


def test_build_slot_grid_rejects_non_positive_duration() -> None:
    with pytest.raises(ValueError):
        build_slot_grid(0)
