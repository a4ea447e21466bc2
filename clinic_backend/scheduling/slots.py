"""Slot grid generation.

The clinic opens 08:00-12:00 and 13:00-17:00. The appointment quota for a day
is spread evenly over those 480 minutes, so the quota decides how wide each
slot is rather than being a separate scheduling parameter.
"""

from dataclasses import dataclass
from datetime import time

MORNING_START_MINUTES = 8 * 60
MORNING_END_MINUTES = 12 * 60
AFTERNOON_START_MINUTES = 13 * 60
AFTERNOON_END_MINUTES = 17 * 60

HALF_DAY_MINUTES = MORNING_END_MINUTES - MORNING_START_MINUTES
TOTAL_MINUTES_PER_DAY = HALF_DAY_MINUTES + (AFTERNOON_END_MINUTES - AFTERNOON_START_MINUTES)
MIN_SLOT_DURATION_MINUTES = 10

DAY_START_TIME = time(8, 0)


@dataclass(frozen=True)
class Slot:
    start: time
    end: time
    label: str


def compute_slot_duration(daily_ceiling: int) -> int:
    """Minutes per slot for a daily appointment ceiling.

    A ceiling below 1 is treated as 1 so a missing or zeroed quota still
    yields a usable grid.
    """
    ceiling = max(1, int(daily_ceiling))
    return max(MIN_SLOT_DURATION_MINUTES, TOTAL_MINUTES_PER_DAY // ceiling)


def max_slots_for_day(slot_duration: int, half_day: bool = False) -> int:
    if half_day:
        return HALF_DAY_MINUTES // slot_duration
    return TOTAL_MINUTES_PER_DAY // slot_duration


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def format_slot_label(value: time) -> str:
    hour_12 = value.hour - 12 if value.hour > 12 else (12 if value.hour == 0 else value.hour)
    meridiem = 'PM' if value.hour >= 12 else 'AM'
    return f'{hour_12}:{value.minute:02d} {meridiem}'


def _tile_window(window_start: int, window_end: int, slot_duration: int) -> list[Slot]:
    slots: list[Slot] = []
    current = window_start

    while current < window_end:
        slot_end = min(current + slot_duration, window_end)
        start_time = minutes_to_time(current)
        slots.append(Slot(start=start_time, end=minutes_to_time(slot_end), label=format_slot_label(start_time)))
        current = slot_end

    return slots


def build_slot_grid(slot_duration: int, half_day: bool = False) -> list[Slot]:
    """Tile the operating windows with slots of ``slot_duration`` minutes.

    The last slot of each window is cut short at the window boundary. Half
    days only get the morning window.
    """
    if slot_duration <= 0:
        raise ValueError('Slot duration must be a positive number of minutes.')

    slots = _tile_window(MORNING_START_MINUTES, MORNING_END_MINUTES, slot_duration)
    if not half_day:
        slots.extend(_tile_window(AFTERNOON_START_MINUTES, AFTERNOON_END_MINUTES, slot_duration))

    return slots


def compute_slot_grid(daily_ceiling: int, half_day: bool = False) -> list[Slot]:
    return build_slot_grid(compute_slot_duration(daily_ceiling), half_day=half_day)


def find_slot(slots: list[Slot], slot_start: time) -> Slot | None:
    return next((slot for slot in slots if slot.start == slot_start), None)


def is_lunch_break_time(value: time) -> bool:
    return MORNING_END_MINUTES <= time_to_minutes(value) < AFTERNOON_START_MINUTES
