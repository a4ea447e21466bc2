"""Cascading redistribution of appointments into later open slots.

When part of a day is lost (the clinic closes early, or the whole day becomes a
holiday) the displaced appointments are pushed to the next open day. Every
appointment already booked from that day onward is re-flowed behind them in
the same order, so the shift never leaves gaps or puts two appointments in the
same slot.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.scheduling.days import CalendarConfig, get_next_valid_day, is_half_day
from clinic_backend.scheduling.slots import (
    DAY_START_TIME,
    build_slot_grid,
    compute_slot_duration,
    max_slots_for_day,
)
from clinic_backend.scheduling.store import AppointmentRecord, ScheduleStore

logger = logging.getLogger(__name__)

ACTIVE_STATUS = 'scheduled'
NOTHING_TO_MOVE_MESSAGE = 'No appointments to reschedule from that time.'


class RedistributionError(Exception):
    """Raised when a redistribution could not be written; nothing was applied."""


class NoOpenSlotsError(RedistributionError):
    """Raised when the calendar settings leave no slot to move appointments into."""


@dataclass(frozen=True)
class SlotAssignment:
    appointment_id: int
    appointment_date: date
    start_time: time
    end_time: time


@dataclass(frozen=True)
class RedistributionResult:
    moved: int
    reassigned: int
    assignments: tuple[SlotAssignment, ...] = field(default=(), repr=False)

    @property
    def message(self) -> str:
        if self.moved == 0:
            return NOTHING_TO_MOVE_MESSAGE
        return f'{self.moved} appointment(s) moved. {self.reassigned} total redistributed.'


def iter_open_slots(
    start_date: date,
    slot_duration: int,
    daily_limit: int,
    calendar: CalendarConfig,
) -> Iterator[tuple[date, time, time]]:
    """Yield ``(date, start, end)`` for every seat from ``start_date`` onward.

    Each day offers its slot grid (morning only on half days) up to the lower
    of the daily limit and the number of whole slots the day can hold. The
    caller must pass an open ``start_date``; later days come from
    ``get_next_valid_day``.
    """
    current_date = start_date
    daily_limit = max(1, daily_limit)

    while True:
        half_day = is_half_day(current_date, calendar)
        ceiling = min(daily_limit, max_slots_for_day(slot_duration, half_day))
        for slot in build_slot_grid(slot_duration, half_day=half_day)[:ceiling]:
            yield current_date, slot.start, slot.end
        current_date = get_next_valid_day(current_date, calendar)


def build_queue(
    to_move: list[AppointmentRecord],
    future: list[AppointmentRecord],
) -> list[AppointmentRecord]:
    seen: set[int] = set()
    queue: list[AppointmentRecord] = []
    for appointment in [*to_move, *future]:
        if appointment.id in seen:
            continue
        seen.add(appointment.id)
        queue.append(appointment)
    return queue


def plan_assignments(
    queue: list[AppointmentRecord],
    start_date: date,
    daily_limit: int,
    calendar: CalendarConfig,
) -> list[SlotAssignment]:
    slot_duration = compute_slot_duration(daily_limit)
    open_weekdays = set(range(7)) - calendar.hidden_weekdays
    if open_weekdays <= calendar.half_day_weekdays and max_slots_for_day(slot_duration, half_day=True) == 0:
        raise NoOpenSlotsError('No open slots are available with the current calendar settings.')

    seats = iter_open_slots(start_date, slot_duration, daily_limit, calendar)

    return [
        SlotAssignment(
            appointment_id=appointment.id,
            appointment_date=seat_date,
            start_time=seat_start,
            end_time=seat_end,
        )
        for appointment, (seat_date, seat_start, seat_end) in zip(queue, seats)
    ]


def redistribute(
    store: ScheduleStore,
    day: date,
    campus_id: int,
    cutoff_time: time,
    calendar: CalendarConfig,
    daily_limit: int,
) -> RedistributionResult:
    """Move the campus's scheduled appointments on ``day`` from ``cutoff_time`` on.

    All writes are committed together. If any of them fails the store is
    rolled back and ``RedistributionError`` is raised.
    """
    to_move = store.list_appointments(
        campus_id=campus_id,
        appointment_date=day,
        status=ACTIVE_STATUS,
        start_time_gte=cutoff_time,
    )
    if not to_move:
        logger.info('No appointments to redistribute for campus %s on %s from %s', campus_id, day, cutoff_time)
        return RedistributionResult(moved=0, reassigned=0)

    target_date = get_next_valid_day(day, calendar)
    future = store.list_appointments(
        campus_id=campus_id,
        date_from=target_date,
        status=ACTIVE_STATUS,
    )
    queue = build_queue(to_move, future)
    try:
        assignments = plan_assignments(queue, target_date, daily_limit, calendar)
    except RedistributionError:
        store.rollback()
        raise

    try:
        for assignment in assignments:
            store.update_appointment(
                assignment.appointment_id,
                {
                    'appointment_date': assignment.appointment_date,
                    'start_time': assignment.start_time,
                    'end_time': assignment.end_time,
                },
            )
        store.commit()
    except (SQLAlchemyError, LookupError) as exc:
        store.rollback()
        logger.exception('Redistribution for campus %s on %s failed; no changes were applied', campus_id, day)
        raise RedistributionError('Failed to reschedule appointments.') from exc

    logger.info(
        'Redistributed campus %s from %s %s: %s moved, %s reassigned starting %s',
        campus_id,
        day,
        cutoff_time,
        len(to_move),
        len(queue),
        target_date,
    )
    return RedistributionResult(moved=len(to_move), reassigned=len(queue), assignments=tuple(assignments))


def mark_holiday(
    store: ScheduleStore,
    day: date,
    campus_id: int,
    calendar: CalendarConfig,
    daily_limit: int,
) -> RedistributionResult:
    """Close ``day`` for the campus and move the whole day's appointments.

    The holiday is recorded in the same transaction as the moves.
    """
    try:
        store.add_holiday(campus_id, day)
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception('Could not record holiday %s for campus %s', day, campus_id)
        raise RedistributionError('Failed to mark the day as a holiday.') from exc

    result = redistribute(store, day, campus_id, DAY_START_TIME, calendar.with_holiday(day), daily_limit)

    if result.moved == 0:
        try:
            store.commit()
        except SQLAlchemyError as exc:
            store.rollback()
            logger.exception('Could not record holiday %s for campus %s', day, campus_id)
            raise RedistributionError('Failed to mark the day as a holiday.') from exc

    return result
