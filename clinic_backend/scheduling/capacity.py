from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Optional

from clinic_backend.scheduling.days import clinic_weekday, is_past_date
from clinic_backend.scheduling.slots import Slot, find_slot
from clinic_backend.scheduling.store import AppointmentRecord, ScheduleSettingRecord

# Cancelled bookings give their place back.
NON_OCCUPYING_STATUSES = frozenset({'cancelled'})


@dataclass(frozen=True)
class SlotAvailability:
    available: bool
    max_slots: int
    booked_count: int

    @property
    def remaining(self) -> int:
        return max(0, self.max_slots - self.booked_count)


UNCONFIGURED = SlotAvailability(available=False, max_slots=0, booked_count=0)


def find_day_setting(
    settings: Iterable[ScheduleSettingRecord],
    campus_id: int,
    day: date,
) -> Optional[ScheduleSettingRecord]:
    """First active setting for the campus weekday, whatever its appointment type."""
    weekday = clinic_weekday(day)
    return next(
        (
            setting for setting in settings
            if setting.is_active and setting.campus_id == campus_id and setting.day_of_week == weekday
        ),
        None,
    )


def is_day_configured(settings: Iterable[ScheduleSettingRecord], campus_id: int, day: date) -> bool:
    return find_day_setting(settings, campus_id, day) is not None


def get_slot_appointments(
    appointments: Iterable[AppointmentRecord],
    campus_id: int,
    day: date,
    slot_start: time,
    slot_end: time,
) -> list[AppointmentRecord]:
    return [
        appointment for appointment in appointments
        if appointment.campus_id == campus_id
        and appointment.appointment_date == day
        and slot_start <= appointment.start_time < slot_end
        and appointment.status not in NON_OCCUPYING_STATUSES
    ]


def is_slot_available(
    day: date,
    campus_id: int,
    slot_start: time,
    slots: list[Slot],
    settings: Iterable[ScheduleSettingRecord],
    appointments: Iterable[AppointmentRecord],
    today: date | None = None,
) -> SlotAvailability:
    setting = find_day_setting(settings, campus_id, day)
    if setting is None:
        return UNCONFIGURED

    max_slots = setting.max_appointments_per_slot
    slot = find_slot(slots, slot_start)
    if slot is None:
        # Only starts on the day's grid can be booked.
        return SlotAvailability(available=False, max_slots=max_slots, booked_count=0)

    booked_count = len(get_slot_appointments(appointments, campus_id, day, slot.start, slot.end))

    return SlotAvailability(
        available=booked_count < max_slots and not is_past_date(day, today),
        max_slots=max_slots,
        booked_count=booked_count,
    )
