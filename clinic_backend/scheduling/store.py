from dataclasses import dataclass
from datetime import date, time
from typing import Any, List, Optional

UPDATABLE_APPOINTMENT_FIELDS = frozenset({
    'appointment_date',
    'start_time',
    'end_time',
    'status',
    'patient_name',
    'patient_email',
    'patient_contact',
    'appointment_type',
})


@dataclass(frozen=True)
class AppointmentRecord:
    id: int
    campus_id: int
    appointment_date: date
    start_time: time
    end_time: time
    appointment_type: str
    status: str
    patient_name: str
    patient_email: Optional[str] = None
    patient_contact: Optional[str] = None
    chief_complaint: Optional[str] = None
    doctor_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ScheduleSettingRecord:
    id: int
    campus_id: int
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int
    max_appointments_per_slot: int
    appointment_type: str
    is_active: bool


@dataclass(frozen=True)
class QuotaConfig:
    appointment_type: str
    max_appointments_per_week: int


class ScheduleStore:
    """Record storage consumed by the scheduling core.

    Writes are staged until ``commit``; ``rollback`` discards them.
    """

    def list_appointments(
        self,
        campus_id: Optional[int] = None,
        appointment_date: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[str] = None,
        start_time_gte: Optional[time] = None,
    ) -> List[AppointmentRecord]:
        ...

    def update_appointment(self, appointment_id: int, fields: dict[str, Any]) -> None:
        ...

    def list_schedule_settings(self, active: Optional[bool] = None) -> List[ScheduleSettingRecord]:
        ...

    def list_weekly_limits(self) -> List[QuotaConfig]:
        ...

    def update_weekly_limit(self, appointment_type: str, new_limit: int) -> None:
        ...

    def add_holiday(self, campus_id: int, holiday_date: date) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


def validate_update_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_APPOINTMENT_FIELDS
    if unknown:
        raise ValueError(f'Cannot update appointment fields: {", ".join(sorted(unknown))}')
