from datetime import date, time
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.calendar_override import CalendarOverride, Holiday
from clinic_backend.models.schedule_limit import WeeklyScheduleLimit
from clinic_backend.models.schedule_setting import ScheduleSetting
from clinic_backend.scheduling.days import CalendarConfig
from clinic_backend.scheduling.store import (
    AppointmentRecord,
    QuotaConfig,
    ScheduleSettingRecord,
    ScheduleStore,
    validate_update_fields,
)


def parse_weekdays(value: str | None) -> frozenset[int]:
    if not value:
        return frozenset()
    return frozenset(int(part) for part in value.split(',') if part.strip())


def format_weekdays(weekdays) -> str:
    return ','.join(str(day) for day in sorted(set(weekdays)))


class SqlAlchemyScheduleStore(ScheduleStore):
    def __init__(self, session: Session):
        self.session = session

    def _appointment_to_record(self, a: Appointment) -> AppointmentRecord:
        return AppointmentRecord(
            id=a.id,
            campus_id=a.campus_id,
            appointment_date=a.appointment_date,
            start_time=a.start_time,
            end_time=a.end_time,
            appointment_type=a.appointment_type or 'consultation',
            status=a.status or 'scheduled',
            patient_name=a.patient_name or '',
            patient_email=a.patient_email,
            patient_contact=a.patient_contact,
            chief_complaint=a.chief_complaint,
            doctor_id=a.doctor_id,
            notes=a.notes,
        )

    def _setting_to_record(self, s: ScheduleSetting) -> ScheduleSettingRecord:
        return ScheduleSettingRecord(
            id=s.id,
            campus_id=s.campus_id,
            day_of_week=s.day_of_week,
            start_time=s.start_time,
            end_time=s.end_time,
            slot_duration_minutes=s.slot_duration_minutes or 30,
            max_appointments_per_slot=s.max_appointments_per_slot or config.DEFAULT_MAX_APPOINTMENTS_PER_SLOT,
            appointment_type=s.appointment_type or 'consultation',
            is_active=bool(s.is_active),
        )

    def list_appointments(
        self,
        campus_id: Optional[int] = None,
        appointment_date: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[str] = None,
        start_time_gte: Optional[time] = None,
    ) -> List[AppointmentRecord]:
        query = self.session.query(Appointment)
        if campus_id is not None:
            query = query.filter(Appointment.campus_id == campus_id)
        if appointment_date is not None:
            query = query.filter(Appointment.appointment_date == appointment_date)
        if date_from is not None:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to is not None:
            query = query.filter(Appointment.appointment_date <= date_to)
        if status is not None:
            query = query.filter(Appointment.status == status)
        if start_time_gte is not None:
            query = query.filter(Appointment.start_time >= start_time_gte)

        rows = query.order_by(
            Appointment.appointment_date.asc(),
            Appointment.start_time.asc(),
            Appointment.id.asc(),
        ).all()
        return [self._appointment_to_record(row) for row in rows]

    def update_appointment(self, appointment_id: int, fields: dict[str, Any]) -> None:
        validate_update_fields(fields)

        appointment = self.session.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise LookupError(f'Appointment {appointment_id} not found.')

        for name, value in fields.items():
            setattr(appointment, name, value)
        self.session.flush()

    def list_schedule_settings(self, active: Optional[bool] = None) -> List[ScheduleSettingRecord]:
        query = self.session.query(ScheduleSetting)
        if active is not None:
            query = query.filter(ScheduleSetting.is_active.is_(active))
        rows = query.order_by(ScheduleSetting.campus_id.asc(), ScheduleSetting.day_of_week.asc()).all()
        return [self._setting_to_record(row) for row in rows]

    def list_weekly_limits(self) -> List[QuotaConfig]:
        rows = self.session.query(WeeklyScheduleLimit).order_by(WeeklyScheduleLimit.appointment_type.asc()).all()
        return [
            QuotaConfig(appointment_type=row.appointment_type, max_appointments_per_week=row.max_appointments_per_week)
            for row in rows
        ]

    def update_weekly_limit(self, appointment_type: str, new_limit: int) -> None:
        limit = self.session.query(WeeklyScheduleLimit).filter(
            WeeklyScheduleLimit.appointment_type == appointment_type,
        ).first()
        if limit is None:
            limit = WeeklyScheduleLimit(appointment_type=appointment_type, max_appointments_per_week=new_limit)
            self.session.add(limit)
        else:
            limit.max_appointments_per_week = new_limit
        self.session.flush()

    def add_holiday(self, campus_id: int, holiday_date: date) -> None:
        existing = self.session.query(Holiday).filter(
            Holiday.campus_id == campus_id,
            Holiday.holiday_date == holiday_date,
        ).first()
        if existing is None:
            self.session.add(Holiday(campus_id=campus_id, holiday_date=holiday_date))
            self.session.flush()

    def remove_holiday(self, campus_id: int, holiday_date: date) -> bool:
        deleted = self.session.query(Holiday).filter(
            Holiday.campus_id == campus_id,
            Holiday.holiday_date == holiday_date,
        ).delete()
        self.session.flush()
        return deleted > 0

    def load_calendar_config(self, campus_id: int) -> CalendarConfig:
        override = self.session.query(CalendarOverride).filter(CalendarOverride.campus_id == campus_id).first()
        holidays = self.session.query(Holiday.holiday_date).filter(Holiday.campus_id == campus_id).all()

        if override is None:
            hidden_weekdays = frozenset(config.DEFAULT_HIDDEN_WEEKDAYS)
            half_day_weekdays = frozenset(config.DEFAULT_HALF_DAY_WEEKDAYS)
        else:
            hidden_weekdays = parse_weekdays(override.hidden_weekdays)
            half_day_weekdays = parse_weekdays(override.half_day_weekdays)

        return CalendarConfig(
            hidden_weekdays=hidden_weekdays,
            half_day_weekdays=half_day_weekdays,
            holidays=frozenset(holiday_date for (holiday_date,) in holidays),
        )

    def save_calendar_overrides(self, campus_id: int, hidden_weekdays, half_day_weekdays) -> None:
        override = self.session.query(CalendarOverride).filter(CalendarOverride.campus_id == campus_id).first()
        if override is None:
            override = CalendarOverride(campus_id=campus_id)
            self.session.add(override)
        override.hidden_weekdays = format_weekdays(hidden_weekdays)
        override.half_day_weekdays = format_weekdays(half_day_weekdays)
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
