import logging
from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import require_schedule_manager
from clinic_backend.database import get_db
from clinic_backend.models.appointment import APPOINTMENT_TYPES
from clinic_backend.models.profile import Profile
from clinic_backend.models.schedule_setting import ScheduleSetting
from clinic_backend.routes.common import (
    daily_limit_for_type,
    database_unavailable,
    ensure_database_ready,
    normalize_appointment_type,
)
from clinic_backend.scheduling.days import CalendarConfig
from clinic_backend.scheduling.redistribution import NoOpenSlotsError, RedistributionError, mark_holiday, redistribute
from clinic_backend.scheduling.slots import DAY_START_TIME, compute_slot_duration
from clinic_backend.scheduling.sql_store import SqlAlchemyScheduleStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=['admin'])


def _normalize_weekdays(value: list[int]) -> list[int]:
    for day in value:
        if day < 0 or day > 6:
            raise ValueError('Weekdays must be between 0 (Sunday) and 6 (Saturday).')
    return sorted(set(value))


class QuotaResponse(BaseModel):
    appointment_type: str
    max_appointments_per_week: int
    slot_duration_minutes: int


class UpdateQuotaRequest(BaseModel):
    max_appointments: int
    confirm_limit: str

    @field_validator('max_appointments')
    @classmethod
    def validate_max_appointments(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('The daily limit must be at least 1.')
        return value

    @model_validator(mode='after')
    def validate_confirmation(self) -> 'UpdateQuotaRequest':
        if self.confirm_limit.strip() != str(self.max_appointments):
            raise ValueError('Please type the new limit to confirm.')
        return self


class ScheduleSettingResponse(BaseModel):
    id: int
    campus_id: int
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int | None = None
    max_appointments_per_slot: int | None = None
    appointment_type: str | None = None
    is_active: bool

    class Config:
        from_attributes = True


class UpdateScheduleSettingRequest(BaseModel):
    start_time: time
    end_time: time
    slot_duration_minutes: int
    max_appointments_per_slot: int
    is_active: bool = True

    @field_validator('slot_duration_minutes', 'max_appointments_per_slot')
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Value must be a positive number.')
        return value

    @model_validator(mode='after')
    def validate_time_range(self) -> 'UpdateScheduleSettingRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


class CalendarResponse(BaseModel):
    campus_id: int
    hidden_weekdays: list[int]
    half_day_weekdays: list[int]
    holidays: list[date]


class UpdateCalendarRequest(BaseModel):
    hidden_weekdays: list[int]
    half_day_weekdays: list[int] = []

    @field_validator('hidden_weekdays', 'half_day_weekdays')
    @classmethod
    def validate_weekdays(cls, value: list[int]) -> list[int]:
        return _normalize_weekdays(value)

    @model_validator(mode='after')
    def validate_open_days(self) -> 'UpdateCalendarRequest':
        if len(self.hidden_weekdays) >= 7:
            raise ValueError('At least one weekday must remain open.')
        return self


class HolidayRequest(BaseModel):
    date: date


class RedistributeRequest(BaseModel):
    date: date
    campus_id: int
    cutoff_time: time = DAY_START_TIME
    appointment_type: str = 'consultation'

    @field_validator('appointment_type')
    @classmethod
    def validate_appointment_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_TYPES:
            raise ValueError('Invalid appointment type.')
        return normalized


class MarkHolidayRequest(BaseModel):
    date: date
    campus_id: int
    appointment_type: str = 'consultation'

    @field_validator('appointment_type')
    @classmethod
    def validate_appointment_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_TYPES:
            raise ValueError('Invalid appointment type.')
        return normalized


class RedistributionResponse(BaseModel):
    moved: int
    reassigned: int
    message: str


def _calendar_response(campus_id: int, calendar: CalendarConfig) -> CalendarResponse:
    return CalendarResponse(
        campus_id=campus_id,
        hidden_weekdays=sorted(calendar.hidden_weekdays),
        half_day_weekdays=sorted(calendar.half_day_weekdays),
        holidays=sorted(calendar.holidays),
    )


@router.get('/limits', response_model=list[QuotaResponse])
def list_limits(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    try:
        limits = SqlAlchemyScheduleStore(db).list_weekly_limits()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    responses: list[QuotaResponse] = []
    for appointment_type in APPOINTMENT_TYPES:
        daily_limit = daily_limit_for_type(limits, appointment_type)
        responses.append(
            QuotaResponse(
                appointment_type=appointment_type,
                max_appointments_per_week=daily_limit,
                slot_duration_minutes=compute_slot_duration(daily_limit),
            )
        )
    return responses


@router.put('/limits/{appointment_type}', response_model=QuotaResponse)
def update_limit(
    appointment_type: str,
    data: UpdateQuotaRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    normalized_type = normalize_appointment_type(appointment_type)
    ensure_database_ready()

    try:
        store = SqlAlchemyScheduleStore(db)
        store.update_weekly_limit(normalized_type, data.max_appointments)
        store.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update the %s limit', normalized_type)
        raise database_unavailable() from exc

    logger.info('%s set the %s daily limit to %s', current_user.email, normalized_type, data.max_appointments)
    return QuotaResponse(
        appointment_type=normalized_type,
        max_appointments_per_week=data.max_appointments,
        slot_duration_minutes=compute_slot_duration(data.max_appointments),
    )


@router.get('/schedule-settings', response_model=list[ScheduleSettingResponse])
def list_schedule_settings(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    try:
        return db.query(ScheduleSetting).order_by(
            ScheduleSetting.campus_id.asc(),
            ScheduleSetting.day_of_week.asc(),
        ).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/schedule-settings/{setting_id}', response_model=ScheduleSettingResponse)
def update_schedule_setting(
    setting_id: int,
    data: UpdateScheduleSettingRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    try:
        setting = db.query(ScheduleSetting).filter(ScheduleSetting.id == setting_id).first()
        if not setting:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Schedule setting not found.',
            )

        setting.start_time = data.start_time
        setting.end_time = data.end_time
        setting.slot_duration_minutes = data.slot_duration_minutes
        setting.max_appointments_per_slot = data.max_appointments_per_slot
        setting.is_active = data.is_active
        db.commit()
        db.refresh(setting)

        return setting
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/calendar/{campus_id}', response_model=CalendarResponse)
def get_calendar(
    campus_id: int,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    try:
        calendar = SqlAlchemyScheduleStore(db).load_calendar_config(campus_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return _calendar_response(campus_id, calendar)


@router.put('/calendar/{campus_id}', response_model=CalendarResponse)
def update_calendar(
    campus_id: int,
    data: UpdateCalendarRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    try:
        store = SqlAlchemyScheduleStore(db)
        store.save_calendar_overrides(campus_id, data.hidden_weekdays, data.half_day_weekdays)
        store.commit()
        calendar = store.load_calendar_config(campus_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return _calendar_response(campus_id, calendar)


@router.post('/calendar/{campus_id}/holidays', response_model=CalendarResponse, status_code=status.HTTP_201_CREATED)
def add_holiday(
    campus_id: int,
    data: HolidayRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    try:
        store = SqlAlchemyScheduleStore(db)
        store.add_holiday(campus_id, data.date)
        store.commit()
        calendar = store.load_calendar_config(campus_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return _calendar_response(campus_id, calendar)


@router.delete('/calendar/{campus_id}/holidays/{holiday_date}', status_code=status.HTTP_204_NO_CONTENT)
def remove_holiday(
    campus_id: int,
    holiday_date: date,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    try:
        store = SqlAlchemyScheduleStore(db)
        removed = store.remove_holiday(campus_id, holiday_date)
        if not removed:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Holiday not found.',
            )
        store.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/redistribute', response_model=RedistributionResponse)
def redistribute_appointments(
    data: RedistributeRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    store = SqlAlchemyScheduleStore(db)
    try:
        calendar = store.load_calendar_config(data.campus_id)
        daily_limit = daily_limit_for_type(store.list_weekly_limits(), data.appointment_type)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    try:
        result = redistribute(store, data.date, data.campus_id, data.cutoff_time, calendar, daily_limit)
    except NoOpenSlotsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except RedistributionError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    logger.info('%s rescheduled campus %s on %s from %s', current_user.email, data.campus_id, data.date, data.cutoff_time)
    return RedistributionResponse(moved=result.moved, reassigned=result.reassigned, message=result.message)


@router.post('/holidays/mark', response_model=RedistributionResponse)
def mark_day_as_holiday(
    data: MarkHolidayRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_schedule_manager),
):
    ensure_database_ready()

    store = SqlAlchemyScheduleStore(db)
    try:
        calendar = store.load_calendar_config(data.campus_id)
        daily_limit = daily_limit_for_type(store.list_weekly_limits(), data.appointment_type)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    try:
        result = mark_holiday(store, data.date, data.campus_id, calendar, daily_limit)
    except NoOpenSlotsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except RedistributionError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    logger.info('%s marked %s as a holiday for campus %s', current_user.email, data.date, data.campus_id)
    return RedistributionResponse(moved=result.moved, reassigned=result.reassigned, message=result.message)
