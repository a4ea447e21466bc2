import logging
from datetime import date, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import require_staff
from clinic_backend.database import get_db
from clinic_backend.models.appointment import APPOINTMENT_STATUSES, APPOINTMENT_TYPES, Appointment
from clinic_backend.models.campus import Campus
from clinic_backend.models.profile import Profile
from clinic_backend.routes.common import (
    daily_limit_for_type,
    database_unavailable,
    ensure_database_ready,
    normalize_appointment_type,
)
from clinic_backend.scheduling.capacity import is_day_configured, is_slot_available
from clinic_backend.scheduling.days import CalendarConfig, classify_day, clinic_weekday, visible_week_days, week_bounds
from clinic_backend.scheduling.slots import build_slot_grid, compute_slot_duration, find_slot
from clinic_backend.scheduling.sql_store import SqlAlchemyScheduleStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=['schedule'])

TERMINAL_STATUSES = ('completed', 'cancelled', 'no_show')
MAX_CHIEF_COMPLAINT_LENGTH = 600
MAX_WEEK_OFFSET = 52


class SlotResponse(BaseModel):
    start: time
    end: time
    label: str


class SlotGridResponse(BaseModel):
    appointment_type: str
    daily_limit: int
    slot_duration_minutes: int
    half_day: bool
    slots: list[SlotResponse]


class DayClassificationResponse(BaseModel):
    date: date
    weekday: int
    hidden: bool
    holiday: bool
    half_day: bool
    past: bool
    configured: bool


class SlotAvailabilityResponse(BaseModel):
    date: date
    slot_start: time
    slot_end: time
    available: bool
    max_slots: int
    booked_count: int


class WeekSlotResponse(BaseModel):
    start: time
    end: time
    label: str
    available: bool
    max_slots: int
    booked_count: int


class WeekDayResponse(BaseModel):
    date: date
    weekday: int
    holiday: bool
    half_day: bool
    past: bool
    configured: bool
    slots: list[WeekSlotResponse]


class WeekScheduleResponse(BaseModel):
    campus_id: int
    appointment_type: str
    week_start: date
    week_end: date
    daily_limit: int
    slot_duration_minutes: int
    campuses: list[dict]
    days: list[WeekDayResponse]


class AppointmentResponse(BaseModel):
    id: int
    campus_id: int
    appointment_date: date
    start_time: time
    end_time: time
    appointment_type: str
    status: str
    patient_name: str
    patient_email: str | None = None
    patient_contact: str | None = None
    chief_complaint: str | None = None
    doctor_id: str | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class CreateAppointmentRequest(BaseModel):
    campus_id: int
    appointment_date: date
    start_time: time
    appointment_type: str
    patient_name: str
    patient_email: str | None = None
    patient_contact: str | None = None
    chief_complaint: str | None = None
    doctor_id: str | None = None
    notes: str | None = None

    @field_validator('appointment_type')
    @classmethod
    def validate_appointment_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_TYPES:
            raise ValueError('Invalid appointment type.')
        return normalized

    @field_validator('patient_name')
    @classmethod
    def validate_patient_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Patient name is required.')
        return normalized

    @field_validator('patient_email')
    @classmethod
    def validate_patient_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    @field_validator('patient_contact', 'doctor_id', 'notes')
    @classmethod
    def strip_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator('chief_complaint')
    @classmethod
    def validate_chief_complaint(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_CHIEF_COMPLAINT_LENGTH:
            raise ValueError(f'Chief complaint must be {MAX_CHIEF_COMPLAINT_LENGTH} characters or fewer.')

        return normalized


class UpdateAppointmentStatusRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in TERMINAL_STATUSES:
            raise ValueError('Status must be one of: completed, cancelled, no_show.')
        return normalized


def _read_or_default(db: Session, description: str, reader, default):
    # A failed read leaves its section empty instead of failing the whole view.
    # The rollback clears the aborted transaction so the next read can run.
    try:
        return reader()
    except SQLAlchemyError:
        logger.exception('Could not load %s; continuing without it', description)
        db.rollback()
        return default


def _daily_limit(store: SqlAlchemyScheduleStore, appointment_type: str) -> int:
    return daily_limit_for_type(store.list_weekly_limits(), appointment_type)


@router.get('/slot-grid', response_model=SlotGridResponse)
def get_slot_grid(
    appointment_type: str = Query(default='consultation'),
    half_day: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_staff),
):
    normalized_type = normalize_appointment_type(appointment_type)
    ensure_database_ready()

    try:
        daily_limit = _daily_limit(SqlAlchemyScheduleStore(db), normalized_type)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    slot_duration = compute_slot_duration(daily_limit)
    return SlotGridResponse(
        appointment_type=normalized_type,
        daily_limit=daily_limit,
        slot_duration_minutes=slot_duration,
        half_day=half_day,
        slots=[
            SlotResponse(start=slot.start, end=slot.end, label=slot.label)
            for slot in build_slot_grid(slot_duration, half_day=half_day)
        ],
    )


@router.get('/days/{day}', response_model=DayClassificationResponse)
def get_day_classification(
    day: date,
    campus_id: int = Query(...),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_staff),
):
    ensure_database_ready()

    try:
        store = SqlAlchemyScheduleStore(db)
        calendar = store.load_calendar_config(campus_id)
        settings = store.list_schedule_settings(active=True)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    classification = classify_day(day, calendar)
    return DayClassificationResponse(
        date=day,
        weekday=clinic_weekday(day),
        hidden=classification.hidden,
        holiday=classification.holiday,
        half_day=classification.half_day,
        past=classification.past,
        configured=is_day_configured(settings, campus_id, day),
    )


@router.get('/availability', response_model=SlotAvailabilityResponse)
def get_slot_availability(
    campus_id: int = Query(...),
    day: date = Query(..., alias='date'),
    slot_start: time = Query(...),
    appointment_type: str = Query(default='consultation'),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_staff),
):
    normalized_type = normalize_appointment_type(appointment_type)
    ensure_database_ready()

    try:
        store = SqlAlchemyScheduleStore(db)
        calendar = store.load_calendar_config(campus_id)
        daily_limit = _daily_limit(store, normalized_type)
        settings = store.list_schedule_settings(active=True)
        appointments = store.list_appointments(campus_id=campus_id, appointment_date=day)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    classification = classify_day(day, calendar)
    slots = build_slot_grid(compute_slot_duration(daily_limit), half_day=classification.half_day)
    slot = find_slot(slots, slot_start.replace(second=0, microsecond=0))
    if slot is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Appointments must start at the beginning of an open slot.',
        )

    availability = is_slot_available(day, campus_id, slot.start, slots, settings, appointments)
    return SlotAvailabilityResponse(
        date=day,
        slot_start=slot.start,
        slot_end=slot.end,
        available=availability.available and not classification.closed,
        max_slots=availability.max_slots,
        booked_count=availability.booked_count,
    )


@router.get('/week', response_model=WeekScheduleResponse)
def get_week_schedule(
    campus_id: int = Query(...),
    appointment_type: str = Query(default='consultation'),
    week_offset: int = Query(default=0, ge=-MAX_WEEK_OFFSET, le=MAX_WEEK_OFFSET),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_staff),
):
    normalized_type = normalize_appointment_type(appointment_type)
    ensure_database_ready()

    store = SqlAlchemyScheduleStore(db)
    today = date.today()
    week_start, week_end = week_bounds(today + timedelta(days=7 * week_offset))

    limits = _read_or_default(db, 'appointment limits', store.list_weekly_limits, [])
    settings = _read_or_default(db, 'schedule settings', lambda: store.list_schedule_settings(active=True), [])
    appointments = _read_or_default(
        db,
        'appointments',
        lambda: store.list_appointments(campus_id=campus_id, date_from=week_start, date_to=week_end),
        [],
    )
    calendar = _read_or_default(db, 'calendar overrides', lambda: store.load_calendar_config(campus_id), CalendarConfig())
    campuses = _read_or_default(
        db,
        'campuses',
        lambda: [{'id': campus.id, 'name': campus.name} for campus in db.query(Campus).order_by(Campus.name).all()],
        [],
    )

    daily_limit = daily_limit_for_type(limits, normalized_type)
    slot_duration = compute_slot_duration(daily_limit)

    days: list[WeekDayResponse] = []
    for day in visible_week_days(week_start, calendar):
        classification = classify_day(day, calendar, today)
        slots: list[WeekSlotResponse] = []

        if not classification.holiday:
            day_slots = build_slot_grid(slot_duration, half_day=classification.half_day)
            for slot in day_slots:
                availability = is_slot_available(day, campus_id, slot.start, day_slots, settings, appointments, today)
                slots.append(
                    WeekSlotResponse(
                        start=slot.start,
                        end=slot.end,
                        label=slot.label,
                        available=availability.available,
                        max_slots=availability.max_slots,
                        booked_count=availability.booked_count,
                    )
                )

        days.append(
            WeekDayResponse(
                date=day,
                weekday=clinic_weekday(day),
                holiday=classification.holiday,
                half_day=classification.half_day,
                past=classification.past,
                configured=is_day_configured(settings, campus_id, day),
                slots=slots,
            )
        )

    return WeekScheduleResponse(
        campus_id=campus_id,
        appointment_type=normalized_type,
        week_start=week_start,
        week_end=week_end,
        daily_limit=daily_limit,
        slot_duration_minutes=slot_duration,
        campuses=campuses,
        days=days,
    )


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_appointments(
    campus_id: int | None = Query(default=None),
    day: date | None = Query(default=None, alias='date'),
    appointment_status: str | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_staff),
):
    if appointment_status is not None and appointment_status not in APPOINTMENT_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid appointment status.',
        )

    ensure_database_ready()

    try:
        return SqlAlchemyScheduleStore(db).list_appointments(
            campus_id=campus_id,
            appointment_date=day,
            status=appointment_status,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_staff),
):
    ensure_database_ready()

    try:
        store = SqlAlchemyScheduleStore(db)
        today = date.today()

        if data.appointment_date < today:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Appointments must be scheduled in the future.',
            )

        calendar = store.load_calendar_config(data.campus_id)
        classification = classify_day(data.appointment_date, calendar, today)
        if classification.closed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='The clinic is closed on this date.',
            )

        slot_duration = compute_slot_duration(_daily_limit(store, data.appointment_type))
        day_slots = build_slot_grid(slot_duration, half_day=classification.half_day)
        slot = find_slot(day_slots, data.start_time.replace(second=0, microsecond=0))
        if slot is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Appointments must start at the beginning of an open slot.',
            )

        settings = store.list_schedule_settings(active=True)
        if not is_day_configured(settings, data.campus_id, data.appointment_date):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='No schedule is configured for this campus on this day.',
            )

        appointments = store.list_appointments(campus_id=data.campus_id, appointment_date=data.appointment_date)
        availability = is_slot_available(
            data.appointment_date,
            data.campus_id,
            slot.start,
            day_slots,
            settings,
            appointments,
            today,
        )
        if not availability.available:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This time slot is fully booked.',
            )

        appointment = Appointment(
            campus_id=data.campus_id,
            appointment_date=data.appointment_date,
            start_time=slot.start,
            end_time=slot.end,
            appointment_type=data.appointment_type,
            status='scheduled',
            patient_name=data.patient_name,
            patient_email=data.patient_email,
            patient_contact=data.patient_contact,
            chief_complaint=data.chief_complaint,
            doctor_id=data.doctor_id,
            notes=data.notes,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        return appointment
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time slot is fully booked.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_staff),
):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if appointment.status != 'scheduled':
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Appointment is already {appointment.status}.',
            )

        SqlAlchemyScheduleStore(db).update_appointment(appointment_id, {'status': data.status})
        db.commit()
        db.refresh(appointment)

        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
