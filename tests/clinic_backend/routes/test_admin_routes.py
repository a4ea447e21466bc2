from datetime import date, time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from clinic_backend.models.appointment import Appointment
from clinic_backend.models.campus import Campus
from clinic_backend.models.profile import Profile
from clinic_backend.models.schedule_setting import ScheduleSetting
from clinic_backend.routes import admin_routes
from clinic_backend.routes.admin_routes import (
    HolidayRequest,
    MarkHolidayRequest,
    RedistributeRequest,
    UpdateCalendarRequest,
    UpdateQuotaRequest,
    UpdateScheduleSettingRequest,
    add_holiday,
    get_calendar,
    list_limits,
    list_schedule_settings,
    mark_day_as_holiday,
    redistribute_appointments,
    remove_holiday,
    update_calendar,
    update_limit,
    update_schedule_setting,
)
from clinic_backend.scheduling.redistribution import RedistributionError

ADMIN = Profile(id=1, email='admin@clinic.edu', role='admin', campus_id=1)

# 2026-01-05 is a Monday.
MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic_backend.routes.admin_routes.ensure_database_ready', lambda: None)


@pytest.fixture
def clinic_db(db_session):
    db_session.add(Campus(id=1, name='Main Campus'))
    db_session.commit()
    return db_session


def _add_appointment(db, day: date, start: time, end: time) -> Appointment:
    appointment = Appointment(
        campus_id=1,
        appointment_date=day,
        start_time=start,
        end_time=end,
        appointment_type='consultation',
        status='scheduled',
        patient_name='Alex Rivera',
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def test_limit_update_requires_typed_confirmation() -> None:
    assert UpdateQuotaRequest(max_appointments=30, confirm_limit=' 30 ').max_appointments == 30

    with pytest.raises(ValidationError, match='Please type the new limit to confirm.'):
        UpdateQuotaRequest(max_appointments=30, confirm_limit='3')


def test_limit_update_rejects_non_positive_limits() -> None:
    with pytest.raises(ValidationError):
        UpdateQuotaRequest(max_appointments=0, confirm_limit='0')


def test_list_limits_falls_back_to_default(clinic_db) -> None:
    limits = list_limits(db=clinic_db, current_user=ADMIN)

    assert [(item.appointment_type, item.max_appointments_per_week, item.slot_duration_minutes) for item in limits] == [
        ('physical_exam', 20, 24),
        ('consultation', 20, 24),
    ]


def test_update_limit_persists_and_reports_slot_duration(clinic_db) -> None:
    response = update_limit(
        'Consultation',
        UpdateQuotaRequest(max_appointments=48, confirm_limit='48'),
        db=clinic_db,
        current_user=ADMIN,
    )

    assert (response.appointment_type, response.max_appointments_per_week) == ('consultation', 48)
    assert response.slot_duration_minutes == 10
    limits = {item.appointment_type: item.max_appointments_per_week for item in list_limits(db=clinic_db, current_user=ADMIN)}
    assert limits == {'physical_exam': 20, 'consultation': 48}


def test_update_limit_rejects_unknown_type(clinic_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_limit(
            'surgery',
            UpdateQuotaRequest(max_appointments=5, confirm_limit='5'),
            db=clinic_db,
            current_user=ADMIN,
        )

    assert exception_info.value.status_code == 400


def test_schedule_settings_can_be_listed_and_updated(clinic_db) -> None:
    setting = ScheduleSetting(
        campus_id=1,
        day_of_week=1,
        start_time=time(8, 0),
        end_time=time(17, 0),
        slot_duration_minutes=30,
        max_appointments_per_slot=2,
        appointment_type='consultation',
        is_active=True,
    )
    clinic_db.add(setting)
    clinic_db.commit()

    updated = update_schedule_setting(
        setting.id,
        UpdateScheduleSettingRequest(
            start_time=time(9, 0),
            end_time=time(12, 0),
            slot_duration_minutes=20,
            max_appointments_per_slot=4,
            is_active=False,
        ),
        db=clinic_db,
        current_user=ADMIN,
    )

    assert (updated.start_time, updated.max_appointments_per_slot, updated.is_active) == (time(9, 0), 4, False)
    assert [s.id for s in list_schedule_settings(db=clinic_db, current_user=ADMIN)] == [setting.id]


def test_update_schedule_setting_for_missing_row(clinic_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_schedule_setting(
            99,
            UpdateScheduleSettingRequest(
                start_time=time(8, 0),
                end_time=time(17, 0),
                slot_duration_minutes=30,
                max_appointments_per_slot=2,
            ),
            db=clinic_db,
            current_user=ADMIN,
        )

    assert exception_info.value.status_code == 404


def test_schedule_setting_request_rejects_inverted_range() -> None:
    with pytest.raises(ValidationError, match='Start time must be before end time.'):
        UpdateScheduleSettingRequest(
            start_time=time(17, 0),
            end_time=time(8, 0),
            slot_duration_minutes=30,
            max_appointments_per_slot=2,
        )


@pytest.mark.parametrize(
    ('fields', 'message'),
    [
        ({'hidden_weekdays': [0, 1, 2, 3, 4, 5, 6]}, 'At least one weekday must remain open.'),
        ({'hidden_weekdays': [7]}, 'Weekdays must be between 0'),
        ({'hidden_weekdays': [0], 'half_day_weekdays': [-1]}, 'Weekdays must be between 0'),
    ],
)
def test_calendar_request_rejects_invalid_weekdays(fields: dict, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        UpdateCalendarRequest(**fields)


def test_calendar_updates_and_holidays(clinic_db) -> None:
    default = get_calendar(1, db=clinic_db, current_user=ADMIN)
    assert default.hidden_weekdays == [0, 6]

    updated = update_calendar(
        1,
        UpdateCalendarRequest(hidden_weekdays=[6, 0, 0], half_day_weekdays=[5]),
        db=clinic_db,
        current_user=ADMIN,
    )
    assert (updated.hidden_weekdays, updated.half_day_weekdays) == ([0, 6], [5])

    with_holiday = add_holiday(1, HolidayRequest(date=MONDAY), db=clinic_db, current_user=ADMIN)
    assert with_holiday.holidays == [MONDAY]

    remove_holiday(1, MONDAY, db=clinic_db, current_user=ADMIN)
    assert get_calendar(1, db=clinic_db, current_user=ADMIN).holidays == []

    with pytest.raises(HTTPException) as exception_info:
        remove_holiday(1, MONDAY, db=clinic_db, current_user=ADMIN)
    assert exception_info.value.status_code == 404


def test_redistribute_reports_nothing_to_move(clinic_db) -> None:
    _add_appointment(clinic_db, MONDAY, time(9, 0), time(9, 24))

    response = redistribute_appointments(
        RedistributeRequest(date=MONDAY, campus_id=1, cutoff_time=time(13, 0)),
        db=clinic_db,
        current_user=ADMIN,
    )

    assert (response.moved, response.reassigned) == (0, 0)
    assert response.message == 'No appointments to reschedule from that time.'


def test_redistribute_moves_afternoon_to_next_open_day(clinic_db) -> None:
    moved = _add_appointment(clinic_db, MONDAY, time(14, 0), time(14, 24))

    response = redistribute_appointments(
        RedistributeRequest(date=MONDAY, campus_id=1, cutoff_time=time(13, 0)),
        db=clinic_db,
        current_user=ADMIN,
    )

    assert (response.moved, response.reassigned) == (1, 1)
    assert response.message == '1 appointment(s) moved. 1 total redistributed.'
    clinic_db.expire_all()
    row = clinic_db.query(Appointment).filter(Appointment.id == moved.id).one()
    assert (row.appointment_date, row.start_time, row.end_time) == (TUESDAY, time(8, 0), time(8, 24))


def test_mark_holiday_moves_the_whole_day(clinic_db) -> None:
    _add_appointment(clinic_db, MONDAY, time(8, 0), time(8, 24))
    _add_appointment(clinic_db, MONDAY, time(15, 0), time(15, 24))

    response = mark_day_as_holiday(
        MarkHolidayRequest(date=MONDAY, campus_id=1),
        db=clinic_db,
        current_user=ADMIN,
    )

    assert (response.moved, response.reassigned) == (2, 2)
    assert get_calendar(1, db=clinic_db, current_user=ADMIN).holidays == [MONDAY]
    clinic_db.expire_all()
    assert {row.appointment_date for row in clinic_db.query(Appointment).all()} == {TUESDAY}


def test_redistribution_failure_is_reported_as_unavailable(clinic_db, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_redistribute(*args, **kwargs):
        raise RedistributionError('Failed to reschedule appointments.')

    monkeypatch.setattr(admin_routes, 'redistribute', failing_redistribute)

    with pytest.raises(HTTPException) as exception_info:
        redistribute_appointments(
            RedistributeRequest(date=MONDAY, campus_id=1),
            db=clinic_db,
            current_user=ADMIN,
        )

    assert exception_info.value.status_code == 503
    assert exception_info.value.detail == 'Failed to reschedule appointments.'


def test_redistribute_request_defaults() -> None:
    request = RedistributeRequest(date=MONDAY, campus_id=1, appointment_type=' Physical_Exam ')

    assert request.cutoff_time == time(8, 0)
    assert request.appointment_type == 'physical_exam'


def test_redistribute_without_any_open_slot_is_a_conflict(clinic_db) -> None:
    update_calendar(
        1,
        UpdateCalendarRequest(hidden_weekdays=[0, 6], half_day_weekdays=[1, 2, 3, 4, 5]),
        db=clinic_db,
        current_user=ADMIN,
    )
    update_limit('consultation', UpdateQuotaRequest(max_appointments=1, confirm_limit='1'), db=clinic_db, current_user=ADMIN)
    appointment = _add_appointment(clinic_db, MONDAY, time(9, 0), time(17, 0))

    with pytest.raises(HTTPException) as exception_info:
        redistribute_appointments(
            RedistributeRequest(date=MONDAY, campus_id=1, cutoff_time=time(8, 0)),
            db=clinic_db,
            current_user=ADMIN,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'No open slots are available with the current calendar settings.'
    clinic_db.expire_all()
    row = clinic_db.query(Appointment).filter(Appointment.id == appointment.id).one()
    assert (row.appointment_date, row.start_time) == (MONDAY, time(9, 0))
