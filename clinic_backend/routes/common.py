from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config
from clinic_backend.database import ensure_appointment_schema, ensure_schedule_settings_schema
from clinic_backend.models.appointment import APPOINTMENT_TYPES
from clinic_backend.scheduling.store import QuotaConfig

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
        ensure_schedule_settings_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def normalize_appointment_type(value: str) -> str:
    normalized = value.strip().lower()
    if normalized not in APPOINTMENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid appointment type.',
        )
    return normalized


def daily_limit_for_type(limits: list[QuotaConfig], appointment_type: str) -> int:
    limit = next((item for item in limits if item.appointment_type == appointment_type), None)
    if limit is None or not limit.max_appointments_per_week:
        return config.DEFAULT_DAILY_LIMIT
    return limit.max_appointments_per_week
