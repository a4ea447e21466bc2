import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic_backend.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")

engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_schedule_settings_schema_checked = False


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('patient_email', 'ALTER TABLE appointments ADD COLUMN patient_email VARCHAR'),
            ('patient_contact', 'ALTER TABLE appointments ADD COLUMN patient_contact VARCHAR'),
            ('chief_complaint', 'ALTER TABLE appointments ADD COLUMN chief_complaint VARCHAR'),
            ('doctor_id', 'ALTER TABLE appointments ADD COLUMN doctor_id VARCHAR'),
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_campus_date_start '
                    'ON appointments(campus_id, appointment_date, start_time)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_status_date ON appointments(status, appointment_date)')
            )

        _appointment_schema_checked = True


def ensure_schedule_settings_schema() -> None:
    global _schedule_settings_schema_checked

    if _schedule_settings_schema_checked:
        return

    with _schema_lock:
        if _schedule_settings_schema_checked:
            return

        inspector = inspect(engine)

        if 'schedule_settings' not in inspector.get_table_names():
            _schedule_settings_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('schedule_settings')}
        migration_steps = [
            ('slot_duration_minutes', 'ALTER TABLE schedule_settings ADD COLUMN slot_duration_minutes INTEGER'),
            ('max_appointments_per_slot', 'ALTER TABLE schedule_settings ADD COLUMN max_appointments_per_slot INTEGER'),
            ('is_active', 'ALTER TABLE schedule_settings ADD COLUMN is_active BOOLEAN'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_schedule_settings_campus_day '
                    'ON schedule_settings(campus_id, day_of_week)'
                )
            )

        _schedule_settings_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
