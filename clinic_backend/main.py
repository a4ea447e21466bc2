import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config
from clinic_backend.database import Base, engine, ensure_appointment_schema, ensure_schedule_settings_schema
from clinic_backend.models import appointment, calendar_override, campus, profile, schedule_limit, schedule_setting  # noqa: F401
from clinic_backend.routes import admin_routes, schedule_routes

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_schedule_settings_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')


@app.get('/')
def root():
    return {'status': 'Clinic Scheduling API Running'}


app.include_router(schedule_routes.router, prefix='/schedule')
app.include_router(admin_routes.router, prefix='/admin')
