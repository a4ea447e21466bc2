"""Schedule setting model definitions."""

from sqlalchemy import Column, Integer, Time, Boolean, ForeignKey, String
from clinic_backend.database import Base


class ScheduleSetting(Base):
    """Operating hours and per-slot capacity for one campus weekday."""
    __tablename__ = "schedule_settings"

    id = Column(Integer, primary_key=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), index=True)
    day_of_week = Column(Integer)  # 0=Sunday .. 6=Saturday
    start_time = Column(Time)
    end_time = Column(Time)
    slot_duration_minutes = Column(Integer, default=30)
    max_appointments_per_slot = Column(Integer, default=20)
    appointment_type = Column(String)
    is_active = Column(Boolean, default=True)
