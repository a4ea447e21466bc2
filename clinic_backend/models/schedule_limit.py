"""Appointment quota model definitions."""

from sqlalchemy import Column, Integer, String
from clinic_backend.database import Base


class WeeklyScheduleLimit(Base):
    """Appointment quota for one appointment type.

    The column keeps its historical name, but the value is applied as the
    number of appointments allowed per day.
    """
    __tablename__ = "weekly_schedule_limits"

    id = Column(Integer, primary_key=True)
    appointment_type = Column(String, unique=True, index=True)
    max_appointments_per_week = Column(Integer, nullable=False)
