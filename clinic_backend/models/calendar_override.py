"""Calendar override model definitions."""

from sqlalchemy import Column, Integer, Date, ForeignKey, String, UniqueConstraint
from clinic_backend.database import Base


class CalendarOverride(Base):
    """Hidden and half-day weekdays for a campus, stored as '0,6' style lists."""
    __tablename__ = "calendar_overrides"

    id = Column(Integer, primary_key=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), unique=True, index=True)
    hidden_weekdays = Column(String, default='')
    half_day_weekdays = Column(String, default='')


class Holiday(Base):
    """A date on which a campus clinic is closed."""
    __tablename__ = "holidays"
    __table_args__ = (UniqueConstraint('campus_id', 'holiday_date', name='uq_holidays_campus_date'),)

    id = Column(Integer, primary_key=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), index=True)
    holiday_date = Column(Date, nullable=False)
