"""Appointment model definitions."""

from sqlalchemy import Column, Integer, Date, Time, ForeignKey, String
from clinic_backend.database import Base

APPOINTMENT_TYPES = ('physical_exam', 'consultation')
APPOINTMENT_STATUSES = ('scheduled', 'completed', 'cancelled', 'no_show')


class Appointment(Base):
    """Represents a scheduled clinic visit at a campus."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    campus_id = Column(Integer, ForeignKey("campuses.id"), index=True)
    appointment_date = Column(Date, index=True)
    start_time = Column(Time)
    end_time = Column(Time)
    appointment_type = Column(String)
    status = Column(String, default='scheduled')
    patient_name = Column(String)
    patient_email = Column(String)
    patient_contact = Column(String)
    chief_complaint = Column(String)
    doctor_id = Column(String)
    notes = Column(String)
