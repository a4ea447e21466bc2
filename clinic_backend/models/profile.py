"""Profile model definitions."""

from sqlalchemy import Column, Integer, ForeignKey, String
from clinic_backend.database import Base


class Profile(Base):
    """Represents an account known to the identity service."""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    first_name = Column(String)
    last_name = Column(String)
    role = Column(String)  # admin/doctor/nurse/employee/patient
    campus_id = Column(Integer, ForeignKey("campuses.id"))
