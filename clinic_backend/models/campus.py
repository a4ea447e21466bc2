"""Campus model definitions."""

from sqlalchemy import Column, Integer, String
from clinic_backend.database import Base


class Campus(Base):
    """Represents a university campus hosting a clinic."""
    __tablename__ = "campuses"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    address = Column(String)
