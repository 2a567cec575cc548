"""User model definitions."""

from sqlalchemy import Column, Integer, String
from dentalcare.database import Base

ROLE_PATIENT = 'patient'
ROLE_DENTIST = 'dentist'
ROLE_ADMIN = 'admin'
ROLES = (ROLE_PATIENT, ROLE_DENTIST, ROLE_ADMIN)


class User(Base):
    """Represents an application user: patient, dentist or admin."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    hashed_password = Column(String)
    role = Column(String, nullable=False, default=ROLE_PATIENT)
