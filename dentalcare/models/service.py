"""Dental service model definitions."""

from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text
from dentalcare.database import Base


class Service(Base):
    """A bookable treatment with its list price and default duration."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False)
    category = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)
