"""Blocked date model definitions."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String, Time
from dentalcare.database import Base


class BlockedDate(Base):
    """A one-off exception removing a dentist's availability.

    Without ``start_time`` and ``end_time`` the whole day is blocked.
    """
    __tablename__ = "blocked_dates"

    id = Column(Integer, primary_key=True)
    dentist_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    blocked_date = Column(Date, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)
    reason = Column(String(255))

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None and self.end_time is None
