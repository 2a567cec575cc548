"""Working hour model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Time
from dentalcare.database import Base

DAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')


class WorkingHour(Base):
    """A recurring weekly interval during which a dentist accepts appointments.

    ``day_of_week`` counts from Sunday (0) to Saturday (6).
    """
    __tablename__ = "working_hours"

    id = Column(Integer, primary_key=True)
    dentist_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def day_name(self) -> str:
        if self.day_of_week is None or not 0 <= self.day_of_week <= 6:
            return 'Unknown'
        return DAY_NAMES[self.day_of_week]
