"""Appointment model definitions."""

from datetime import datetime, timedelta

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from dentalcare.database import Base

STATUS_PENDING = 'pending'
STATUS_SUGGESTED = 'suggested'
STATUS_CONFIRMED = 'confirmed'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'

STATUSES = (STATUS_PENDING, STATUS_SUGGESTED, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)
# Statuses whose interval is taken on the dentist's calendar.
OCCUPYING_STATUSES = (STATUS_PENDING, STATUS_SUGGESTED, STATUS_CONFIRMED, STATUS_COMPLETED)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)


class Appointment(Base):
    """Represents a booked appointment."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dentist_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    appointment_datetime = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=STATUS_PENDING)
    notes = Column(Text)
    treatment_notes = Column(Text)
    cost = Column(Numeric(10, 2))
    cancellation_reason = Column(String(255))
    is_paid = Column(Boolean, nullable=False, default=False)
    # Set on the replacement a dentist proposes when rescheduling.
    rescheduled_from_id = Column(Integer, ForeignKey("appointments.id"))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    patient = relationship("User", foreign_keys=[patient_id])
    dentist = relationship("User", foreign_keys=[dentist_id])
    service = relationship("Service")

    @property
    def is_suggestion(self) -> bool:
        """A dentist-proposed time still waiting for the patient."""
        return self.status == STATUS_SUGGESTED or (
            self.status == STATUS_PENDING and self.rescheduled_from_id is not None
        )

    @property
    def end_datetime(self) -> datetime:
        return self.appointment_datetime + timedelta(minutes=self.duration_minutes)
