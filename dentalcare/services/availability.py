"""Bookable time for a dentist on a given date.

Working hours for the weekday are unioned, blocked dates are removed, then
every appointment that still occupies the calendar is subtracted. What is
left, filtered by the requested duration, is what a patient can book.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.errors import NotFoundError, ValidationError
from dentalcare.models.appointment import Appointment, OCCUPYING_STATUSES
from dentalcare.models.blocked_date import BlockedDate
from dentalcare.models.service import Service
from dentalcare.models.user import ROLE_DENTIST, User
from dentalcare.models.working_hour import WorkingHour
from dentalcare.scheduling.intervals import (
    Interval,
    clip_intervals,
    merge_intervals,
    slot_starts,
    subtract_intervals,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayAvailability:
    dentist_id: int
    date: date
    duration_minutes: int
    open_intervals: list[Interval] = field(default_factory=list)
    occupied_intervals: list[Interval] = field(default_factory=list)
    free_intervals: list[Interval] = field(default_factory=list)
    slot_starts: list[datetime] = field(default_factory=list)


def weekday_index(target_date: date) -> int:
    """Day of week counted from Sunday (0) to Saturday (6)."""
    return (target_date.weekday() + 1) % 7


def day_bounds(target_date: date) -> Interval:
    start = datetime.combine(target_date, time.min)
    return Interval(start, start + timedelta(days=1))


def get_dentist(db: Session, dentist_id: int, lock: bool = False) -> User:
    query = db.query(User).filter(User.id == dentist_id, User.role == ROLE_DENTIST)
    if lock:
        query = query.with_for_update()
    dentist = query.first()
    if dentist is None:
        raise NotFoundError('Dentist', dentist_id)
    return dentist


def get_open_intervals(db: Session, dentist_id: int, target_date: date) -> list[Interval]:
    """Working hours for the date's weekday with blocked dates removed."""
    working_hours = db.query(WorkingHour).filter(
        WorkingHour.dentist_id == dentist_id,
        WorkingHour.day_of_week == weekday_index(target_date),
        WorkingHour.is_active.is_(True),
    ).all()

    base_intervals = merge_intervals(
        Interval(
            datetime.combine(target_date, working_hour.start_time),
            datetime.combine(target_date, working_hour.end_time),
        )
        for working_hour in working_hours
        if working_hour.start_time < working_hour.end_time
    )
    if not base_intervals:
        return []

    blocked_dates = db.query(BlockedDate).filter(
        BlockedDate.dentist_id == dentist_id,
        BlockedDate.blocked_date == target_date,
    ).all()

    if any(blocked.is_full_day for blocked in blocked_dates):
        return []

    partial_blocks = [
        Interval(
            datetime.combine(target_date, blocked.start_time),
            datetime.combine(target_date, blocked.end_time),
        )
        for blocked in blocked_dates
        if blocked.start_time is not None and blocked.end_time is not None
    ]

    return subtract_intervals(base_intervals, partial_blocks)


def get_occupied_intervals(
    db: Session,
    dentist_id: int,
    target_date: date,
    lock: bool = False,
) -> list[Interval]:
    """Intervals taken by the dentist's non-cancelled appointments on the date.

    With ``lock`` the matching rows are selected ``FOR UPDATE`` so a booking
    can re-check and insert inside one transaction.
    """
    day = day_bounds(target_date)

    # Appointments that start the previous evening may run past midnight.
    query = db.query(Appointment).filter(
        Appointment.dentist_id == dentist_id,
        Appointment.status.in_(OCCUPYING_STATUSES),
        Appointment.appointment_datetime >= day.start - timedelta(days=1),
        Appointment.appointment_datetime < day.end,
    )
    if lock:
        query = query.with_for_update()

    occupied = [
        Interval(appointment.appointment_datetime, appointment.end_datetime)
        for appointment in query.all()
    ]
    return clip_intervals(occupied, day.start, day.end)


def compute_availability(
    db: Session,
    dentist_id: int,
    target_date: date,
    duration_minutes: int,
    now: datetime | None = None,
    lock: bool = False,
    increment_minutes: int | None = None,
) -> DayAvailability:
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError('Duration must be a positive number of minutes.', field='duration_minutes')

    now = now or datetime.now()
    if target_date < now.date():
        raise ValidationError('Availability can only be requested for today or later.', field='date')

    get_dentist(db, dentist_id, lock=lock)

    open_intervals = get_open_intervals(db, dentist_id, target_date)
    occupied_intervals = get_occupied_intervals(db, dentist_id, target_date, lock=lock)
    free_intervals = subtract_intervals(open_intervals, occupied_intervals)

    if target_date == now.date():
        free_intervals = clip_intervals(free_intervals, now, day_bounds(target_date).end)

    duration = timedelta(minutes=duration_minutes)
    free_intervals = [interval for interval in free_intervals if interval.end - interval.start >= duration]

    starts = slot_starts(
        free_intervals,
        duration_minutes,
        increment_minutes or config.SLOT_INCREMENT_MINUTES,
    )

    logger.debug(
        'Computed availability for dentist %s on %s: %d free intervals, %d slot starts',
        dentist_id,
        target_date,
        len(free_intervals),
        len(starts),
    )

    return DayAvailability(
        dentist_id=dentist_id,
        date=target_date,
        duration_minutes=duration_minutes,
        open_intervals=open_intervals,
        occupied_intervals=merge_intervals(occupied_intervals),
        free_intervals=free_intervals,
        slot_starts=starts,
    )


def is_interval_free(
    db: Session,
    dentist_id: int,
    start: datetime,
    duration_minutes: int,
    now: datetime | None = None,
    lock: bool = False,
) -> bool:
    requested = Interval(start, start + timedelta(minutes=duration_minutes))
    if requested.end > day_bounds(start.date()).end:
        return False

    availability = compute_availability(
        db,
        dentist_id,
        start.date(),
        duration_minutes,
        now=now,
        lock=lock,
    )
    return any(free.contains(requested) for free in availability.free_intervals)


def resolve_duration(db: Session, duration_minutes: int | None, service_id: int | None) -> int:
    """Duration to search for: explicit minutes win, otherwise the service's."""
    if duration_minutes is not None:
        return duration_minutes
    if service_id is None:
        raise ValidationError('Provide a duration or a service.', field='duration_minutes')

    service = db.query(Service).filter(Service.id == service_id).first()
    if service is None:
        raise NotFoundError('Service', service_id)
    return service.duration_minutes
