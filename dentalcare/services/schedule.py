"""Dentist-owned working hours and blocked dates."""

import logging
from datetime import date, time

from sqlalchemy.orm import Session

from dentalcare.auth.actor import Actor
from dentalcare.errors import AuthorizationError, NotFoundError, ValidationError
from dentalcare.models.blocked_date import BlockedDate
from dentalcare.models.user import ROLE_DENTIST, User
from dentalcare.models.working_hour import WorkingHour
from dentalcare.services.availability import get_dentist
from dentalcare.services.transactions import unit_of_work

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 255

# Monday to Saturday, 09:00 to 17:00. Sunday stays closed.
DEFAULT_WORKING_DAYS = (1, 2, 3, 4, 5, 6)
DEFAULT_START_TIME = time(9, 0)
DEFAULT_END_TIME = time(17, 0)


def resolve_dentist_id(db: Session, actor: Actor, dentist_id: int | None = None) -> int:
    """Dentists manage their own schedule; admins name the dentist."""
    if actor.is_dentist:
        if dentist_id is not None and dentist_id != actor.user_id:
            raise AuthorizationError('Dentists can only manage their own schedule.')
        return actor.user_id
    if actor.is_admin:
        if dentist_id is None:
            raise ValidationError('A dentist is required.', field='dentist_id')
        return get_dentist(db, dentist_id).id
    raise AuthorizationError('Only dentists can manage schedules.')


def validate_time_range(start_time: time | None, end_time: time | None) -> None:
    if start_time is None or end_time is None:
        raise ValidationError('Start and end time are both required.', field='start_time')
    if start_time >= end_time:
        raise ValidationError('End time must be after start time.', field='end_time')


def validate_day_of_week(day_of_week: int) -> None:
    if day_of_week is None or not 0 <= day_of_week <= 6:
        raise ValidationError('Day of week must be between 0 (Sunday) and 6 (Saturday).', field='day_of_week')


def list_working_hours(db: Session, dentist_id: int) -> list[WorkingHour]:
    return db.query(WorkingHour).filter(
        WorkingHour.dentist_id == dentist_id,
    ).order_by(WorkingHour.day_of_week.asc(), WorkingHour.start_time.asc()).all()


def _get_owned_working_hour(db: Session, dentist_id: int, working_hour_id: int) -> WorkingHour:
    working_hour = db.query(WorkingHour).filter(
        WorkingHour.id == working_hour_id,
        WorkingHour.dentist_id == dentist_id,
    ).first()
    if working_hour is None:
        raise NotFoundError('Working hour', working_hour_id)
    return working_hour


def create_working_hour(
    db: Session,
    actor: Actor,
    day_of_week: int,
    start_time: time,
    end_time: time,
    dentist_id: int | None = None,
) -> WorkingHour:
    dentist_id = resolve_dentist_id(db, actor, dentist_id)
    validate_day_of_week(day_of_week)
    validate_time_range(start_time, end_time)

    with unit_of_work(db):
        working_hour = WorkingHour(
            dentist_id=dentist_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            is_active=True,
        )
        db.add(working_hour)
        db.flush()

    db.refresh(working_hour)
    logger.info('Working hour %s added for dentist %s', working_hour.id, dentist_id)
    return working_hour


def update_working_hour(
    db: Session,
    actor: Actor,
    working_hour_id: int,
    start_time: time,
    end_time: time,
    is_active: bool,
    dentist_id: int | None = None,
) -> WorkingHour:
    dentist_id = resolve_dentist_id(db, actor, dentist_id)
    validate_time_range(start_time, end_time)

    with unit_of_work(db):
        working_hour = _get_owned_working_hour(db, dentist_id, working_hour_id)
        working_hour.start_time = start_time
        working_hour.end_time = end_time
        working_hour.is_active = is_active

    return working_hour


def delete_working_hour(db: Session, actor: Actor, working_hour_id: int, dentist_id: int | None = None) -> None:
    dentist_id = resolve_dentist_id(db, actor, dentist_id)
    with unit_of_work(db):
        working_hour = _get_owned_working_hour(db, dentist_id, working_hour_id)
        db.delete(working_hour)
    logger.info('Working hour %s removed for dentist %s', working_hour_id, dentist_id)


def list_blocked_dates(db: Session, dentist_id: int, today: date | None = None) -> list[BlockedDate]:
    """Blocked dates from today onwards; older ones no longer affect bookings."""
    today = today or date.today()
    return db.query(BlockedDate).filter(
        BlockedDate.dentist_id == dentist_id,
        BlockedDate.blocked_date >= today,
    ).order_by(BlockedDate.blocked_date.asc(), BlockedDate.start_time.asc()).all()


def create_blocked_date(
    db: Session,
    actor: Actor,
    blocked_date: date,
    start_time: time | None = None,
    end_time: time | None = None,
    reason: str | None = None,
    dentist_id: int | None = None,
    today: date | None = None,
) -> BlockedDate:
    dentist_id = resolve_dentist_id(db, actor, dentist_id)
    today = today or date.today()

    if blocked_date < today:
        raise ValidationError('Blocked dates must be today or later.', field='blocked_date')
    if (start_time is None) != (end_time is None):
        raise ValidationError('Provide both start and end time, or neither for a full day.', field='start_time')
    if start_time is not None:
        validate_time_range(start_time, end_time)

    reason = reason.strip() if reason else None
    if reason and len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f'Reason must be {MAX_REASON_LENGTH} characters or fewer.', field='reason')

    with unit_of_work(db):
        blocked = BlockedDate(
            dentist_id=dentist_id,
            blocked_date=blocked_date,
            start_time=start_time,
            end_time=end_time,
            reason=reason or None,
        )
        db.add(blocked)
        db.flush()

    db.refresh(blocked)
    logger.info(
        'Dentist %s blocked %s (%s)',
        dentist_id,
        blocked_date,
        'full day' if blocked.is_full_day else f'{start_time:%H:%M}-{end_time:%H:%M}',
    )
    return blocked


def delete_blocked_date(db: Session, actor: Actor, blocked_date_id: int, dentist_id: int | None = None) -> None:
    dentist_id = resolve_dentist_id(db, actor, dentist_id)
    with unit_of_work(db):
        blocked = db.query(BlockedDate).filter(
            BlockedDate.id == blocked_date_id,
            BlockedDate.dentist_id == dentist_id,
        ).first()
        if blocked is None:
            raise NotFoundError('Blocked date', blocked_date_id)
        db.delete(blocked)
    logger.info('Blocked date %s removed for dentist %s', blocked_date_id, dentist_id)


def create_default_working_hours(db: Session, dentist_id: int) -> list[WorkingHour]:
    """Give a dentist the clinic's standard week, updating existing days in place."""
    with unit_of_work(db):
        existing = {
            working_hour.day_of_week: working_hour
            for working_hour in db.query(WorkingHour).filter(
                WorkingHour.dentist_id == dentist_id,
                WorkingHour.day_of_week.in_(DEFAULT_WORKING_DAYS),
            ).order_by(WorkingHour.id.asc()).all()
        }

        working_hours = []
        for day_of_week in DEFAULT_WORKING_DAYS:
            working_hour = existing.get(day_of_week)
            if working_hour is None:
                working_hour = WorkingHour(dentist_id=dentist_id, day_of_week=day_of_week)
                db.add(working_hour)
            working_hour.start_time = DEFAULT_START_TIME
            working_hour.end_time = DEFAULT_END_TIME
            working_hour.is_active = True
            working_hours.append(working_hour)

    return working_hours


def create_default_working_hours_for_all_dentists(db: Session) -> int:
    dentist_ids = [dentist_id for (dentist_id,) in db.query(User.id).filter(User.role == ROLE_DENTIST).all()]
    for dentist_id in dentist_ids:
        create_default_working_hours(db, dentist_id)
    logger.info('Default working hours set for %d dentists', len(dentist_ids))
    return len(dentist_ids)
