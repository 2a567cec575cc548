from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.actor import Actor
from dentalcare.auth.dependencies import require_roles
from dentalcare.database import get_db
from dentalcare.errors import DentalCareError, to_http_exception
from dentalcare.models.user import ROLE_ADMIN, ROLE_DENTIST
from dentalcare.routes.common import database_unavailable, ensure_database_ready
from dentalcare.services import schedule

router = APIRouter(tags=['schedule'])

schedule_manager = require_roles(ROLE_DENTIST, ROLE_ADMIN)


class CreateWorkingHourRequest(BaseModel):
    day_of_week: int
    start_time: time
    end_time: time

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('Day of week must be between 0 (Sunday) and 6 (Saturday).')
        return value

    @model_validator(mode='after')
    def validate_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError('End time must be after start time.')
        return self


class UpdateWorkingHourRequest(BaseModel):
    start_time: time
    end_time: time
    is_active: bool

    @model_validator(mode='after')
    def validate_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError('End time must be after start time.')
        return self


class WorkingHourResponse(BaseModel):
    id: int
    dentist_id: int
    day_of_week: int
    day_name: str
    start_time: time
    end_time: time
    is_active: bool

    class Config:
        from_attributes = True


class CreateBlockedDateRequest(BaseModel):
    blocked_date: date
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if len(normalized) > schedule.MAX_REASON_LENGTH:
            raise ValueError(f'Reason must be {schedule.MAX_REASON_LENGTH} characters or fewer.')
        return normalized or None


class BlockedDateResponse(BaseModel):
    id: int
    dentist_id: int
    blocked_date: date
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None
    is_full_day: bool

    class Config:
        from_attributes = True


@router.get('/working-hours', response_model=list[WorkingHourResponse])
def list_working_hours(
    dentist_id: int | None = Query(default=None),
    actor: Actor = Depends(schedule_manager),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        owner_id = schedule.resolve_dentist_id(db, actor, dentist_id)
        working_hours = schedule.list_working_hours(db, owner_id)
        return [WorkingHourResponse.model_validate(working_hour) for working_hour in working_hours]
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/working-hours', response_model=WorkingHourResponse, status_code=status.HTTP_201_CREATED)
def create_working_hour(
    data: CreateWorkingHourRequest,
    dentist_id: int | None = Query(default=None),
    actor: Actor = Depends(schedule_manager),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        working_hour = schedule.create_working_hour(
            db,
            actor,
            day_of_week=data.day_of_week,
            start_time=data.start_time,
            end_time=data.end_time,
            dentist_id=dentist_id,
        )
        return WorkingHourResponse.model_validate(working_hour)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('/working-hours/{working_hour_id}', response_model=WorkingHourResponse)
def update_working_hour(
    working_hour_id: int,
    data: UpdateWorkingHourRequest,
    dentist_id: int | None = Query(default=None),
    actor: Actor = Depends(schedule_manager),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        working_hour = schedule.update_working_hour(
            db,
            actor,
            working_hour_id,
            start_time=data.start_time,
            end_time=data.end_time,
            is_active=data.is_active,
            dentist_id=dentist_id,
        )
        return WorkingHourResponse.model_validate(working_hour)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/working-hours/{working_hour_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_working_hour(
    working_hour_id: int,
    dentist_id: int | None = Query(default=None),
    actor: Actor = Depends(schedule_manager),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        schedule.delete_working_hour(db, actor, working_hour_id, dentist_id=dentist_id)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/blocked-dates', response_model=list[BlockedDateResponse])
def list_blocked_dates(
    dentist_id: int | None = Query(default=None),
    actor: Actor = Depends(schedule_manager),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        owner_id = schedule.resolve_dentist_id(db, actor, dentist_id)
        blocked_dates = schedule.list_blocked_dates(db, owner_id)
        return [BlockedDateResponse.model_validate(blocked) for blocked in blocked_dates]
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/blocked-dates', response_model=BlockedDateResponse, status_code=status.HTTP_201_CREATED)
def create_blocked_date(
    data: CreateBlockedDateRequest,
    dentist_id: int | None = Query(default=None),
    actor: Actor = Depends(schedule_manager),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        blocked = schedule.create_blocked_date(
            db,
            actor,
            blocked_date=data.blocked_date,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
            dentist_id=dentist_id,
        )
        return BlockedDateResponse.model_validate(blocked)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/blocked-dates/{blocked_date_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_date(
    blocked_date_id: int,
    dentist_id: int | None = Query(default=None),
    actor: Actor = Depends(schedule_manager),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        schedule.delete_blocked_date(db, actor, blocked_date_id, dentist_id=dentist_id)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
