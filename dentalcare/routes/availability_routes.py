from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.actor import Actor
from dentalcare.auth.dependencies import get_current_actor
from dentalcare.database import get_db
from dentalcare.errors import DentalCareError, to_http_exception
from dentalcare.routes.common import database_unavailable, ensure_database_ready
from dentalcare.scheduling.intervals import Interval
from dentalcare.services import availability

router = APIRouter(tags=['availability'])


class IntervalResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    duration_minutes: int


class AvailabilityResponse(BaseModel):
    dentist_id: int
    date: date
    duration_minutes: int
    free_intervals: list[IntervalResponse]
    slot_starts: list[datetime]
    open_intervals: list[IntervalResponse]
    occupied_intervals: list[IntervalResponse]


def to_interval_response(interval: Interval) -> IntervalResponse:
    return IntervalResponse(
        start_time=interval.start,
        end_time=interval.end,
        duration_minutes=interval.minutes,
    )


def to_availability_response(result: availability.DayAvailability) -> AvailabilityResponse:
    return AvailabilityResponse(
        dentist_id=result.dentist_id,
        date=result.date,
        duration_minutes=result.duration_minutes,
        free_intervals=[to_interval_response(interval) for interval in result.free_intervals],
        slot_starts=result.slot_starts,
        open_intervals=[to_interval_response(interval) for interval in result.open_intervals],
        occupied_intervals=[to_interval_response(interval) for interval in result.occupied_intervals],
    )


@router.get('/dentists/{dentist_id}', response_model=AvailabilityResponse)
def get_dentist_availability(
    dentist_id: int,
    target_date: date = Query(..., alias='date'),
    duration_minutes: int | None = Query(default=None),
    service_id: int | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    del actor
    ensure_database_ready()

    try:
        duration = availability.resolve_duration(db, duration_minutes, service_id)
        result = availability.compute_availability(db, dentist_id, target_date, duration)
        return to_availability_response(result)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
