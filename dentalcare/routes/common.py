from fastapi import BackgroundTasks, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from dentalcare.database import ensure_scheduling_schema
from dentalcare.services.notifications import AppointmentNotifier

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_scheduling_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def background_notifier(background_tasks: BackgroundTasks) -> AppointmentNotifier:
    """Notifier that sends its emails after the response has been returned."""
    return AppointmentNotifier(schedule=background_tasks.add_task)
