from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.actor import Actor
from dentalcare.auth.dependencies import get_current_actor
from dentalcare.database import get_db
from dentalcare.errors import DentalCareError, ValidationError, to_http_exception
from dentalcare.models.appointment import STATUSES
from dentalcare.routes.common import background_notifier, database_unavailable, ensure_database_ready
from dentalcare.services import booking

router = APIRouter(tags=['appointments'])


def _normalize_optional_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


def _to_clinic_time(value: datetime) -> datetime:
    # Schedules are stored as naive clinic-local datetimes.
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class CreateAppointmentRequest(BaseModel):
    dentist_id: int
    service_id: int
    appointment_datetime: datetime
    notes: str | None = None
    patient_id: int | None = None

    @field_validator('appointment_datetime')
    @classmethod
    def validate_appointment_datetime(cls, value: datetime) -> datetime:
        return _to_clinic_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, booking.MAX_NOTES_LENGTH, 'Notes')


class CancelAppointmentRequest(BaseModel):
    cancellation_reason: str

    @field_validator('cancellation_reason')
    @classmethod
    def validate_cancellation_reason(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Cancellation reason is required.')
        if len(normalized) > booking.MAX_CANCELLATION_REASON_LENGTH:
            raise ValueError(
                f'Cancellation reason must be {booking.MAX_CANCELLATION_REASON_LENGTH} characters or fewer.'
            )
        return normalized


class CompleteAppointmentRequest(BaseModel):
    treatment_notes: str | None = None

    @field_validator('treatment_notes')
    @classmethod
    def validate_treatment_notes(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, booking.MAX_NOTES_LENGTH, 'Treatment notes')


class TreatmentNotesRequest(CompleteAppointmentRequest):
    pass


class RescheduleAppointmentRequest(BaseModel):
    appointment_datetime: datetime
    duration_minutes: int | None = None
    notes: str | None = None

    @field_validator('appointment_datetime')
    @classmethod
    def validate_appointment_datetime(cls, value: datetime) -> datetime:
        return _to_clinic_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, booking.MAX_NOTES_LENGTH, 'Notes')


class UpdateStatusRequest(BaseModel):
    status: str
    cancellation_reason: str | None = None
    treatment_notes: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in STATUSES:
            raise ValueError('Unknown appointment status.')
        return normalized


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    dentist_id: int
    service_id: int
    appointment_datetime: datetime
    end_datetime: datetime
    duration_minutes: int
    status: str
    notes: str | None = None
    treatment_notes: str | None = None
    cost: Decimal | None = None
    cancellation_reason: str | None = None
    is_paid: bool = False
    rescheduled_from_id: int | None = None

    class Config:
        from_attributes = True


class RescheduleResponse(BaseModel):
    original: AppointmentResponse
    appointment: AppointmentResponse


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    if status_filter is not None and status_filter not in STATUSES:
        raise to_http_exception(ValidationError('Unknown appointment status.', field='status'))

    ensure_database_ready()

    try:
        appointments = booking.list_appointments(db, actor, status=status_filter)
        return [AppointmentResponse.model_validate(appointment) for appointment in appointments]
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.create_appointment(
            db,
            actor,
            dentist_id=data.dentist_id,
            service_id=data.service_id,
            appointment_datetime=data.appointment_datetime,
            notes=data.notes,
            patient_id=data.patient_id,
            notifier=background_notifier(background_tasks),
        )
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.get_appointment_for_actor(db, actor, appointment_id)
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{appointment_id}/confirm', response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.confirm_appointment(
            db,
            actor,
            appointment_id,
            notifier=background_notifier(background_tasks),
        )
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.cancel_appointment(
            db,
            actor,
            appointment_id,
            data.cancellation_reason,
            notifier=background_notifier(background_tasks),
        )
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    data: CompleteAppointmentRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.complete_appointment(
            db,
            actor,
            appointment_id,
            treatment_notes=data.treatment_notes,
            notifier=background_notifier(background_tasks),
        )
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.transition_status(
            db,
            actor,
            appointment_id,
            data.status,
            cancellation_reason=data.cancellation_reason,
            treatment_notes=data.treatment_notes,
            notifier=background_notifier(background_tasks),
        )
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/reschedule', response_model=RescheduleResponse, status_code=status.HTTP_201_CREATED)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        original, replacement = booking.reschedule_appointment(
            db,
            actor,
            appointment_id,
            data.appointment_datetime,
            duration_minutes=data.duration_minutes,
            notes=data.notes,
            notifier=background_notifier(background_tasks),
        )
        return RescheduleResponse(
            original=AppointmentResponse.model_validate(original),
            appointment=AppointmentResponse.model_validate(replacement),
        )
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/accept', response_model=AppointmentResponse)
def accept_suggested_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.accept_suggestion(
            db,
            actor,
            appointment_id,
            notifier=background_notifier(background_tasks),
        )
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/decline', response_model=AppointmentResponse)
def decline_suggested_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.decline_suggestion(
            db,
            actor,
            appointment_id,
            notifier=background_notifier(background_tasks),
        )
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.put('/{appointment_id}/treatment-notes', response_model=AppointmentResponse)
def update_treatment_notes(
    appointment_id: int,
    data: TreatmentNotesRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.update_treatment_notes(db, actor, appointment_id, data.treatment_notes)
        return AppointmentResponse.model_validate(appointment)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
