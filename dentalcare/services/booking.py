"""Appointment booking and the status workflow.

Every operation takes the calling :class:`Actor`, runs inside one
transaction and only talks to the notifier after the commit succeeded.

    pending ──confirm──> confirmed ──complete──> completed
       │                     │
       └──────cancel─────────┴──> cancelled

``suggested`` behaves like ``pending``. Rescheduling cancels the original
appointment and books a new pending one in the same transaction; the patient
then accepts or declines that proposed time.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from dentalcare.auth.actor import Actor
from dentalcare.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from dentalcare.models.appointment import (
    Appointment,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    STATUS_SUGGESTED,
    STATUSES,
)
from dentalcare.models.service import Service
from dentalcare.models.user import ROLE_PATIENT, User
from dentalcare.services.availability import get_dentist, is_interval_free
from dentalcare.services.notifications import AppointmentNotifier
from dentalcare.services.transactions import unit_of_work

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 1000
MAX_CANCELLATION_REASON_LENGTH = 255
MIN_RESCHEDULE_DURATION_MINUTES = 15
MAX_RESCHEDULE_DURATION_MINUTES = 240

ACTION_CONFIRM = 'confirm'
ACTION_CANCEL = 'cancel'
ACTION_COMPLETE = 'complete'
ACTION_RESCHEDULE = 'reschedule'
ACTION_ACCEPT = 'accept'
ACTION_DECLINE = 'decline'

DECLINED_SUGGESTION_REASON = 'Patient declined suggested time'

# action -> (statuses it may start from, status it leads to)
TRANSITIONS = {
    ACTION_CONFIRM: ((STATUS_PENDING, STATUS_SUGGESTED), STATUS_CONFIRMED),
    ACTION_CANCEL: ((STATUS_PENDING, STATUS_SUGGESTED, STATUS_CONFIRMED), STATUS_CANCELLED),
    ACTION_COMPLETE: ((STATUS_CONFIRMED,), STATUS_COMPLETED),
    ACTION_RESCHEDULE: ((STATUS_PENDING, STATUS_SUGGESTED, STATUS_CONFIRMED), STATUS_CANCELLED),
}

STATUS_ACTIONS = {
    STATUS_CONFIRMED: ACTION_CONFIRM,
    STATUS_CANCELLED: ACTION_CANCEL,
    STATUS_COMPLETED: ACTION_COMPLETE,
}


def clean_text(value: str | None, field: str, max_length: int, required: bool = False) -> str | None:
    normalized = value.strip() if value else ''
    if not normalized:
        if required:
            raise ValidationError(f'{field.replace("_", " ").capitalize()} is required.', field=field)
        return None
    if len(normalized) > max_length:
        raise ValidationError(
            f'{field.replace("_", " ").capitalize()} must be {max_length} characters or fewer.',
            field=field,
        )
    return normalized


def check_transition(appointment: Appointment, action: str) -> str:
    allowed_statuses, target_status = TRANSITIONS[action]
    if appointment.status not in allowed_statuses:
        raise InvalidTransitionError(appointment.status, action)
    return target_status


def get_appointment(db: Session, appointment_id: int, lock: bool = False) -> Appointment:
    query = db.query(Appointment).filter(Appointment.id == appointment_id)
    if lock:
        # Locked reads must see the committed row, not a stale identity-map copy.
        query = query.with_for_update().populate_existing()
    appointment = query.first()
    if appointment is None:
        raise NotFoundError('Appointment', appointment_id)
    return appointment


def authorize_participant(actor: Actor, appointment: Appointment) -> None:
    if actor.is_admin:
        return
    if actor.is_patient and appointment.patient_id == actor.user_id:
        return
    if actor.is_dentist and appointment.dentist_id == actor.user_id:
        return
    raise AuthorizationError('You are not allowed to access this appointment.')


def authorize_dentist(actor: Actor, appointment: Appointment, action: str) -> None:
    if actor.is_admin:
        return
    if actor.is_dentist and appointment.dentist_id == actor.user_id:
        return
    raise AuthorizationError(f'Only the dentist for this appointment can {action} it.')


def _resolve_patient_id(actor: Actor, patient_id: int | None) -> int:
    if actor.is_patient:
        if patient_id is not None and patient_id != actor.user_id:
            raise AuthorizationError('Patients can only book appointments for themselves.')
        return actor.user_id
    if actor.is_admin:
        if patient_id is None:
            raise ValidationError('A patient is required when booking on behalf of someone.', field='patient_id')
        return patient_id
    raise AuthorizationError('Only patients can book appointments.')


def list_appointments(db: Session, actor: Actor, status: str | None = None) -> list[Appointment]:
    query = db.query(Appointment)
    if actor.is_patient:
        query = query.filter(Appointment.patient_id == actor.user_id)
    elif actor.is_dentist:
        query = query.filter(Appointment.dentist_id == actor.user_id)
    elif not actor.is_admin:
        raise AuthorizationError('You are not allowed to view appointments.')

    if status:
        query = query.filter(Appointment.status == status)

    return query.order_by(Appointment.appointment_datetime.desc(), Appointment.id.desc()).all()


def get_appointment_for_actor(db: Session, actor: Actor, appointment_id: int) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    authorize_participant(actor, appointment)
    return appointment


def create_appointment(
    db: Session,
    actor: Actor,
    dentist_id: int,
    service_id: int,
    appointment_datetime: datetime,
    notes: str | None = None,
    patient_id: int | None = None,
    now: datetime | None = None,
    notifier: AppointmentNotifier | None = None,
) -> Appointment:
    """Book a pending appointment if the interval is still free.

    Price and duration are copied from the service so later catalogue
    changes do not alter the booking.
    """
    patient_id = _resolve_patient_id(actor, patient_id)
    notes = clean_text(notes, 'notes', MAX_NOTES_LENGTH)
    now = now or datetime.now()
    start = appointment_datetime.replace(second=0, microsecond=0)

    if start <= now:
        raise ValidationError('Appointments must be scheduled in the future.', field='appointment_datetime')

    with unit_of_work(db):
        service = db.query(Service).filter(Service.id == service_id).first()
        if service is None:
            raise NotFoundError('Service', service_id)
        if not service.is_active:
            raise ValidationError('This service is not currently offered.', field='service_id')

        patient = db.query(User).filter(User.id == patient_id, User.role == ROLE_PATIENT).first()
        if patient is None:
            raise NotFoundError('Patient', patient_id)

        # Serializes bookings for this dentist until commit.
        get_dentist(db, dentist_id, lock=True)

        if not is_interval_free(db, dentist_id, start, service.duration_minutes, now=now, lock=True):
            logger.warning(
                'Dentist %s not available at %s for %d minutes',
                dentist_id,
                start,
                service.duration_minutes,
            )
            raise SlotUnavailableError()

        appointment = Appointment(
            patient_id=patient.id,
            dentist_id=dentist_id,
            service_id=service.id,
            appointment_datetime=start,
            duration_minutes=service.duration_minutes,
            status=STATUS_PENDING,
            notes=notes,
            cost=service.price,
        )
        db.add(appointment)
        db.flush()

    db.refresh(appointment)
    logger.info(
        'Appointment %s booked: patient=%s dentist=%s service=%s at %s',
        appointment.id,
        appointment.patient_id,
        appointment.dentist_id,
        appointment.service_id,
        appointment.appointment_datetime,
    )

    if notifier:
        notifier.appointment_booked(appointment)
    return appointment


def confirm_appointment(
    db: Session,
    actor: Actor,
    appointment_id: int,
    notifier: AppointmentNotifier | None = None,
) -> Appointment:
    with unit_of_work(db):
        appointment = get_appointment(db, appointment_id, lock=True)
        authorize_dentist(actor, appointment, ACTION_CONFIRM)
        old_status = appointment.status
        appointment.status = check_transition(appointment, ACTION_CONFIRM)

    logger.info('Appointment %s confirmed (was %s)', appointment_id, old_status)
    if notifier:
        notifier.status_changed(appointment, old_status, actor_role=actor.role)
    return appointment


def cancel_appointment(
    db: Session,
    actor: Actor,
    appointment_id: int,
    cancellation_reason: str | None,
    notifier: AppointmentNotifier | None = None,
) -> Appointment:
    reason = clean_text(
        cancellation_reason,
        'cancellation_reason',
        MAX_CANCELLATION_REASON_LENGTH,
        required=True,
    )

    with unit_of_work(db):
        appointment = get_appointment(db, appointment_id, lock=True)
        authorize_participant(actor, appointment)
        old_status = appointment.status
        appointment.status = check_transition(appointment, ACTION_CANCEL)
        appointment.cancellation_reason = reason

    logger.info('Appointment %s cancelled by %s %s (was %s)', appointment_id, actor.role, actor.user_id, old_status)
    if notifier:
        notifier.status_changed(appointment, old_status, notes=reason, actor_role=actor.role)
    return appointment


def complete_appointment(
    db: Session,
    actor: Actor,
    appointment_id: int,
    treatment_notes: str | None = None,
    notifier: AppointmentNotifier | None = None,
) -> Appointment:
    treatment_notes = clean_text(treatment_notes, 'treatment_notes', MAX_NOTES_LENGTH)

    with unit_of_work(db):
        appointment = get_appointment(db, appointment_id, lock=True)
        authorize_dentist(actor, appointment, ACTION_COMPLETE)
        old_status = appointment.status
        appointment.status = check_transition(appointment, ACTION_COMPLETE)
        if treatment_notes is not None:
            appointment.treatment_notes = treatment_notes

    logger.info('Appointment %s completed', appointment_id)
    if notifier:
        notifier.status_changed(appointment, old_status, actor_role=actor.role)
    return appointment


def transition_status(
    db: Session,
    actor: Actor,
    appointment_id: int,
    status: str,
    cancellation_reason: str | None = None,
    treatment_notes: str | None = None,
    notifier: AppointmentNotifier | None = None,
) -> Appointment:
    target_status = (status or '').strip().lower()
    action = STATUS_ACTIONS.get(target_status)
    if action is None:
        if target_status not in STATUSES:
            raise ValidationError('Unknown appointment status.', field='status')
        appointment = get_appointment_for_actor(db, actor, appointment_id)
        raise InvalidTransitionError(appointment.status, f'mark as {target_status}')

    if action == ACTION_CONFIRM:
        return confirm_appointment(db, actor, appointment_id, notifier=notifier)
    if action == ACTION_CANCEL:
        return cancel_appointment(db, actor, appointment_id, cancellation_reason, notifier=notifier)
    return complete_appointment(db, actor, appointment_id, treatment_notes=treatment_notes, notifier=notifier)


def reschedule_appointment(
    db: Session,
    actor: Actor,
    appointment_id: int,
    new_datetime: datetime,
    duration_minutes: int | None = None,
    notes: str | None = None,
    now: datetime | None = None,
    notifier: AppointmentNotifier | None = None,
) -> tuple[Appointment, Appointment]:
    """Move an appointment to a new time without rewriting history.

    The original row is cancelled with a reason naming the new time and a
    new pending row carries over patient, dentist, service and cost.
    Returns ``(original, replacement)``.
    """
    now = now or datetime.now()
    dentist_note = clean_text(notes, 'notes', MAX_NOTES_LENGTH)
    new_start = new_datetime.replace(second=0, microsecond=0)

    if new_start <= now:
        raise ValidationError('The new time must be in the future.', field='appointment_datetime')
    if duration_minutes is not None and not (
        MIN_RESCHEDULE_DURATION_MINUTES <= duration_minutes <= MAX_RESCHEDULE_DURATION_MINUTES
    ):
        raise ValidationError(
            f'Duration must be between {MIN_RESCHEDULE_DURATION_MINUTES} '
            f'and {MAX_RESCHEDULE_DURATION_MINUTES} minutes.',
            field='duration_minutes',
        )

    with unit_of_work(db):
        # Lock order matches booking: dentist row first, then appointments.
        original = get_appointment(db, appointment_id)
        authorize_dentist(actor, original, ACTION_RESCHEDULE)
        get_dentist(db, original.dentist_id, lock=True)

        original = get_appointment(db, appointment_id, lock=True)
        old_status = original.status
        check_transition(original, ACTION_RESCHEDULE)

        duration = duration_minutes or original.duration_minutes
        previous_datetime = original.appointment_datetime

        original.status = STATUS_CANCELLED
        original.cancellation_reason = f'Rescheduled by dentist to {new_start:%Y-%m-%d %H:%M}.'
        # The original interval must not count against the new time.
        db.flush()

        if not is_interval_free(db, original.dentist_id, new_start, duration, now=now, lock=True):
            logger.warning(
                'Cannot reschedule appointment %s to %s: dentist %s not available',
                appointment_id,
                new_start,
                original.dentist_id,
            )
            raise SlotUnavailableError()

        carried_notes = [original.notes] if original.notes else []
        carried_notes.append(f'Rescheduled from {previous_datetime:%Y-%m-%d %H:%M}.')
        if dentist_note:
            carried_notes.append(f"Dentist's note: {dentist_note}")

        replacement = Appointment(
            rescheduled_from_id=original.id,
            patient_id=original.patient_id,
            dentist_id=original.dentist_id,
            service_id=original.service_id,
            appointment_datetime=new_start,
            duration_minutes=duration,
            status=STATUS_PENDING,
            notes='\n\n'.join(carried_notes),
            cost=original.cost,
            is_paid=original.is_paid,
        )
        db.add(replacement)
        db.flush()

    db.refresh(original)
    db.refresh(replacement)
    logger.info(
        'Appointment %s (%s) rescheduled from %s to %s as appointment %s',
        original.id,
        old_status,
        previous_datetime,
        replacement.appointment_datetime,
        replacement.id,
    )

    if notifier:
        notifier.appointment_rescheduled(
            replacement,
            previous_datetime,
            notes=dentist_note or 'Your dentist has suggested a new appointment time.',
            actor_role=actor.role,
        )
    return original, replacement


def _get_suggestion_for_patient(db: Session, actor: Actor, appointment_id: int, action: str) -> Appointment:
    appointment = get_appointment(db, appointment_id, lock=True)
    if not (actor.is_patient and appointment.patient_id == actor.user_id):
        raise AuthorizationError(f'Only the patient for this appointment can {action} it.')
    if not appointment.is_suggestion:
        raise InvalidTransitionError(appointment.status, action)
    return appointment


def accept_suggestion(
    db: Session,
    actor: Actor,
    appointment_id: int,
    notifier: AppointmentNotifier | None = None,
) -> Appointment:
    """Confirm a time the dentist proposed for the calling patient."""
    with unit_of_work(db):
        appointment = _get_suggestion_for_patient(db, actor, appointment_id, ACTION_ACCEPT)
        old_status = appointment.status
        appointment.status = STATUS_CONFIRMED

    logger.info('Suggested appointment %s accepted by patient %s', appointment_id, actor.user_id)
    if notifier:
        notifier.status_changed(appointment, old_status, actor_role=actor.role)
    return appointment


def decline_suggestion(
    db: Session,
    actor: Actor,
    appointment_id: int,
    notifier: AppointmentNotifier | None = None,
) -> Appointment:
    with unit_of_work(db):
        appointment = _get_suggestion_for_patient(db, actor, appointment_id, ACTION_DECLINE)
        old_status = appointment.status
        appointment.status = STATUS_CANCELLED
        appointment.cancellation_reason = DECLINED_SUGGESTION_REASON

    logger.info('Suggested appointment %s declined by patient %s', appointment_id, actor.user_id)
    if notifier:
        notifier.status_changed(
            appointment,
            old_status,
            notes=DECLINED_SUGGESTION_REASON,
            actor_role=actor.role,
        )
    return appointment


def update_treatment_notes(
    db: Session,
    actor: Actor,
    appointment_id: int,
    treatment_notes: str | None,
) -> Appointment:
    treatment_notes = clean_text(treatment_notes, 'treatment_notes', MAX_NOTES_LENGTH)

    with unit_of_work(db):
        appointment = get_appointment(db, appointment_id, lock=True)
        authorize_dentist(actor, appointment, 'update treatment notes for')
        if appointment.status == STATUS_CANCELLED:
            raise InvalidTransitionError(appointment.status, 'add treatment notes to')
        appointment.treatment_notes = treatment_notes

    logger.info('Treatment notes updated for appointment %s', appointment_id)
    return appointment
