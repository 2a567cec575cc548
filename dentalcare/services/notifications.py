"""Appointment emails.

Delivery happens after the database write has committed and never fails the
request that triggered it: errors are logged and swallowed here, at the edge.
"""

import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from email.mime.text import MIMEText
from typing import Callable

from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.models.appointment import Appointment, STATUS_CONFIRMED
from dentalcare.models.user import ROLE_DENTIST, ROLE_PATIENT

logger = logging.getLogger(__name__)

STATUS_SUBJECTS = {
    'confirmed': 'Appointment Confirmed',
    'suggested': 'New Time Suggested for Your Appointment',
    'cancelled': 'Appointment Cancelled',
    'completed': 'Appointment Completed',
}

STATUS_LINES = {
    'confirmed': 'The appointment has been approved and is now confirmed.',
    'suggested': 'The dentist has suggested a new time for your appointment.',
    'cancelled': 'The appointment has been cancelled and is no longer scheduled.',
    'completed': 'The appointment has been marked as completed. Thank you for visiting us!',
}


@dataclass(frozen=True)
class AppointmentSnapshot:
    """Plain copy of an appointment that outlives the database session."""

    id: int
    appointment_datetime: datetime
    duration_minutes: int
    status: str
    service_name: str
    patient_email: str | None
    patient_name: str | None
    dentist_email: str | None
    dentist_name: str | None
    notes: str | None = None
    cancellation_reason: str | None = None


def snapshot_appointment(appointment: Appointment) -> AppointmentSnapshot:
    patient = appointment.patient
    dentist = appointment.dentist
    service = appointment.service
    return AppointmentSnapshot(
        id=appointment.id,
        appointment_datetime=appointment.appointment_datetime,
        duration_minutes=appointment.duration_minutes,
        status=appointment.status,
        service_name=service.name if service else 'Dental Service',
        patient_email=patient.email if patient else None,
        patient_name=patient.name if patient else None,
        dentist_email=dentist.email if dentist else None,
        dentist_name=dentist.name if dentist else None,
        notes=appointment.notes,
        cancellation_reason=appointment.cancellation_reason,
    )


def format_appointment_time(value: datetime) -> tuple[str, str]:
    formatted_date = f'{value:%A, %B} {value.day}, {value:%Y}'
    formatted_time = f'{value:%I:%M %p}'.lstrip('0')
    return formatted_date, formatted_time


def appointment_details(snapshot: AppointmentSnapshot) -> str:
    formatted_date, formatted_time = format_appointment_time(snapshot.appointment_datetime)
    return '\n'.join([
        'Appointment details:',
        f'Date: {formatted_date}',
        f'Time: {formatted_time}',
        f'Service: {snapshot.service_name}',
        f'Dentist: {snapshot.dentist_name or "Doctor"}',
        f'Status: {snapshot.status.capitalize()}',
    ])


def send_email(to: str, subject: str, body: str) -> bool:
    """Send a plain-text email over SMTP.

    Returns False without sending when mail credentials are not configured.
    """
    if not config.MAIL_USERNAME or not config.MAIL_PASSWORD:
        logger.warning('Email not configured. Skipping "%s" to %s.', subject, to)
        return False

    message = MIMEText(body, 'plain')
    message['Subject'] = subject
    message['From'] = config.MAIL_DEFAULT_SENDER
    message['To'] = to

    with smtplib.SMTP(config.MAIL_SERVER, config.MAIL_PORT, timeout=10) as server:
        if config.MAIL_USE_TLS:
            server.starttls()
        server.login(config.MAIL_USERNAME, config.MAIL_PASSWORD)
        server.send_message(message)

    logger.info('Email "%s" sent to %s', subject, to)
    return True


def _deliver(recipients: list[str | None], subject: str, body: str, appointment_id: int) -> int:
    sent = 0
    for recipient in recipients:
        if not recipient:
            logger.warning('Appointment %s has no recipient email; skipping "%s"', appointment_id, subject)
            continue
        try:
            if send_email(recipient, subject, body):
                sent += 1
        except Exception:
            logger.exception('Failed to send "%s" for appointment %s to %s', subject, appointment_id, recipient)
    return sent


def deliver_appointment_booked(snapshot: AppointmentSnapshot) -> int:
    subject = f'New Appointment Request - {config.CLINIC_NAME}'
    body = '\n\n'.join([
        f'Thank you for booking an appointment with {config.CLINIC_NAME}.',
        appointment_details(snapshot),
        'This appointment is pending approval from the dentist. '
        'You will receive another email once the dentist confirms or suggests a different time.',
    ])
    return _deliver([snapshot.patient_email, snapshot.dentist_email], subject, body, snapshot.id)


def deliver_status_changed(
    snapshot: AppointmentSnapshot,
    old_status: str | None,
    notes: str | None,
    recipients: list[str | None],
) -> int:
    subject = f'{STATUS_SUBJECTS.get(snapshot.status, "Appointment Status Updated")} - {config.CLINIC_NAME}'
    paragraphs = [STATUS_LINES.get(snapshot.status, 'There has been a change to your appointment status.')]
    if old_status:
        paragraphs.append(f'Previous status: {old_status.capitalize()}')
    if notes:
        paragraphs.append(f'Additional notes: {notes}')
    paragraphs.append(appointment_details(snapshot))
    return _deliver(recipients, subject, '\n\n'.join(paragraphs), snapshot.id)


def deliver_rescheduled(
    snapshot: AppointmentSnapshot,
    previous_datetime: datetime,
    notes: str | None,
    recipients: list[str | None],
) -> int:
    subject = f'Your Appointment Has a New Time - {config.CLINIC_NAME}'
    previous_date, previous_time = format_appointment_time(previous_datetime)
    paragraphs = [
        f'Your appointment on {previous_date} at {previous_time} has been moved to a new time.',
    ]
    if notes:
        paragraphs.append(f'Additional notes: {notes}')
    paragraphs.append(appointment_details(snapshot))
    return _deliver(recipients, subject, '\n\n'.join(paragraphs), snapshot.id)


def deliver_reminder(snapshot: AppointmentSnapshot) -> int:
    subject = f'Appointment Reminder - {config.CLINIC_NAME}'
    body = '\n\n'.join([
        'This is a friendly reminder that your dental appointment is scheduled for tomorrow.',
        appointment_details(snapshot),
        'Please arrive 10 minutes before your scheduled appointment time.',
    ])
    return _deliver([snapshot.patient_email], subject, body, snapshot.id)


def _run_now(task: Callable, *args) -> None:
    task(*args)


class AppointmentNotifier:
    """Schedules appointment emails.

    ``schedule`` receives the delivery function and its arguments; the HTTP
    layer passes ``BackgroundTasks.add_task`` so mail goes out after the
    response. By default delivery runs inline.
    """

    def __init__(self, schedule: Callable | None = None):
        self._schedule = schedule or _run_now

    def appointment_booked(self, appointment: Appointment) -> None:
        snapshot = self._snapshot(appointment)
        if snapshot:
            self._dispatch(deliver_appointment_booked, snapshot)

    def status_changed(
        self,
        appointment: Appointment,
        old_status: str | None,
        notes: str | None = None,
        actor_role: str | None = None,
    ) -> None:
        snapshot = self._snapshot(appointment)
        if snapshot:
            recipients = recipients_for(snapshot, actor_role)
            self._dispatch(deliver_status_changed, snapshot, old_status, notes, recipients)

    def appointment_rescheduled(
        self,
        appointment: Appointment,
        previous_datetime: datetime,
        notes: str | None = None,
        actor_role: str | None = None,
    ) -> None:
        snapshot = self._snapshot(appointment)
        if snapshot:
            recipients = recipients_for(snapshot, actor_role)
            self._dispatch(deliver_rescheduled, snapshot, previous_datetime, notes, recipients)

    def _snapshot(self, appointment: Appointment) -> AppointmentSnapshot | None:
        try:
            return snapshot_appointment(appointment)
        except Exception:
            logger.exception('Could not prepare notification for appointment %s', appointment.id)
            return None

    def _dispatch(self, deliver: Callable, snapshot: AppointmentSnapshot, *args) -> None:
        try:
            self._schedule(deliver, snapshot, *args)
        except Exception:
            logger.exception('Failed to dispatch %s for appointment %s', deliver.__name__, snapshot.id)


def recipients_for(snapshot: AppointmentSnapshot, actor_role: str | None) -> list[str | None]:
    # Whoever made the change does not need to be told about it.
    if actor_role == ROLE_PATIENT:
        return [snapshot.dentist_email]
    if actor_role == ROLE_DENTIST:
        return [snapshot.patient_email]
    return [snapshot.patient_email, snapshot.dentist_email]


def send_appointment_reminders(db: Session, now: datetime | None = None) -> int:
    """Email every patient with a confirmed appointment tomorrow.

    Returns the number of reminders delivered.
    """
    now = now or datetime.now()
    start_of_day = datetime.combine(now.date() + timedelta(days=1), time.min)
    end_of_day = start_of_day + timedelta(days=1)

    appointments = db.query(Appointment).filter(
        Appointment.status == STATUS_CONFIRMED,
        Appointment.appointment_datetime >= start_of_day,
        Appointment.appointment_datetime < end_of_day,
    ).order_by(Appointment.appointment_datetime.asc()).all()

    logger.info(
        'Found %d confirmed appointments between %s and %s requiring reminders',
        len(appointments),
        start_of_day,
        end_of_day,
    )

    reminder_count = 0
    for appointment in appointments:
        if appointment.patient is None:
            logger.warning('Appointment %s has no patient; skipping reminder', appointment.id)
            continue
        reminder_count += deliver_reminder(snapshot_appointment(appointment))

    logger.info('Sent %d appointment reminders', reminder_count)
    return reminder_count
