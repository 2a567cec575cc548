"""Deleting services, dentists and patients together with what depends on them.

Dependent rows are removed explicitly in the same transaction as the parent
instead of relying on database or ORM cascades.
"""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from dentalcare.auth.actor import Actor
from dentalcare.errors import AuthorizationError, NotFoundError
from dentalcare.models.appointment import Appointment
from dentalcare.models.blocked_date import BlockedDate
from dentalcare.models.service import Service
from dentalcare.models.user import ROLE_DENTIST, ROLE_PATIENT, User
from dentalcare.models.working_hour import WorkingHour
from dentalcare.services.transactions import unit_of_work

logger = logging.getLogger(__name__)


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError('Only admins can delete clinic records.')


def delete_service(db: Session, actor: Actor, service_id: int) -> int:
    """Delete a service and its appointments. Returns the appointments removed."""
    require_admin(actor)

    with unit_of_work(db):
        service = db.query(Service).filter(Service.id == service_id).first()
        if service is None:
            raise NotFoundError('Service', service_id)

        removed = db.query(Appointment).filter(
            Appointment.service_id == service_id,
        ).delete(synchronize_session=False)
        db.delete(service)

    logger.info('Service %s deleted with %d appointments', service_id, removed)
    return removed


def _delete_user(db: Session, user_id: int, role: str, resource: str) -> int:
    user = db.query(User).filter(User.id == user_id, User.role == role).first()
    if user is None:
        raise NotFoundError(resource, user_id)

    removed = db.query(Appointment).filter(
        or_(Appointment.patient_id == user_id, Appointment.dentist_id == user_id),
    ).delete(synchronize_session=False)

    if role == ROLE_DENTIST:
        db.query(WorkingHour).filter(WorkingHour.dentist_id == user_id).delete(synchronize_session=False)
        db.query(BlockedDate).filter(BlockedDate.dentist_id == user_id).delete(synchronize_session=False)

    db.delete(user)
    return removed


def delete_dentist(db: Session, actor: Actor, dentist_id: int) -> int:
    """Delete a dentist with their schedule and appointments."""
    require_admin(actor)
    with unit_of_work(db):
        removed = _delete_user(db, dentist_id, ROLE_DENTIST, 'Dentist')
    logger.info('Dentist %s deleted with %d appointments', dentist_id, removed)
    return removed


def delete_patient(db: Session, actor: Actor, patient_id: int) -> int:
    """Delete a patient and their appointments."""
    require_admin(actor)
    with unit_of_work(db):
        removed = _delete_user(db, patient_id, ROLE_PATIENT, 'Patient')
    logger.info('Patient %s deleted with %d appointments', patient_id, removed)
    return removed
