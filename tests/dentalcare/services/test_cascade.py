from datetime import date, datetime, time

import pytest

from dentalcare.errors import AuthorizationError, NotFoundError
from dentalcare.models.appointment import Appointment
from dentalcare.models.blocked_date import BlockedDate
from dentalcare.models.service import Service
from dentalcare.models.user import User
from dentalcare.models.working_hour import WorkingHour
from dentalcare.services import cascade


def test_delete_service_removes_its_appointments(
    db, admin_actor, patient, dentist, service, add_appointment
) -> None:
    add_appointment(patient, dentist, service, datetime(2030, 1, 7, 9, 0))
    add_appointment(patient, dentist, service, datetime(2030, 1, 7, 10, 0))

    assert cascade.delete_service(db, admin_actor, service.id) == 2
    assert db.query(Service).count() == 0
    assert db.query(Appointment).count() == 0


def test_delete_requires_admin(db, dentist_actor, service) -> None:
    with pytest.raises(AuthorizationError):
        cascade.delete_service(db, dentist_actor, service.id)

    assert db.query(Service).count() == 1


def test_delete_missing_records(db, admin_actor, patient) -> None:
    with pytest.raises(NotFoundError):
        cascade.delete_service(db, admin_actor, 9999)

    with pytest.raises(NotFoundError):
        cascade.delete_dentist(db, admin_actor, patient.id)


def test_delete_dentist_removes_schedule_and_appointments(
    db, admin_actor, patient, dentist, other_dentist, service, add_working_hours, add_appointment
) -> None:
    add_working_hours(dentist.id, 1, time(9, 0), time(12, 0))
    add_working_hours(other_dentist.id, 1, time(9, 0), time(12, 0))
    db.add(BlockedDate(dentist_id=dentist.id, blocked_date=date(2030, 1, 8)))
    db.commit()
    add_appointment(patient, dentist, service, datetime(2030, 1, 7, 9, 0))
    kept = add_appointment(patient, other_dentist, service, datetime(2030, 1, 7, 9, 0))

    assert cascade.delete_dentist(db, admin_actor, dentist.id) == 1

    assert db.query(User).filter(User.id == dentist.id).first() is None
    assert db.query(WorkingHour).filter(WorkingHour.dentist_id == dentist.id).count() == 0
    assert db.query(BlockedDate).count() == 0
    assert [appointment.id for appointment in db.query(Appointment).all()] == [kept.id]
    assert db.query(WorkingHour).count() == 1


def test_delete_patient_keeps_the_dentist(
    db, admin_actor, patient, dentist, service, add_appointment
) -> None:
    add_appointment(patient, dentist, service, datetime(2030, 1, 7, 9, 0))

    assert cascade.delete_patient(db, admin_actor, patient.id) == 1
    assert db.query(User).filter(User.id == patient.id).first() is None
    assert db.query(User).filter(User.id == dentist.id).first() is not None
    assert db.query(Appointment).count() == 0
