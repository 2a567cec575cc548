from datetime import date, datetime

import pytest
from fastapi import HTTPException

from dentalcare.routes.availability_routes import get_dentist_availability

MONDAY = date(2030, 1, 7)


@pytest.fixture(autouse=True)
def database_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('dentalcare.routes.availability_routes.ensure_database_ready', lambda: None)


def test_get_dentist_availability_returns_slots(db, dentist, patient, patient_actor, service, monday_hours, add_appointment) -> None:
    add_appointment(patient, dentist, service, datetime(2030, 1, 7, 10, 0), 30)

    response = get_dentist_availability(
        dentist_id=dentist.id,
        target_date=MONDAY,
        duration_minutes=60,
        service_id=None,
        actor=patient_actor,
        db=db,
    )

    assert response.dentist_id == dentist.id
    assert response.duration_minutes == 60
    assert response.slot_starts == [
        datetime(2030, 1, 7, 9, 0),
        datetime(2030, 1, 7, 10, 30),
        datetime(2030, 1, 7, 11, 0),
    ]
    assert [interval.duration_minutes for interval in response.free_intervals] == [60, 90]
    assert response.occupied_intervals[0].start_time == datetime(2030, 1, 7, 10, 0)


def test_get_dentist_availability_uses_service_duration(db, dentist, patient_actor, service, monday_hours) -> None:
    response = get_dentist_availability(
        dentist_id=dentist.id,
        target_date=MONDAY,
        duration_minutes=None,
        service_id=service.id,
        actor=patient_actor,
        db=db,
    )

    assert response.duration_minutes == service.duration_minutes
    assert len(response.slot_starts) == 6


def test_get_dentist_availability_requires_duration_or_service(db, dentist, patient_actor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_dentist_availability(
            dentist_id=dentist.id,
            target_date=MONDAY,
            duration_minutes=None,
            service_id=None,
            actor=patient_actor,
            db=db,
        )

    assert exception_info.value.status_code == 422
    assert exception_info.value.detail['field'] == 'duration_minutes'


def test_get_dentist_availability_rejects_past_dates(db, dentist, patient_actor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_dentist_availability(
            dentist_id=dentist.id,
            target_date=date(2000, 1, 3),
            duration_minutes=30,
            service_id=None,
            actor=patient_actor,
            db=db,
        )

    assert exception_info.value.status_code == 422
    assert exception_info.value.detail['field'] == 'date'


def test_get_dentist_availability_returns_not_found_for_unknown_dentist(db, patient_actor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_dentist_availability(
            dentist_id=9999,
            target_date=MONDAY,
            duration_minutes=30,
            service_id=None,
            actor=patient_actor,
            db=db,
        )

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Resource not found.'
