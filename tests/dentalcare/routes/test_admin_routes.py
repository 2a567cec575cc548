from datetime import datetime
from decimal import Decimal

import pytest
from fastapi import HTTPException

from dentalcare.models.service import Service
from dentalcare.routes import admin_routes, service_routes


@pytest.fixture(autouse=True)
def database_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('dentalcare.routes.admin_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('dentalcare.routes.service_routes.ensure_database_ready', lambda: None)


def test_list_services_returns_active_services_only(db, service) -> None:
    db.add(Service(name='Whitening', price=Decimal('120.00'), duration_minutes=60, category='Cosmetic'))
    db.add(Service(name='Retired', price=Decimal('10.00'), duration_minutes=15, category='Cosmetic', is_active=False))
    db.commit()

    services = service_routes.list_services(category=None, db=db)
    assert [item.name for item in services] == ['Whitening', 'Cleaning']

    cosmetic = service_routes.list_services(category=' Cosmetic ', db=db)
    assert [item.name for item in cosmetic] == ['Whitening']


def test_delete_dentist_reports_removed_appointments(
    db, admin_actor, patient, dentist, service, add_appointment
) -> None:
    add_appointment(patient, dentist, service, datetime(2030, 1, 7, 9, 0))

    response = admin_routes.delete_dentist(dentist_id=dentist.id, actor=admin_actor, db=db)

    assert response.id == dentist.id
    assert response.deleted_appointments == 1


def test_delete_patient_not_found(db, admin_actor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        admin_routes.delete_patient(patient_id=9999, actor=admin_actor, db=db)

    assert exception_info.value.status_code == 404


def test_delete_service_requires_admin(db, dentist_actor, service) -> None:
    with pytest.raises(HTTPException) as exception_info:
        admin_routes.delete_service(service_id=service.id, actor=dentist_actor, db=db)

    assert exception_info.value.status_code == 403
