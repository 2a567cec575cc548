from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.actor import Actor
from dentalcare.auth.dependencies import require_roles
from dentalcare.database import get_db
from dentalcare.errors import DentalCareError, to_http_exception
from dentalcare.models.user import ROLE_ADMIN
from dentalcare.routes.common import database_unavailable, ensure_database_ready
from dentalcare.services import cascade

router = APIRouter(tags=['admin'])

admin_only = require_roles(ROLE_ADMIN)


class DeletionResponse(BaseModel):
    id: int
    deleted_appointments: int


def _run_delete(delete, db: Session, actor: Actor, record_id: int) -> DeletionResponse:
    ensure_database_ready()

    try:
        removed = delete(db, actor, record_id)
        return DeletionResponse(id=record_id, deleted_appointments=removed)
    except DentalCareError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/services/{service_id}', response_model=DeletionResponse)
def delete_service(service_id: int, actor: Actor = Depends(admin_only), db: Session = Depends(get_db)):
    return _run_delete(cascade.delete_service, db, actor, service_id)


@router.delete('/dentists/{dentist_id}', response_model=DeletionResponse)
def delete_dentist(dentist_id: int, actor: Actor = Depends(admin_only), db: Session = Depends(get_db)):
    return _run_delete(cascade.delete_dentist, db, actor, dentist_id)


@router.delete('/patients/{patient_id}', response_model=DeletionResponse)
def delete_patient(patient_id: int, actor: Actor = Depends(admin_only), db: Session = Depends(get_db)):
    return _run_delete(cascade.delete_patient, db, actor, patient_id)
