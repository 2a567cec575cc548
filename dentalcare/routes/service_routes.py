from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.database import get_db
from dentalcare.models.service import Service
from dentalcare.routes.common import database_unavailable, ensure_database_ready

router = APIRouter(tags=['services'])


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: Decimal
    duration_minutes: int
    category: str | None = None

    class Config:
        from_attributes = True


@router.get('', response_model=list[ServiceResponse])
def list_services(
    category: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Service).filter(Service.is_active.is_(True))
        if category:
            query = query.filter(Service.category == category.strip())
        services = query.order_by(Service.category.asc(), Service.name.asc()).all()
        return [ServiceResponse.model_validate(service) for service in services]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
