from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from dentalcare.auth import jwt_handler
from dentalcare.auth.actor import Actor
from dentalcare.auth.dependencies import get_current_actor
from dentalcare.core import config
from dentalcare.database import get_db
from dentalcare.models.user import User

router = APIRouter(tags=['auth'])


class LoginRequest(BaseModel):
    email: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        return normalized


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'


class ActorResponse(BaseModel):
    user_id: int
    email: str
    role: str


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Issue a bearer token for a known user.

    Only available outside production, where identity comes from the
    clinic's identity provider instead.
    """
    if config.is_production():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Not found.',
        )

    user = db.query(User).filter(User.email == data.email).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='User not found',
        )

    token = jwt_handler.create_access_token(subject=user.email, role=user.role)
    return TokenResponse(access_token=token)


@router.get('/me', response_model=ActorResponse)
def me(actor: Actor = Depends(get_current_actor)):
    return ActorResponse(user_id=actor.user_id, email=actor.email, role=actor.role)
