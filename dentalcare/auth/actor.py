from dataclasses import dataclass

from dentalcare.models.user import ROLE_ADMIN, ROLE_DENTIST, ROLE_PATIENT, User


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, passed explicitly into every operation."""

    user_id: int
    role: str
    email: str = ''

    @classmethod
    def from_user(cls, user: User) -> 'Actor':
        return cls(user_id=user.id, role=user.role, email=user.email or '')

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_dentist(self) -> bool:
        return self.role == ROLE_DENTIST

    @property
    def is_patient(self) -> bool:
        return self.role == ROLE_PATIENT
