import os
from datetime import datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from dentalcare.auth.actor import Actor  # noqa: E402
from dentalcare.database import Base  # noqa: E402
from dentalcare.models.appointment import Appointment, STATUS_PENDING  # noqa: E402
from dentalcare.models.blocked_date import BlockedDate  # noqa: E402,F401
from dentalcare.models.service import Service  # noqa: E402
from dentalcare.models.user import ROLE_ADMIN, ROLE_DENTIST, ROLE_PATIENT, User  # noqa: E402
from dentalcare.models.working_hour import WorkingHour  # noqa: E402



@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(db_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(role: str, email: str, name: str | None = None) -> User:
        user = User(email=email, name=name or email.split('@')[0].title(), role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def dentist(make_user) -> User:
    return make_user(ROLE_DENTIST, 'dentist@clinic.test', 'Dr. Molar')


@pytest.fixture
def other_dentist(make_user) -> User:
    return make_user(ROLE_DENTIST, 'second.dentist@clinic.test', 'Dr. Incisor')


@pytest.fixture
def patient(make_user) -> User:
    return make_user(ROLE_PATIENT, 'patient@example.test', 'Pat Ient')


@pytest.fixture
def other_patient(make_user) -> User:
    return make_user(ROLE_PATIENT, 'other.patient@example.test')


@pytest.fixture
def admin(make_user) -> User:
    return make_user(ROLE_ADMIN, 'admin@clinic.test')


@pytest.fixture
def dentist_actor(dentist) -> Actor:
    return Actor.from_user(dentist)


@pytest.fixture
def patient_actor(patient) -> Actor:
    return Actor.from_user(patient)


@pytest.fixture
def admin_actor(admin) -> Actor:
    return Actor.from_user(admin)


@pytest.fixture
def service(db) -> Service:
    cleaning = Service(
        name='Cleaning',
        description='Routine scale and polish',
        price=Decimal('50.00'),
        duration_minutes=30,
        category='Preventive',
        is_active=True,
    )
    db.add(cleaning)
    db.commit()
    db.refresh(cleaning)
    return cleaning


@pytest.fixture
def add_working_hours(db):
    def _add(dentist_id: int, day_of_week: int, start: time, end: time, is_active: bool = True) -> WorkingHour:
        working_hour = WorkingHour(
            dentist_id=dentist_id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            is_active=is_active,
        )
        db.add(working_hour)
        db.commit()
        db.refresh(working_hour)
        return working_hour

    return _add


@pytest.fixture
def monday_hours(dentist, add_working_hours) -> WorkingHour:
    return add_working_hours(dentist.id, 1, time(9, 0), time(12, 0))


@pytest.fixture
def add_appointment(db):
    def _add(
        patient: User,
        dentist: User,
        service: Service,
        start: datetime,
        duration_minutes: int = 30,
        status: str = STATUS_PENDING,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient.id,
            dentist_id=dentist.id,
            service_id=service.id,
            appointment_datetime=start,
            duration_minutes=duration_minutes,
            status=status,
            cost=service.price,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _add
