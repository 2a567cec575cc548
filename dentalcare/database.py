from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from dentalcare.core import config


engine = create_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_scheduling_schema_checked = False

SCHEDULING_INDEXES = {
    'appointments': [
        'CREATE INDEX IF NOT EXISTS idx_appointments_dentist_start '
        'ON appointments(dentist_id, appointment_datetime)',
        'CREATE INDEX IF NOT EXISTS idx_appointments_patient_start '
        'ON appointments(patient_id, appointment_datetime)',
        'CREATE INDEX IF NOT EXISTS idx_appointments_status_start '
        'ON appointments(status, appointment_datetime)',
    ],
    'working_hours': [
        'CREATE INDEX IF NOT EXISTS idx_working_hours_dentist_day '
        'ON working_hours(dentist_id, day_of_week)',
    ],
    'blocked_dates': [
        'CREATE INDEX IF NOT EXISTS idx_blocked_dates_dentist_date '
        'ON blocked_dates(dentist_id, blocked_date)',
    ],
}


# Columns added after the first release: (table, column, statement).
SCHEDULING_COLUMNS = [
    (
        'appointments',
        'rescheduled_from_id',
        'ALTER TABLE appointments ADD COLUMN rescheduled_from_id INTEGER REFERENCES appointments(id)',
    ),
]


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_scheduling_schema() -> None:
    global _scheduling_schema_checked

    if _scheduling_schema_checked:
        return

    with _schema_lock:
        if _scheduling_schema_checked:
            return

        inspector = inspect(engine)
        existing_tables = set(inspector.get_table_names())

        with engine.begin() as connection:
            for table_name, column_name, statement in SCHEDULING_COLUMNS:
                if table_name not in existing_tables:
                    continue
                existing_columns = {column['name'] for column in inspector.get_columns(table_name)}
                if column_name not in existing_columns:
                    connection.execute(text(statement))

            for table_name, statements in SCHEDULING_INDEXES.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _scheduling_schema_checked = True
