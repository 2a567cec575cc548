"""Give every dentist the standard Monday to Saturday, 09:00 to 17:00 week.

Usage:
    python -m dentalcare.set_default_working_hours
"""
import logging

from dentalcare.core import config
from dentalcare.database import SessionLocal
from dentalcare.models import appointment, blocked_date, service, user  # noqa: F401
from dentalcare.services.schedule import create_default_working_hours_for_all_dentists


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    db = SessionLocal()
    try:
        updated = create_default_working_hours_for_all_dentists(db)
    finally:
        db.close()
    print(f"Default working hours set for {updated} dentists.")


if __name__ == "__main__":
    main()
