"""Email reminders for confirmed appointments taking place tomorrow.

Usage:
    python -m dentalcare.send_appointment_reminders
"""
import logging

from dentalcare.core import config
from dentalcare.database import SessionLocal
from dentalcare.models import blocked_date, service, user, working_hour  # noqa: F401
from dentalcare.services.notifications import send_appointment_reminders


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    db = SessionLocal()
    try:
        sent = send_appointment_reminders(db)
    finally:
        db.close()
    print(f"Sent {sent} appointment reminders.")


if __name__ == "__main__":
    main()
