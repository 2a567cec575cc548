from contextlib import contextmanager

from sqlalchemy.orm import Session


@contextmanager
def unit_of_work(db: Session):
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
