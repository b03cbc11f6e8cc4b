"""
One-off database setup: create the tables, the system user and the default
categories every new account receives a copy of.

Run it once per deployment (``taskboard-init-db``) or use ``alembic upgrade
head``, whose initial revision does the same.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from database import Base, SessionLocal, engine
import storage
from models import SYSTEM_USERNAME, TaskCategory, User

logger = logging.getLogger(__name__)

# not a valid hash, so nobody can log in as the system user
SYSTEM_PASSWORD = "!"

DEFAULT_CATEGORIES = (
    ("Work", "#0070F3"),
    ("Personal", "#FF0080"),
    ("Learning", "#7928CA"),
    ("Health", "#50C878"),
)


def seed_default_categories(db: Session) -> int:
    """Insert whatever part of the system fixture is missing. Returns the number of categories added."""
    system = storage.get_system_user(db)
    if system is None:
        # let the database pick the id; nothing relies on a fixed value
        system = User(username=SYSTEM_USERNAME, password=SYSTEM_PASSWORD)
        db.add(system)
        db.flush()

    existing = {
        name for (name,) in db.query(TaskCategory.name).filter(TaskCategory.user_id == system.id)
    }
    added = 0
    for name, color in DEFAULT_CATEGORIES:
        if name not in existing:
            db.add(TaskCategory(name=name, color=color, user_id=system.id))
            added += 1

    db.commit()
    if added:
        logger.info("Seeded %d default categories", added)
    return added


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_categories(db)
    finally:
        db.close()


def main() -> None:
    from logging_setup import setup_logging

    setup_logging()
    init_db()
    logger.info("Database ready")


if __name__ == "__main__":
    main()
