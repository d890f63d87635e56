from __future__ import annotations

import logging

from sqlalchemy import inspect

from horarios.db.base import Base
from horarios.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_TABLES: set[str] = {
    "academic_units",
    "careers",
    "cycles",
    "subjects",
    "classrooms",
    "teachers",
    "periods",
    "time_blocks",
    "groups",
    "teacher_availability",
    "restrictions",
    "schedule_assignments",
}


def missing_tables() -> list[str]:
    with engine.connect() as connection:
        existing = set(inspect(connection).get_table_names())
    return sorted(REQUIRED_TABLES - existing)


def ensure_schema() -> None:
    # Importing the models registers every table on Base.metadata.
    import horarios.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    missing = missing_tables()
    if missing:
        logger.error("SCHEMA CHECK FAILED | missing_tables=%s", ",".join(missing))
    else:
        logger.info("SCHEMA CHECK OK | tables=%s", len(Base.metadata.tables))
