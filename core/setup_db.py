# core/setup_db.py

import logging

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from core.config import get_settings
from core.database import Base, engine as default_engine
from core.logging_config import setup_logging
import models  # noqa: F401  registers every table on Base.metadata
from models.sequence import IdSequence
from services.id_allocator import PATIENT_ID_SEQUENCE

logger = logging.getLogger(__name__)


def init_db(engine: Engine | None = None) -> None:
    """Create all tables and seed the counter row used for patient IDs."""
    engine = engine or default_engine
    Base.metadata.create_all(bind=engine)

    with Session(engine) as db:
        seeded = db.scalar(select(IdSequence).where(IdSequence.name == PATIENT_ID_SEQUENCE))
        if seeded is None:
            db.add(IdSequence(name=PATIENT_ID_SEQUENCE, value=0))
            db.commit()
            logger.info("Seeded counter %s", PATIENT_ID_SEQUENCE)


def main():
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)

    logger.info("Creating database tables...")
    init_db()
    logger.info("Database initialized successfully.")


if __name__ == "__main__":
    main()
