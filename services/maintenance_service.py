import logging

from sqlalchemy.orm import Session

from models.visit import Visit

logger = logging.getLogger(__name__)

CRITICAL_TEMPERATURE = "102.2°F"
ACTIVE_TEMPERATURE = "99.6°F"
BASELINE_TEMPERATURE = "98.6°F"


def default_temperature(status: str | None) -> str:
    status = (status or "").lower()
    if status == "critical":
        return CRITICAL_TEMPERATURE
    if status == "active":
        return ACTIVE_TEMPERATURE
    return BASELINE_TEMPERATURE


def backfill_missing_temperatures(db: Session) -> int:
    """Fill empty visit temperatures from the status table; returns rows changed.

    Safe to re-run: filled rows no longer count as missing.
    """
    logger.info("Updating missing temperature values for visits")

    updated = 0
    for visit in db.query(Visit).order_by(Visit.id).all():
        if visit.temperature:
            continue
        visit.temperature = default_temperature(visit.status)
        updated += 1
        logger.info("Updated temperature for visit ID: %s to %s", visit.id, visit.temperature)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Updated temperature values for %d visits", updated)
    return updated
