# scripts/backfill_temperatures.py
#
# One-shot repair: give every visit without a temperature the default for
# its status. Run from the project root:
#
#     python -m scripts.backfill_temperatures

import logging

from core.config import get_settings
from core.database import get_db_context
from core.logging_config import setup_logging
from services.maintenance_service import backfill_missing_temperatures

logger = logging.getLogger(__name__)


def main(session_factory=None) -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)

    with get_db_context(session_factory) as db:
        updated = backfill_missing_temperatures(db)

    logger.info("Backfill complete, %d visit(s) updated.", updated)
    return updated


if __name__ == "__main__":
    main()
