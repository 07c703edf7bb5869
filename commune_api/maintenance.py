"""
CLI entrypoint for the reset-token cleanup job. Run from cron, e.g.:

  python -m commune_api.maintenance

Or hourly: 0 * * * * cd /path/to/commune-api && .venv/bin/python -m commune_api.maintenance
"""

import logging
import sys

from commune_api.core.database import SessionLocal
from commune_api.services.maintenance import purge_expired_reset_tokens

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Clear reset tokens that expired without being used."""
    db = SessionLocal()
    try:
        cleared = purge_expired_reset_tokens(db)
        logger.info("Maintenance completed: accounts_cleared=%s", cleared)
        return 0
    except Exception as e:
        logger.exception("Maintenance job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
