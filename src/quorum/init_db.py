"""Create the schema and seed default moderation configuration."""

import logging

from quorum.db.session import SessionLocal, create_tables
from quorum.services.config import seed_defaults

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all tables and insert default close reasons and thresholds."""
    create_tables()
    db = SessionLocal()
    try:
        seed_defaults(db)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    logger.info("Database initialized.")
