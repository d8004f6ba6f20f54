"""Create the record store tables without running migrations (development)."""

import logging

from assembly_stage.db.session import create_tables

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()
    logger.info("Database initialized.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
