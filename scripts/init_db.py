"""
Create the database and bring it to the latest schema. Run from the project root: python -m scripts.init_db
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gymdesk.core.config import settings
from gymdesk.core.logging_config import get_logger
from alembic.config import Config
from alembic import command

logger = get_logger("init_db")

PROJECT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def init_db():
    """Initialize database and run all migrations."""
    alembic_cfg = Config(os.path.join(PROJECT_DIR, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(PROJECT_DIR, "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info(f"Database ready at {settings.DATABASE_URL}")


if __name__ == "__main__":
    init_db()
