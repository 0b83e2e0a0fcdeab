"""Database initialization utilities."""
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from hostel_allocation.config.logging import get_logger
from hostel_allocation.models import Base

logger = get_logger(__name__)


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Create all tables that do not exist yet.

    Note: suitable for development and tests; production deployments
    should manage the schema with migrations.
    """
    if bind is None:
        from hostel_allocation.db.session import engine as bind

    try:
        existing = set(inspect(bind).get_table_names())
        Base.metadata.create_all(bind=bind)
        created = set(Base.metadata.tables) - existing
        if created:
            logger.info(f"Database tables created: {', '.join(sorted(created))}")
        else:
            logger.info(f"Database already initialized with {len(existing)} tables")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def drop_db(bind: Optional[Engine] = None) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data. Only for development/testing purposes.
    """
    if bind is None:
        from hostel_allocation.db.session import engine as bind

    Base.metadata.drop_all(bind=bind)
    logger.warning("All database tables dropped")
