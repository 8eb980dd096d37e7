"""Database initialization utilities."""
from sqlalchemy.engine import Engine

from hostel_app.core.logging import get_logger
from hostel_app.db.base import Base, import_models

logger = get_logger(__name__)


def init_db(engine: Engine) -> None:
    """
    Create any missing tables.

    Suitable for development and tests; production schemas are migrated.
    """
    import_models()
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Database tables ensured",
        extra={"table_count": len(Base.metadata.tables)},
    )
