"""
Base service class providing common functionality for all services.
"""

import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from hostel_app.core.logging import get_logger

logger = get_logger(__name__)


def track_performance(operation_name: str):
    """Log the duration of a service operation, success or failure."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                logger.debug(
                    f"{operation_name} finished",
                    extra={
                        "operation": operation_name,
                        "execution_time": round(time.perf_counter() - start_time, 4),
                    },
                )
        return wrapper
    return decorator


class BaseService:
    """
    Base service with common behaviors:
    - Shared logger and db session
    - Transaction management utilities
    - Operation logging
    """

    def __init__(self, db_session: Session):
        """
        Args:
            db_session: SQLAlchemy database session owned by the caller
        """
        self.db: Session = db_session
        self._logger = get_logger(self.__class__.__module__)

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self, auto_commit: bool = True):
        """
        Context manager for database transactions with automatic rollback.

        Example:
            with self.transaction():
                self.repository.add(entity)
                # commit on success, rollback on exception
        """
        try:
            yield self.db
            if auto_commit:
                self._commit()
        except Exception as e:
            self._rollback()
            self._logger.debug(f"Transaction rolled back: {type(e).__name__}")
            raise

    def _commit(self) -> None:
        self.db.commit()

    def _rollback(self) -> None:
        """Rollback the current transaction, suppressing rollback errors."""
        try:
            self.db.rollback()
        except Exception as e:
            # Rollback errors should not mask the original error
            self._logger.warning(f"Rollback failed: {e}")

    # -------------------------------------------------------------------------
    # Logging helpers
    # -------------------------------------------------------------------------

    def _log_operation(
        self,
        operation: str,
        details: Optional[Dict[str, Any]] = None,
        level: str = "info",
    ) -> None:
        log = getattr(self._logger, level)
        log(f"{self.__class__.__name__}.{operation}", extra={"operation": operation, **(details or {})})
