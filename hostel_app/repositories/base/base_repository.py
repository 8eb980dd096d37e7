"""
Base repository with the data-access operations shared by every aggregate.

Repositories never commit: the calling service owns the unit of work and
decides where the transaction boundary is. ``add`` flushes so constraint
violations surface at the statement that caused them.
"""

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from hostel_app.core.logging import get_logger
from hostel_app.models.base import BaseModel

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one SQLAlchemy model.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # ==================== Create Operations ====================

    def add(self, entity: ModelType, flush: bool = True) -> ModelType:
        """
        Stage a new entity in the session.

        Raises:
            sqlalchemy.exc.IntegrityError: propagated from the flush so the
                service can decide what the violation means.
        """
        self.db.add(entity)
        if flush:
            self.db.flush()
        logger.debug(f"Staged {self.model.__name__}", extra={"entity_id": entity.id})
        return entity

    # ==================== Read Operations ====================

    def find_by_id(self, id: str) -> Optional[ModelType]:
        return self.db.get(self.model, id)

    # ==================== Delete Operations ====================

    def delete(self, entity: ModelType, flush: bool = True) -> None:
        self.db.delete(entity)
        if flush:
            self.db.flush()
