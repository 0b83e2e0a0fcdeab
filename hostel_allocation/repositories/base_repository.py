"""
Base repository with standardized CRUD operations and error handling.

Repositories only add and flush; the calling service owns the transaction
boundary and decides when to commit or roll back.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hostel_allocation.config.logging import get_logger
from hostel_allocation.core.exceptions import RepositoryError, ResourceNotFoundError
from hostel_allocation.models.base import BaseModel, SoftDeleteMixin

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository with standardized operations.

    Provides lookups, criteria queries, creation, updates and a
    compare-and-swap helper used for every contended write.
    """

    resource_name: str = "Resource"

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db
        self._is_soft_delete = issubclass(model, SoftDeleteMixin)

    # ==================== Read Operations ====================

    def find_by_id(self, id: str, include_deleted: bool = False, refresh: bool = False) -> Optional[ModelType]:
        """
        Find entity by ID.

        Args:
            id: Entity ID
            include_deleted: Include soft-deleted entities
            refresh: Reload the row even if it is already in the identity map

        Returns:
            Entity or None
        """
        try:
            entity = self.db.get(self.model, id, populate_existing=refresh)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Find by ID failed: {str(e)}") from e

        if entity is not None and self._is_soft_delete and not include_deleted and entity.is_deleted:
            return None
        return entity

    def get_by_id(self, id: str, include_deleted: bool = False, refresh: bool = False) -> ModelType:
        """
        Get entity by ID or raise exception.

        Raises:
            ResourceNotFoundError: If entity not found
        """
        entity = self.find_by_id(id, include_deleted=include_deleted, refresh=refresh)
        if entity is None:
            raise ResourceNotFoundError(self.resource_name, id)
        return entity

    def find_by_criteria(
        self,
        criteria: Dict[str, Any],
        skip: int = 0,
        limit: Optional[int] = 100,
        order_by: Optional[List[str]] = None,
        include_deleted: bool = False
    ) -> List[ModelType]:
        """
        Find entities matching criteria.

        Args:
            criteria: Filter criteria as key-value pairs; list values become IN
            skip: Number of records to skip
            limit: Maximum number of records (None for all)
            order_by: List of fields to order by (prefix with - for desc)
            include_deleted: Include soft-deleted entities

        Returns:
            List of matching entities
        """
        try:
            query = self.db.query(self.model)

            for key, value in criteria.items():
                if value is None or not hasattr(self.model, key):
                    continue
                column = getattr(self.model, key)
                if isinstance(value, (list, tuple, set, frozenset)):
                    query = query.filter(column.in_(list(value)))
                else:
                    query = query.filter(column == value)

            if self._is_soft_delete and not include_deleted:
                query = query.filter(self.model.is_deleted.is_(False))

            for field in order_by or []:
                if field.startswith('-'):
                    query = query.order_by(getattr(self.model, field[1:]).desc())
                else:
                    query = query.order_by(getattr(self.model, field))

            query = query.offset(skip)
            if limit is not None:
                query = query.limit(limit)
            return query.all()

        except SQLAlchemyError as e:
            raise RepositoryError(f"Find by criteria failed: {str(e)}") from e

    # ==================== Write Operations ====================

    def add(self, entity: ModelType) -> ModelType:
        """
        Add a new entity to the session and flush it.

        IntegrityError propagates so the service can translate it.
        """
        self.db.add(entity)
        self.db.flush()
        logger.debug(f"Added {self.model.__name__} with id: {entity.id}")
        return entity

    def apply_changes(self, entity: ModelType, data: Dict[str, Any]) -> ModelType:
        """Set attributes present on the model and flush."""
        for key, value in data.items():
            if hasattr(entity, key):
                setattr(entity, key, value)
        self.db.flush()
        return entity

    def compare_and_set(self, id: str, expected: Dict[str, Any], values: Dict[str, Any]) -> bool:
        """
        Conditionally update a single row.

        ``expected`` maps column names to a required value (or a collection of
        allowed values). The row is updated only if every condition still
        holds; returns whether exactly one row changed. The identity-map copy
        is refreshed afterwards.
        """
        self.db.flush()
        stmt = update(self.model).where(self.model.id == id)
        for key, value in expected.items():
            column = getattr(self.model, key)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Conditional update of {self.model.__name__} failed: {str(e)}") from e

        changed = result.rowcount == 1
        if changed:
            self.db.get(self.model, id, populate_existing=True)
        return changed
