"""Base repository with common CRUD operations."""
from typing import TypeVar, Generic, Type, Optional, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import desc, asc, func
from uuid import UUID

from beatmarket.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common database operations."""

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def create(self, obj_in: Dict[str, Any]) -> ModelType:
        """
        Create new record.

        Args:
            obj_in: Dictionary with object data

        Returns:
            Created model instance
        """
        db_obj = self.model(**obj_in)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def get(self, id: UUID) -> Optional[ModelType]:
        """
        Get record by ID.

        Args:
            id: Record UUID

        Returns:
            Model instance or None if not found
        """
        return self.db.query(self.model).filter(self.model.id == id).first()

    def get_by_field(self, field: str, value: Any) -> Optional[ModelType]:
        """Get the first record whose column equals value."""
        return self.db.query(self.model).filter(getattr(self.model, field) == value).first()

    def _paginate(self, query, skip: int, limit: int, order_by: Optional[str] = None, order_desc: bool = True):
        total = query.count()

        if order_by and hasattr(self.model, order_by):
            order_column = getattr(self.model, order_by)
        elif hasattr(self.model, 'created_at'):
            order_column = self.model.created_at
        else:
            order_column = self.model.id

        if order_desc:
            query = query.order_by(desc(order_column))
        else:
            query = query.order_by(asc(order_column))

        return query.offset(skip).limit(limit).all(), total

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """
        Count records.

        Args:
            filters: Dictionary of column:value filters

        Returns:
            Count of records
        """
        query = self.db.query(func.count(self.model.id))

        if filters:
            for column, value in filters.items():
                if hasattr(self.model, column):
                    query = query.filter(getattr(self.model, column) == value)

        return query.scalar() or 0
