# crm_reports/core/base_dao.py
"""Generic base DAO for common database operations."""

from typing import Generic, TypeVar, Optional, Any, Type
from sqlalchemy.orm import Session
from sqlalchemy import select, and_, func
from abc import ABC
from crm_reports.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType], ABC):
    """Generic DAO for common database operations."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def _conditions(self, filters: dict) -> list:
        return [
            getattr(self.model, key) == value
            for key, value in filters.items()
            if hasattr(self.model, key) and value is not None
        ]

    def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get record by ID."""
        return self.db.get(self.model, id)

    def create(self, **data) -> ModelType:
        """Create new record."""
        db_obj = self.model(**data)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def delete(self, id: Any) -> bool:
        """Delete record by ID."""
        db_obj = self.get_by_id(id)
        if db_obj:
            self.db.delete(db_obj)
            self.db.commit()
            return True
        return False

    def count(self, **filters) -> int:
        """Count records with optional filtering."""
        query = select(func.count()).select_from(self.model)

        conditions = self._conditions(filters)
        if conditions:
            query = query.where(and_(*conditions))

        result = self.db.execute(query)
        return result.scalar()

    def exists(self, **filters) -> bool:
        """Check if record exists with given filters."""
        return self.count(**filters) > 0
