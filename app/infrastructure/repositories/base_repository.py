"""
SQLAlchemy implementation of the Base Repository.
"""

from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from app.domain.repositories.base import BaseRepository
from app.infrastructure.database import Base, is_valid_id

ModelType = TypeVar("ModelType", bound=Base)


def _as_dict(obj_in: Any) -> dict:
    if hasattr(obj_in, "model_dump"):
        return obj_in.model_dump(exclude_unset=True)
    return dict(obj_in)


class SQLAlchemyRepository(BaseRepository[ModelType], Generic[ModelType]):
    """Generic repository implementation for SQLAlchemy models."""

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    def get_by_id(self, id: int) -> Optional[ModelType]:
        if not is_valid_id(id):
            return None
        return self.db.get(self.model, id)

    def list(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        return self.db.query(self.model).order_by(self.model.id).offset(skip).limit(limit).all()

    def create(self, obj_in: Any) -> ModelType:
        db_obj = self.model(**_as_dict(obj_in))
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def update(self, db_obj: ModelType, obj_in: Any) -> ModelType:
        for field, value in _as_dict(obj_in).items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def refresh(self, db_obj: ModelType) -> ModelType:
        self.db.expire(db_obj)
        self.db.refresh(db_obj)
        return db_obj
