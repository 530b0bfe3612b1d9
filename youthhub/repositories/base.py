"""
Base CRUD Repository Pattern
Generic repository with common database operations
"""

from datetime import datetime, timezone
from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel
import structlog

from youthhub.core.database import Base

logger = structlog.get_logger()

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base CRUD repository with generic database operations
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    @property
    def soft_deletes(self) -> bool:
        return hasattr(self.model, "deleted_at")

    def _live(self, query):
        if self.soft_deletes:
            query = query.where(self.model.deleted_at.is_(None))
        return query

    async def get(
        self,
        db: AsyncSession,
        id: Union[UUID, str],
        include_deleted: bool = False
    ) -> Optional[ModelType]:
        """
        Get a single record by ID

        Args:
            db: Database session
            id: Record ID
            include_deleted: Include soft-deleted records

        Returns:
            Model instance or None
        """
        try:
            query = select(self.model).where(self.model.id == id)
            if not include_deleted:
                query = self._live(query)

            result = await db.execute(query)
            record = result.scalar_one_or_none()

            logger.debug(
                "Record retrieved" if record else "Record not found",
                model=self.model.__name__,
                id=str(id),
            )
            return record

        except Exception as e:
            logger.error("Error retrieving record", model=self.model.__name__, id=str(id), error=str(e))
            raise

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """
        Create a new record

        Args:
            db: Database session
            obj_in: Pydantic model or dict with creation data
            commit: Whether to commit the transaction

        Returns:
            Created model instance
        """
        try:
            obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
            db_obj = self.model(**obj_in_data)

            db.add(db_obj)

            if commit:
                await db.commit()
                await db.refresh(db_obj)
            else:
                await db.flush()

            logger.info("Record created", model=self.model.__name__, id=str(db_obj.id))
            return db_obj

        except Exception as e:
            if commit:
                await db.rollback()
            logger.error("Error creating record", model=self.model.__name__, error=str(e))
            raise

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """
        Update an existing record

        Args:
            db: Database session
            db_obj: Existing model instance
            obj_in: Pydantic model or dict with update data
            commit: Whether to commit the transaction

        Returns:
            Updated model instance
        """
        try:
            update_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)

            for field, value in update_data.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)

            if commit:
                await db.commit()
                await db.refresh(db_obj)
            else:
                await db.flush()

            logger.info("Record updated", model=self.model.__name__, id=str(db_obj.id))
            return db_obj

        except Exception as e:
            if commit:
                await db.rollback()
            logger.error("Error updating record", model=self.model.__name__, id=str(db_obj.id), error=str(e))
            raise

    async def remove(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        commit: bool = True
    ) -> ModelType:
        """
        Delete a record: sets deleted_at where the table supports it, otherwise DELETE
        """
        try:
            soft = self.soft_deletes
            if soft:
                db_obj.deleted_at = datetime.now(timezone.utc)
            else:
                await db.delete(db_obj)

            if commit:
                await db.commit()
            else:
                await db.flush()

            logger.info("Record deleted", model=self.model.__name__, id=str(db_obj.id), soft_delete=soft)
            return db_obj

        except Exception as e:
            if commit:
                await db.rollback()
            logger.error("Error deleting record", model=self.model.__name__, id=str(db_obj.id), error=str(e))
            raise
