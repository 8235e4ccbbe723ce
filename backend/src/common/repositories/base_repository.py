"""
Write-once result repository

Refiner and script results are stored once and read back by id; nothing
updates or deletes them. Database failures surface as RepositoryException so
services can map them to the "storage" error category.
"""

import logging
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.common.models.base import Base


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)

UNIQUE_VIOLATION = "23505"


class RepositoryException(Exception):
    """Any failure while reading or writing a result row."""


class DuplicateEntity(RepositoryException):
    """A row with the same primary key is already stored."""


class BaseRepository(Generic[T]):
    def __init__(self, model: type[T], session: AsyncSession) -> None:
        self.model = model
        self.session = session

    @property
    def table(self) -> str:
        return self.model.__tablename__

    async def get(self, id: Any) -> T | None:
        try:
            result = await self.session.execute(select(self.model).where(self.model.id == id))
        except SQLAlchemyError as e:
            logger.error(f"[Repository] {self.table} lookup failed (id={id}): {e}")
            raise RepositoryException(f"Failed to read {self.table}: {e}") from e
        return result.scalar_one_or_none()

    async def create(self, values: T | dict[str, Any]) -> T:
        """Insert one row and flush so database defaults (created_at) are loaded."""
        entity = self.model(**values) if isinstance(values, dict) else values
        self.session.add(entity)

        try:
            await self.session.flush()
            await self.session.refresh(entity)
        except IntegrityError as e:
            code = getattr(e.orig, "pgcode", None) or getattr(e.orig, "sqlstate", None)
            if code == UNIQUE_VIOLATION:
                logger.warning(f"[Repository] Duplicate {self.table} row (id={entity.id})")
                raise DuplicateEntity(f"{self.model.__name__} {entity.id} already exists") from e
            logger.error(f"[Repository] {self.table} integrity error: {e}")
            raise RepositoryException(f"Integrity error on {self.table}: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"[Repository] {self.table} insert failed: {e}")
            raise RepositoryException(f"Failed to write {self.table}: {e}") from e

        logger.debug(f"[Repository] Stored {self.table} row {entity.id}")
        return entity
