from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base shared by the refiner and script result tables."""

    def to_dict(self) -> dict[str, Any]:
        """Row as a JSON-ready dict (timestamps rendered as ISO 8601)."""
        row: dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            row[column.key] = value.isoformat() if isinstance(value, datetime) else value
        return row

    def __repr__(self) -> str:
        # JSON documents are large, only identity columns are shown
        return f"<{type(self).__name__} id={self.id!r} table={self.__tablename__}>"


class CreatedAtMixin:
    """created_at filled by the database on insert."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
