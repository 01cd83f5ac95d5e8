"""Declarative helpers shared by the mirror and call-log tables."""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from land_gateway.core.database import Base


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def created_at_column() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


def updated_at_column() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ModelMixin:
    """Column snapshot and a repr keyed on the primary key."""

    def to_dict(self) -> dict[str, Any]:
        return {c.name: _plain(getattr(self, c.name)) for c in self.__table__.columns}  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        keys = ", ".join(
            f"{c.name}={getattr(self, c.name, None)!r}"
            for c in self.__mapper__.primary_key  # type: ignore[attr-defined]
        )
        return f"<{type(self).__name__} {keys}>"


class LogEntryModel(Base, ModelMixin):
    """Append-only rows: surrogate UUID key plus insertion time."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = created_at_column()
