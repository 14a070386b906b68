"""Declarative base and shared column types for ModelRisk models."""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Return a new string primary key."""
    return str(uuid.uuid4())


def enum_values(enum_cls: type[enum.Enum]) -> list[Any]:
    """Persist enum members by value so labels like 'Under Review' survive."""
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Provides a string UUID primary key and created/updated timestamps.
    All database models should inherit from this class to be included
    in migrations and table creation.
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_id,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
