# StaffDesk - Base Model and Mixins

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from staffdesk.config import get_settings


settings = get_settings()
SCHEMA = settings.db_schema

# Use a metadata instance with a default schema so models and Alembic agree
_metadata = MetaData(schema=SCHEMA) if SCHEMA else MetaData()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def fk(target: str) -> str:
    """Qualify a "table.column" foreign key target with the configured schema."""
    return f"{SCHEMA}.{target}" if SCHEMA else target


class Base(DeclarativeBase):
    """Base class for all models."""
    metadata = _metadata


class TimestampMixin:
    """Mixin that adds created_at / updated_at timestamps to models."""
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False
    )
    
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=True
    )
