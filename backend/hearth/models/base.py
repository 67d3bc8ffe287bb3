"""
Base model classes with common fields and functionality
"""

from sqlalchemy import Column, DateTime, Integer, func, text
from sqlalchemy.orm import declarative_base, declared_attr
from datetime import date, datetime, timezone
from typing import Any

# Directory (central) and tenant (per household) tables live in separate
# metadata so each database only ever gets its own schema
DirectoryBase = declarative_base()
TenantBase = declarative_base()

# Largest value a SQLite INTEGER column can hold
MAX_ROW_ID = 2**63 - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModelMixin:
    """
    Common primary key, timestamps and serialisation
    """

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @declared_attr
    def __tablename__(cls) -> str:
        """
        Automatically generate table name from class name
        Convert CamelCase to snake_case
        """
        import re
        name = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', cls.__name__)
        return re.sub('([a-z0-9])([A-Z])', r'\1_\2', name).lower()

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, date):
                value = value.isoformat()
            result[column.name] = value
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class VersionedMixin:
    """
    Versioned & soft-deletable capability

    ``version`` starts at 1 and is only ever bumped by the concurrency
    guard; ``deleted_at`` is set instead of removing the row.
    """

    version = Column(Integer, nullable=False, default=1, server_default=text("1"))

    deleted_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class TenantModel(ModelMixin, VersionedMixin, TenantBase):
    """
    Base for every entity stored in a household's tenant store
    """
    __abstract__ = True

    household_id = Column(Integer, nullable=False, index=True)

    def check_consistency(self) -> None:
        """
        Cross-field rules checked on the stored row after every write

        Raises:
            InvalidRecord: the row breaks a rule
        """
