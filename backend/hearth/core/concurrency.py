"""
Optimistic concurrency for versioned, soft-deletable entities
"""

import logging
from typing import Any, Dict, Optional, Type

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from hearth.core.exceptions import Conflict, NotFound
from hearth.models.base import VersionedMixin, utcnow

logger = logging.getLogger(__name__)

# Columns that only the guard may write
PROTECTED_COLUMNS = frozenset({"id", "household_id", "version", "created_at", "updated_at", "deleted_at"})


class ConcurrencyGuard:
    """
    Version-conditioned updates and scoped soft deletes

    Works on any model with the VersionedMixin columns plus ``id`` and
    ``household_id``.
    """

    def update(
        self,
        session: Session,
        model: Type[VersionedMixin],
        entity_id: int,
        household_id: int,
        values: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Apply values if the row is live (and at expected_version when given)

        Args:
            session: Open session on the tenant store
            model: Entity class
            entity_id: Row id
            household_id: Owning household
            values: Column values to write
            expected_version: Version the caller last observed

        Returns:
            The new version

        Raises:
            NotFound: no live row with this id in this household
            Conflict: row exists but is not at expected_version
        """
        table = model.__table__
        changes = {k: v for k, v in values.items() if k not in PROTECTED_COLUMNS}

        stmt = (
            update(table)
            .where(
                table.c.id == entity_id,
                table.c.household_id == household_id,
                table.c.deleted_at.is_(None),
            )
            .values(**changes, version=table.c.version + 1, updated_at=utcnow())
            .returning(table.c.version)
        )
        if expected_version is not None:
            stmt = stmt.where(table.c.version == expected_version)

        new_version = session.execute(stmt).scalar_one_or_none()
        if new_version is not None:
            return new_version

        current = self._current_version(session, model, entity_id, household_id)
        if current is None:
            raise NotFound(f"{table.name} {entity_id} not found")

        logger.info(
            "Version conflict on %s %s: expected %s, current %s",
            table.name, entity_id, expected_version, current,
        )
        raise Conflict(current_version=current)

    def soft_delete(
        self,
        session: Session,
        model: Type[VersionedMixin],
        entity_id: int,
        household_id: int,
    ) -> None:
        """
        Mark a live row deleted; not version-gated

        Raises:
            NotFound: no live row with this id in this household
        """
        table = model.__table__
        now = utcnow()
        stmt = (
            update(table)
            .where(
                table.c.id == entity_id,
                table.c.household_id == household_id,
                table.c.deleted_at.is_(None),
            )
            .values(deleted_at=now, updated_at=now)
            .returning(table.c.id)
        )
        if session.execute(stmt).scalar_one_or_none() is None:
            raise NotFound(f"{table.name} {entity_id} not found")

    @staticmethod
    def _current_version(
        session: Session,
        model: Type[VersionedMixin],
        entity_id: int,
        household_id: int,
    ) -> Optional[int]:
        """
        Version of the live row scoped to (id, household_id), or None
        """
        table = model.__table__
        row = session.execute(
            select(table.c.version, table.c.deleted_at).where(
                table.c.id == entity_id,
                table.c.household_id == household_id,
            )
        ).first()
        if row is None or row.deleted_at is not None:
            return None
        return row.version
