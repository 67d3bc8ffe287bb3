"""
Generic repository for versioned tenant entities

Every read and write is scoped to the handle's household, goes through the
encryption gateway, and mutations go through the concurrency guard.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import select
from sqlalchemy.orm import Session

from hearth.core.concurrency import PROTECTED_COLUMNS, ConcurrencyGuard
from hearth.core.exceptions import NotFound
from hearth.core.gateway import EncryptionGateway
from hearth.core.tenant_registry import TenantHandle
from hearth.models.base import TenantModel

logger = logging.getLogger(__name__)


class TenantRepository:
    """
    CRUD for one entity type inside one household's store
    """

    def __init__(
        self,
        handle: TenantHandle,
        model: Type[TenantModel],
        gateway: EncryptionGateway,
        guard: Optional[ConcurrencyGuard] = None,
    ):
        self.handle = handle
        self.model = model
        self.gateway = gateway
        self.guard = guard or ConcurrencyGuard()

    @property
    def household_id(self) -> int:
        return self.handle.household_id

    def _writable(self, values: Dict[str, Any]) -> Dict[str, Any]:
        columns = self.model.__table__.columns.keys()
        return {k: v for k, v in values.items() if k in columns and k not in PROTECTED_COLUMNS}

    def create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new row at version 1
        """
        data = self.gateway.encrypt_values(self.model, self._writable(values))
        with self.handle.session() as db:
            entity = self.model(**data, household_id=self.household_id, version=1)
            entity.check_consistency()
            db.add(entity)
            db.flush()
            row = entity.to_dict()
        logger.debug(f"Created {self.model.__tablename__} {row['id']} in household {self.household_id}")
        return self.gateway.decrypt_row(self.model, row)

    def get(self, entity_id: int, include_deleted: bool = False) -> Dict[str, Any]:
        """
        Fetch one row by id

        Raises:
            NotFound: no such row in this household
        """
        with self.handle.session() as db:
            row = self._fetch(db, entity_id, include_deleted).to_dict()
        return self.gateway.decrypt_row(self.model, row)

    def _fetch(self, db: Session, entity_id: int, include_deleted: bool = False) -> TenantModel:
        stmt = select(self.model).where(
            self.model.id == entity_id,
            self.model.household_id == self.household_id,
        )
        if not include_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        entity = db.execute(stmt).scalar_one_or_none()
        if entity is None:
            raise NotFound(f"{self.model.__tablename__} {entity_id} not found")
        return entity

    def list(self, include_deleted: bool = False) -> List[Dict[str, Any]]:
        """
        All rows of this entity type in the household, oldest first
        """
        with self.handle.session() as db:
            stmt = (
                select(self.model)
                .where(self.model.household_id == self.household_id)
                .order_by(self.model.id)
            )
            if not include_deleted:
                stmt = stmt.where(self.model.deleted_at.is_(None))
            rows = [entity.to_dict() for entity in db.execute(stmt).scalars()]
        return self.gateway.decrypt_rows(self.model, rows)

    def update(
        self,
        entity_id: int,
        values: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Version-conditioned update; returns the updated row

        Raises:
            NotFound: no live row with this id
            Conflict: stale expected_version
        """
        data = self.gateway.encrypt_values(self.model, self._writable(values))
        with self.handle.session() as db:
            self.guard.update(
                db, self.model, entity_id, self.household_id, data,
                expected_version=expected_version,
            )
            entity = self._fetch(db, entity_id)
            entity.check_consistency()
            row = entity.to_dict()
        return self.gateway.decrypt_row(self.model, row)

    def delete(self, entity_id: int) -> None:
        """
        Soft delete a live row

        Raises:
            NotFound: no live row with this id
        """
        with self.handle.session() as db:
            self.guard.soft_delete(db, self.model, entity_id, self.household_id)
