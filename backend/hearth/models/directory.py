"""
Tenancy Directory models: users, households, role links and the audit trail
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, event, func
from sqlalchemy.types import JSON
from enum import Enum
from typing import Any, Dict

from hearth.models.base import DirectoryBase, ModelMixin, VersionedMixin, utcnow


class HouseholdRole(str, Enum):
    """Roles a user can hold in a household, weakest first"""
    VIEWER = "viewer"
    MEMBER = "member"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return list(HouseholdRole).index(self)

    def allows(self, required: "HouseholdRole") -> bool:
        return self.rank >= HouseholdRole(required).rank


class User(ModelMixin, VersionedMixin, DirectoryBase):
    """
    A person who can sign in; identity itself is managed elsewhere
    """
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    system_role = Column(String(50), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def display_name(self) -> str:
        return self.first_name or f"User {self.id}"


class Household(ModelMixin, VersionedMixin, DirectoryBase):
    """
    A household (tenant); its records live in a separate tenant store
    """
    __tablename__ = "households"

    name = Column(String(255), nullable=False)
    currency = Column(String(10), nullable=False, default="GBP")
    date_format = Column(String(20), nullable=False, default="DD/MM/YYYY")
    is_test = Column(Boolean, nullable=False, default=False)


class UserHousehold(DirectoryBase):
    """
    Role link between a user and a household
    """
    __tablename__ = "user_households"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    household_id = Column(Integer, ForeignKey("households.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(20), nullable=False, default=HouseholdRole.MEMBER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<UserHousehold(user_id={self.user_id}, household_id={self.household_id}, role={self.role})>"


class AuditLog(DirectoryBase):
    """
    Immutable record of a state-changing action in a household
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True, index=True)
    action = Column(String(100), nullable=False)
    entity_type = Column(String(100), nullable=True)
    entity_id = Column(Integer, nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> Dict[str, Any]:
        """
        Audit entry shape consumed by export and analytics
        """
        return {
            "id": self.id,
            "householdId": self.household_id,
            "actorUserId": self.user_id,
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "metadata": self.metadata_ or {},
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action})>"


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise RuntimeError("Audit log entries are immutable")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise RuntimeError("Audit log entries cannot be deleted")
