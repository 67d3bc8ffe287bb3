"""
Append-only audit trail of state-changing actions, keyed by household
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from hearth.models import AuditLog
from hearth.models.base import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Caller network details captured with each audit entry"""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Any) -> "RequestContext":
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip_address = forwarded.split(",")[0].strip()
        else:
            ip_address = request.client.host if request.client else None
        return cls(ip_address=ip_address, user_agent=request.headers.get("user-agent"))


class AuditRecorder:
    """
    Writes one new row per action; there is no update or delete path
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(
        self,
        household_id: int,
        actor_user_id: Optional[int],
        action: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        context: Optional[RequestContext] = None,
    ) -> Optional[int]:
        """
        Append an audit entry

        Args:
            household_id: Household the action happened in
            actor_user_id: User who performed it
            action: Stable action token, e.g. MEMBERS_UPDATE
            entity_type: Type of object affected
            entity_id: Id of object affected
            metadata: Snapshot of extra context
            context: Caller IP / user agent

        Returns:
            Id of the new entry, or None if it could not be persisted
        """
        context = context or RequestContext()
        entry = AuditLog(
            household_id=household_id,
            user_id=actor_user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata_=metadata or {},
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            created_at=utcnow(),
        )

        logger.info(
            "[AUDIT] %s household=%s user=%s %s:%s",
            action, household_id, actor_user_id, entity_type, entity_id,
        )

        db = self.session_factory()
        try:
            db.add(entry)
            db.commit()
            return entry.id
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[AUDIT-DB-ERROR] Failed to persist {action} for household {household_id}: {e}")
            return None
        finally:
            db.close()

    def entries(self, household_id: int, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Most recent entries for a household, newest first
        """
        with self.session_factory() as db:
            rows = db.execute(
                select(AuditLog)
                .where(AuditLog.household_id == household_id)
                .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
                .limit(limit)
            ).scalars().all()
            return [row.to_dict() for row in rows]

    def activity_counts(self, household_id: int, days: int = 30) -> List[Dict[str, Any]]:
        """
        Action counts grouped by (entity type, actor) over a trailing window
        """
        since = utcnow() - timedelta(days=days)
        with self.session_factory() as db:
            rows = db.execute(
                select(
                    AuditLog.entity_type,
                    AuditLog.user_id,
                    func.count().label("action_count"),
                )
                .where(
                    AuditLog.household_id == household_id,
                    AuditLog.created_at >= since,
                    AuditLog.entity_type.is_not(None),
                )
                .group_by(AuditLog.entity_type, AuditLog.user_id)
                .order_by(AuditLog.entity_type, AuditLog.user_id)
            ).all()
        return [
            {"module": row.entity_type, "user_id": row.user_id, "action_count": row.action_count}
            for row in rows
        ]

    def activity_heatmap(
        self,
        household_id: int,
        days: int = 30,
        name_lookup: Optional[Callable[[List[int]], Dict[int, str]]] = None,
    ) -> Dict[str, Any]:
        """
        Module x member matrix of activity for dashboards

        Args:
            household_id: Household to summarise
            days: Trailing window length
            name_lookup: Maps actor ids to display names; unknown actors
                show as "User <id>" and shared names get " (<id>)"
        """
        counts = self.activity_counts(household_id, days=days)
        actor_ids = sorted({row["user_id"] for row in counts if row["user_id"] is not None})
        user_names = name_lookup(actor_ids) if name_lookup and actor_ids else {}

        names = {
            row["user_id"]: user_names.get(row["user_id"]) or f"User {row['user_id']}"
            for row in counts
        }
        taken = Counter(names.values())
        # Actors sharing a display name are told apart by id
        labels = {
            user_id: f"{name} ({user_id})" if taken[name] > 1 else name
            for user_id, name in names.items()
        }

        modules = sorted({row["module"] for row in counts})
        data = []
        for module in modules:
            entry: Dict[str, Any] = {"module": module}
            for row in counts:
                if row["module"] == module:
                    entry[labels[row["user_id"]]] = row["action_count"]
            data.append(entry)

        members = sorted(set(labels.values()))
        return {"data": data, "members": members, "modules": modules, "days": days}
