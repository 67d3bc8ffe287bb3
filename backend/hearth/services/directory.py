"""
Read-only client of the Tenancy Directory

The core asks exactly two questions: does a household exist, and what role
does a user hold in it. It never writes to the directory.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from hearth.models import Household, HouseholdRole, User, UserHousehold

logger = logging.getLogger(__name__)


class TenancyDirectory:
    """Queries against the central users/households/role-link tables"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def household_exists(self, household_id: int) -> bool:
        """
        True if the household exists and is not soft-deleted
        """
        with self.session_factory() as db:
            found = db.execute(
                select(Household.id).where(
                    Household.id == household_id,
                    Household.deleted_at.is_(None),
                )
            ).first()
        return found is not None

    def get_role(self, user_id: int, household_id: int) -> Optional[HouseholdRole]:
        """
        Role of an active user in a live household, via an active link

        Returns:
            The role, or None when the user has no valid role there
        """
        with self.session_factory() as db:
            role = db.execute(
                select(UserHousehold.role)
                .join(User, User.id == UserHousehold.user_id)
                .join(Household, Household.id == UserHousehold.household_id)
                .where(
                    UserHousehold.user_id == user_id,
                    UserHousehold.household_id == household_id,
                    UserHousehold.is_active.is_(True),
                    User.is_active.is_(True),
                    User.deleted_at.is_(None),
                    Household.deleted_at.is_(None),
                )
            ).scalar_one_or_none()

        if role is None:
            return None
        try:
            return HouseholdRole(role)
        except ValueError:
            logger.warning(f"Unknown role {role!r} for user {user_id} in household {household_id}")
            return None

    def get_household(self, household_id: int) -> Optional[Dict[str, Any]]:
        with self.session_factory() as db:
            household = db.get(Household, household_id)
            if household is None or household.is_deleted:
                return None
            return household.to_dict()

    def household_users(self, household_id: int) -> List[Dict[str, Any]]:
        """
        Users linked to a household with their roles
        """
        with self.session_factory() as db:
            rows = db.execute(
                select(User, UserHousehold)
                .join(UserHousehold, User.id == UserHousehold.user_id)
                .where(UserHousehold.household_id == household_id)
                .order_by(User.id)
            ).all()
            return [
                {
                    "id": user.id,
                    "email": user.email,
                    "first_name": user.first_name,
                    "last_name": user.last_name,
                    "role": link.role,
                    "is_active": link.is_active,
                    "joined_at": link.joined_at.isoformat() if link.joined_at else None,
                }
                for user, link in rows
            ]

    def user_names(self, user_ids: List[int]) -> Dict[int, str]:
        """
        Display names for a set of user ids
        """
        if not user_ids:
            return {}
        with self.session_factory() as db:
            users = db.execute(select(User).where(User.id.in_(user_ids))).scalars().all()
            return {user.id: user.display_name for user in users}

    def active_household_ids(self) -> List[int]:
        with self.session_factory() as db:
            return list(
                db.execute(
                    select(Household.id).where(Household.deleted_at.is_(None)).order_by(Household.id)
                ).scalars()
            )
