"""
Database models package
"""

from .base import DirectoryBase, TenantBase, TenantModel, ModelMixin, VersionedMixin
from .directory import User, Household, UserHousehold, AuditLog, HouseholdRole
from .tenant import (
    Member, Vehicle, Asset, HouseDetails, RecurringCost,
    FinanceSaving, FinanceCurrentAccount, FinanceCreditCard, FinancePension, CalendarDate
)

# Tenant entity types keyed by table name (also their route slug)
TENANT_MODELS = {
    model.__tablename__: model
    for model in (
        Member, Vehicle, Asset, HouseDetails, RecurringCost,
        FinanceSaving, FinanceCurrentAccount, FinanceCreditCard, FinancePension, CalendarDate,
    )
}

__all__ = [
    "DirectoryBase", "TenantBase", "TenantModel", "ModelMixin", "VersionedMixin",
    "User", "Household", "UserHousehold", "AuditLog", "HouseholdRole",
    "Member", "Vehicle", "Asset", "HouseDetails", "RecurringCost",
    "FinanceSaving", "FinanceCurrentAccount", "FinanceCreditCard", "FinancePension", "CalendarDate",
    "TENANT_MODELS",
]
