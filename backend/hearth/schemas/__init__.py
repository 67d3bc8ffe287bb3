"""
Pydantic schemas for API request validation
"""

from .tenant import (
    TenantWrite, TenantUpdate, WRITE_SCHEMAS,
    MemberCreate, MemberUpdate, VehicleCreate, VehicleUpdate, AssetCreate, AssetUpdate,
    HouseDetailsCreate, HouseDetailsUpdate, RecurringCostCreate, RecurringCostUpdate,
    InsuranceDetails, BankDetails, VehicleCostDetails, RecurringCostDetails,
    FinanceSavingCreate, FinanceSavingUpdate, FinanceCurrentAccountCreate, FinanceCurrentAccountUpdate,
    FinanceCreditCardCreate, FinanceCreditCardUpdate, FinancePensionCreate, FinancePensionUpdate,
    CalendarDateCreate, CalendarDateUpdate,
)

__all__ = [
    # Base write schemas
    "TenantWrite", "TenantUpdate", "WRITE_SCHEMAS",
    # Household records
    "MemberCreate", "MemberUpdate", "VehicleCreate", "VehicleUpdate", "AssetCreate", "AssetUpdate",
    "HouseDetailsCreate", "HouseDetailsUpdate", "RecurringCostCreate", "RecurringCostUpdate",
    # Recurring cost detail variants
    "InsuranceDetails", "BankDetails", "VehicleCostDetails", "RecurringCostDetails",
    # Finance
    "FinanceSavingCreate", "FinanceSavingUpdate", "FinanceCurrentAccountCreate", "FinanceCurrentAccountUpdate",
    "FinanceCreditCardCreate", "FinanceCreditCardUpdate", "FinancePensionCreate", "FinancePensionUpdate",
    # Calendar
    "CalendarDateCreate", "CalendarDateUpdate",
]
