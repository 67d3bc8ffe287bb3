"""
Pydantic schemas for household record writes

Create schemas mark the fields a new row cannot do without; update schemas
are fully partial and carry an optional ``expected_version``. Unknown keys,
including any ``household_id`` in the body, are ignored.
"""

import datetime as dt
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from hearth.models.base import MAX_ROW_ID


class TenantWrite(BaseModel):
    """Common configuration for every write payload"""

    model_config = ConfigDict(extra="ignore")

    def values(self) -> Dict[str, Any]:
        """
        Column values for an insert; absent and null fields are left to defaults
        """
        return self.model_dump(exclude_none=True)


class TenantUpdate(TenantWrite):
    """Partial update with optional optimistic concurrency"""

    # Columns that are NOT NULL in storage and may not be cleared
    non_nullable: ClassVar[Tuple[str, ...]] = ()

    expected_version: Optional[int] = Field(
        None,
        ge=1,
        le=MAX_ROW_ID,
        description="Version the client last observed; omitted means last write wins",
    )

    @model_validator(mode="after")
    def check_non_nullable(self):
        for name in self.non_nullable:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def values(self) -> Dict[str, Any]:
        """
        Only the fields the client actually sent
        """
        return self.model_dump(exclude_unset=True, exclude={"expected_version"})


# Members

class MemberBase(TenantWrite):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    alias: Optional[str] = Field(None, max_length=255)
    type: Optional[Literal["adult", "child", "pet"]] = None
    species: Optional[str] = Field(None, max_length=100)
    emoji: Optional[str] = Field(None, max_length=16)
    dob: Optional[str] = Field(None, description="Date of birth (encrypted at rest)")
    will_details: Optional[str] = None
    life_insurance_provider: Optional[str] = None
    notes: Optional[str] = None


class MemberCreate(MemberBase):
    name: str = Field(..., min_length=1, max_length=255)


class MemberUpdate(MemberBase, TenantUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = ("name", "type")


# Vehicles

class VehicleBase(TenantWrite):
    make: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    registration: Optional[str] = Field(None, description="Encrypted at rest")
    type: Optional[str] = Field(None, max_length=50)
    emoji: Optional[str] = Field(None, max_length=16)
    purchase_date: Optional[dt.date] = None
    purchase_value: Optional[float] = None
    mot_due: Optional[dt.date] = None
    tax_due: Optional[dt.date] = None
    notes: Optional[str] = None

    @field_validator("registration")
    @classmethod
    def normalize_registration(cls, v):
        if v is None:
            return v
        return v.strip().upper()


class VehicleCreate(VehicleBase):
    pass


class VehicleUpdate(VehicleBase, TenantUpdate):
    pass


# Assets

class AssetBase(TenantWrite):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    emoji: Optional[str] = Field(None, max_length=16)
    location: Optional[str] = Field(None, max_length=255)
    purchase_date: Optional[dt.date] = None
    purchase_value: Optional[float] = None
    replacement_cost: Optional[float] = None
    serial_number: Optional[str] = Field(None, description="Encrypted at rest")
    warranty_expiry: Optional[dt.date] = None
    notes: Optional[str] = None


class AssetCreate(AssetBase):
    name: str = Field(..., min_length=1, max_length=255)


class AssetUpdate(AssetBase, TenantUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = ("name",)


# House details

class HouseDetailsBase(TenantWrite):
    property_type: Optional[str] = Field(None, max_length=100)
    construction_year: Optional[int] = Field(None, ge=1000, le=3000)
    tenure: Optional[str] = Field(None, max_length=50)
    council_tax_band: Optional[str] = Field(None, max_length=5)
    broadband_provider: Optional[str] = Field(None, max_length=255)
    broadband_account: Optional[str] = None
    wifi_password: Optional[str] = None
    emergency_contacts: Optional[str] = None
    purchase_price: Optional[float] = None
    current_valuation: Optional[float] = None
    notes: Optional[str] = None


class HouseDetailsCreate(HouseDetailsBase):
    pass


class HouseDetailsUpdate(HouseDetailsBase, TenantUpdate):
    pass


# Recurring costs

class InsuranceDetails(BaseModel):
    """Insurance policy attached to a recurring cost"""

    model_config = ConfigDict(extra="allow")

    kind: Literal["insurance"]
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    cover_type: Optional[str] = None
    renewal_date: Optional[str] = None
    excess: Optional[float] = None


class BankDetails(BaseModel):
    """Bank account a recurring cost is paid from or into"""

    model_config = ConfigDict(extra="allow")

    kind: Literal["bank"]
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    sort_code: Optional[str] = None
    reference: Optional[str] = None


class VehicleCostDetails(BaseModel):
    """Vehicle finance, tax or insurance attached to a recurring cost"""

    model_config = ConfigDict(extra="allow")

    kind: Literal["vehicle"]
    registration: Optional[str] = None
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    agreement_type: Optional[str] = None


RecurringCostDetails = Annotated[
    Union[InsuranceDetails, BankDetails, VehicleCostDetails],
    Field(discriminator="kind"),
]

_details_adapter = TypeAdapter(RecurringCostDetails)

DETAIL_KINDS = ("insurance", "bank", "vehicle")


class RecurringCostBase(TenantWrite):
    object_type: Optional[Literal["household", "member", "vehicle", "asset", "pet"]] = None
    object_id: Optional[int] = None
    category_id: Optional[str] = Field(None, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[float] = None
    frequency: Optional[Literal["weekly", "monthly", "quarterly", "yearly", "one_off"]] = None
    start_date: Optional[dt.date] = None
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    adjust_for_working_day: Optional[bool] = None
    emoji: Optional[str] = Field(None, max_length=16)
    notes: Optional[str] = None
    details: Optional[Union[Dict[str, Any], List[Any]]] = Field(
        None,
        description="Tagged by 'kind' (insurance, bank, vehicle) or free-form",
    )
    is_active: Optional[bool] = None

    @field_validator("details")
    @classmethod
    def validate_details(cls, v):
        """Tagged payloads must match their variant; anything else passes through"""
        if isinstance(v, dict) and v.get("kind") in DETAIL_KINDS:
            return _details_adapter.validate_python(v).model_dump(exclude_none=True)
        return v


class RecurringCostCreate(RecurringCostBase):
    name: str = Field(..., min_length=1, max_length=255)


class RecurringCostUpdate(RecurringCostBase, TenantUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = (
        "name", "object_type", "amount", "frequency", "adjust_for_working_day", "is_active",
    )


# Finance

class FinanceSavingBase(TenantWrite):
    institution: Optional[str] = Field(None, max_length=255)
    account_name: Optional[str] = Field(None, max_length=255)
    account_number: Optional[str] = None
    interest_rate: Optional[float] = None
    current_balance: Optional[float] = None
    deposit_amount: Optional[float] = None
    deposit_day: Optional[int] = Field(None, ge=1, le=31)
    emoji: Optional[str] = Field(None, max_length=16)
    notes: Optional[str] = None


class FinanceSavingCreate(FinanceSavingBase):
    pass


class FinanceSavingUpdate(FinanceSavingBase, TenantUpdate):
    pass


class FinanceCurrentAccountBase(TenantWrite):
    bank_name: Optional[str] = Field(None, max_length=255)
    account_name: Optional[str] = Field(None, max_length=255)
    account_number: Optional[str] = None
    sort_code: Optional[str] = None
    overdraft_limit: Optional[float] = None
    current_balance: Optional[float] = None
    emoji: Optional[str] = Field(None, max_length=16)
    notes: Optional[str] = None


class FinanceCurrentAccountCreate(FinanceCurrentAccountBase):
    pass


class FinanceCurrentAccountUpdate(FinanceCurrentAccountBase, TenantUpdate):
    pass


class FinanceCreditCardBase(TenantWrite):
    provider: Optional[str] = Field(None, max_length=255)
    card_name: Optional[str] = Field(None, max_length=255)
    account_number: Optional[str] = None
    credit_limit: Optional[float] = None
    current_balance: Optional[float] = None
    apr: Optional[float] = None
    payment_day: Optional[int] = Field(None, ge=1, le=31)
    emoji: Optional[str] = Field(None, max_length=16)
    notes: Optional[str] = None


class FinanceCreditCardCreate(FinanceCreditCardBase):
    pass


class FinanceCreditCardUpdate(FinanceCreditCardBase, TenantUpdate):
    pass


class FinancePensionBase(TenantWrite):
    provider: Optional[str] = Field(None, max_length=255)
    plan_name: Optional[str] = Field(None, max_length=255)
    account_number: Optional[str] = None
    type: Optional[str] = Field(None, max_length=50)
    current_value: Optional[float] = None
    monthly_contribution: Optional[float] = None
    payment_day: Optional[int] = Field(None, ge=1, le=31)
    emoji: Optional[str] = Field(None, max_length=16)
    notes: Optional[str] = None


class FinancePensionCreate(FinancePensionBase):
    pass


class FinancePensionUpdate(FinancePensionBase, TenantUpdate):
    pass


# Calendar

class CalendarDateBase(TenantWrite):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    type: Optional[str] = Field(None, max_length=50)
    is_all_day: Optional[bool] = None
    remind_days: Optional[int] = Field(None, ge=0)
    recurrence: Optional[Literal["none", "weekly", "monthly", "yearly"]] = None
    emoji: Optional[str] = Field(None, max_length=16)
    description: Optional[str] = None


class CalendarDateCreate(CalendarDateBase):
    title: str = Field(..., min_length=1, max_length=255)
    date: dt.date

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("end_date cannot be before date")
        return self


class CalendarDateUpdate(CalendarDateBase, TenantUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = (
        "title", "date", "type", "is_all_day", "remind_days", "recurrence",
    )


# Route slug -> (create schema, update schema)
WRITE_SCHEMAS: Dict[str, Tuple[Type[TenantWrite], Type[TenantUpdate]]] = {
    "members": (MemberCreate, MemberUpdate),
    "vehicles": (VehicleCreate, VehicleUpdate),
    "assets": (AssetCreate, AssetUpdate),
    "house_details": (HouseDetailsCreate, HouseDetailsUpdate),
    "recurring_costs": (RecurringCostCreate, RecurringCostUpdate),
    "finance_savings": (FinanceSavingCreate, FinanceSavingUpdate),
    "finance_current_accounts": (FinanceCurrentAccountCreate, FinanceCurrentAccountUpdate),
    "finance_credit_cards": (FinanceCreditCardCreate, FinanceCreditCardUpdate),
    "finance_pensions": (FinancePensionCreate, FinancePensionUpdate),
    "dates": (CalendarDateCreate, CalendarDateUpdate),
}
