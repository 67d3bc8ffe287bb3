"""
Household records stored in each tenant store

Each entity declares its FieldEncryptionPolicy through ``__encryption__``.
"""

from sqlalchemy import Boolean, Column, Date, Float, Integer, String, Text
from sqlalchemy.types import JSON

from hearth.core.exceptions import InvalidRecord
from hearth.core.policy import FieldEncryptionPolicy
from hearth.models.base import TenantModel


class Member(TenantModel):
    """
    A person or pet belonging to the household
    """
    __tablename__ = "members"
    __encryption__ = FieldEncryptionPolicy(
        fields=("dob", "will_details", "life_insurance_provider"),
    )

    name = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    alias = Column(String(255), nullable=True)
    type = Column(String(20), nullable=False, default="adult", comment="adult, child, pet")
    species = Column(String(100), nullable=True)
    emoji = Column(String(16), nullable=True)
    dob = Column(Text, nullable=True, comment="Encrypted")
    will_details = Column(Text, nullable=True, comment="Encrypted")
    life_insurance_provider = Column(Text, nullable=True, comment="Encrypted")
    notes = Column(Text, nullable=True)


class Vehicle(TenantModel):
    """
    A household vehicle
    """
    __tablename__ = "vehicles"
    __encryption__ = FieldEncryptionPolicy(fields=("registration",))

    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    registration = Column(Text, nullable=True, comment="Encrypted")
    type = Column(String(50), nullable=True)
    emoji = Column(String(16), nullable=True)
    purchase_date = Column(Date, nullable=True)
    purchase_value = Column(Float, nullable=True)
    mot_due = Column(Date, nullable=True)
    tax_due = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)


class Asset(TenantModel):
    """
    A tracked household asset
    """
    __tablename__ = "assets"
    __encryption__ = FieldEncryptionPolicy(fields=("serial_number",))

    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    emoji = Column(String(16), nullable=True)
    location = Column(String(255), nullable=True)
    purchase_date = Column(Date, nullable=True)
    purchase_value = Column(Float, nullable=True)
    replacement_cost = Column(Float, nullable=True)
    serial_number = Column(Text, nullable=True, comment="Encrypted")
    warranty_expiry = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)


class HouseDetails(TenantModel):
    """
    Property-level details for the household home
    """
    __tablename__ = "house_details"
    __encryption__ = FieldEncryptionPolicy(
        fields=("wifi_password", "emergency_contacts", "broadband_account"),
    )

    property_type = Column(String(100), nullable=True)
    construction_year = Column(Integer, nullable=True)
    tenure = Column(String(50), nullable=True)
    council_tax_band = Column(String(5), nullable=True)
    broadband_provider = Column(String(255), nullable=True)
    broadband_account = Column(Text, nullable=True, comment="Encrypted")
    wifi_password = Column(Text, nullable=True, comment="Encrypted")
    emergency_contacts = Column(Text, nullable=True, comment="Encrypted")
    purchase_price = Column(Float, nullable=True)
    current_valuation = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)


class RecurringCost(TenantModel):
    """
    A recurring bill, subscription or policy attached to a household object
    """
    __tablename__ = "recurring_costs"
    __encryption__ = FieldEncryptionPolicy(json_fields=("details",))

    object_type = Column(String(50), nullable=False, default="household", comment="household, member, vehicle, asset, pet")
    object_id = Column(Integer, nullable=True)
    category_id = Column(String(50), nullable=True)
    name = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False, default=0)
    frequency = Column(String(20), nullable=False, default="monthly")
    start_date = Column(Date, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    adjust_for_working_day = Column(Boolean, nullable=False, default=True)
    emoji = Column(String(16), nullable=True)
    notes = Column(Text, nullable=True)
    details = Column(JSON, nullable=True, comment="Structured payload; sensitive keys encrypted")
    is_active = Column(Boolean, nullable=False, default=True)


class FinanceSaving(TenantModel):
    """
    A savings account
    """
    __tablename__ = "finance_savings"
    __encryption__ = FieldEncryptionPolicy(fields=("account_number",))

    institution = Column(String(255), nullable=True)
    account_name = Column(String(255), nullable=True)
    account_number = Column(Text, nullable=True, comment="Encrypted")
    interest_rate = Column(Float, nullable=True)
    current_balance = Column(Float, nullable=True)
    deposit_amount = Column(Float, nullable=True)
    deposit_day = Column(Integer, nullable=True)
    emoji = Column(String(16), nullable=True)
    notes = Column(Text, nullable=True)


class FinanceCurrentAccount(TenantModel):
    """
    A current (checking) bank account
    """
    __tablename__ = "finance_current_accounts"
    __encryption__ = FieldEncryptionPolicy(fields=("account_number", "sort_code"))

    bank_name = Column(String(255), nullable=True)
    account_name = Column(String(255), nullable=True)
    account_number = Column(Text, nullable=True, comment="Encrypted")
    sort_code = Column(Text, nullable=True, comment="Encrypted")
    overdraft_limit = Column(Float, nullable=True)
    current_balance = Column(Float, nullable=True)
    emoji = Column(String(16), nullable=True)
    notes = Column(Text, nullable=True)


class FinanceCreditCard(TenantModel):
    """
    A credit card
    """
    __tablename__ = "finance_credit_cards"
    __encryption__ = FieldEncryptionPolicy(fields=("account_number",))

    provider = Column(String(255), nullable=True)
    card_name = Column(String(255), nullable=True)
    account_number = Column(Text, nullable=True, comment="Encrypted")
    credit_limit = Column(Float, nullable=True)
    current_balance = Column(Float, nullable=True)
    apr = Column(Float, nullable=True)
    payment_day = Column(Integer, nullable=True)
    emoji = Column(String(16), nullable=True)
    notes = Column(Text, nullable=True)


class FinancePension(TenantModel):
    """
    A pension plan
    """
    __tablename__ = "finance_pensions"
    __encryption__ = FieldEncryptionPolicy(fields=("account_number",))

    provider = Column(String(255), nullable=True)
    plan_name = Column(String(255), nullable=True)
    account_number = Column(Text, nullable=True, comment="Encrypted")
    type = Column(String(50), nullable=True)
    current_value = Column(Float, nullable=True)
    monthly_contribution = Column(Float, nullable=True)
    payment_day = Column(Integer, nullable=True)
    emoji = Column(String(16), nullable=True)
    notes = Column(Text, nullable=True)


class CalendarDate(TenantModel):
    """
    A calendar entry (birthday, holiday, renewal)
    """
    __tablename__ = "dates"

    title = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    type = Column(String(50), nullable=False, default="event")
    is_all_day = Column(Boolean, nullable=False, default=True)
    remind_days = Column(Integer, nullable=False, default=0)
    recurrence = Column(String(20), nullable=False, default="none")
    emoji = Column(String(16), nullable=True)
    description = Column(Text, nullable=True)

    def check_consistency(self) -> None:
        if self.end_date is not None and self.end_date < self.date:
            raise InvalidRecord("end_date cannot be before date")
