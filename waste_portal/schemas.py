"""Request bodies for the JSON API.

Quantities and amounts on the stock operations are left unconstrained here so
the operations themselves report bad values as INVALID_INPUT results.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, field_validator


def _strip(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip()


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator('username')
    @classmethod
    def _username(cls, v: str) -> str:
        return v.strip().lower()


class LocationCreate(BaseModel):
    name: str
    address: str
    district: str
    type: str
    contact_phone: str | None = None

    @field_validator('name', 'address', 'district')
    @classmethod
    def _required(cls, v: str) -> str:
        v = (v or '').strip()
        if not v:
            raise ValueError('field is required')
        return v


class InventoryAdjust(BaseModel):
    godown_id: int
    material: str
    quantity: Decimal
    direction: str


class CollectionCreate(BaseModel):
    location_id: int
    material: str
    quantity: Decimal
    unit: str
    amount_paid: Decimal
    notes: str | None = None
    commission_agent: str | None = None
    commission_amount: Decimal | None = None


class TransferCreate(BaseModel):
    from_godown_id: int
    to_godown_id: int
    material: str
    quantity: Decimal
    notes: str | None = None


class SaleCreate(BaseModel):
    godown_id: int
    buyer_name: str
    material: str
    quantity: Decimal
    unit: str
    sale_amount: Decimal
    payment_status: str
    amount_due: Decimal = Decimal('0')
    notes: str | None = None


class ExpenseCreate(BaseModel):
    category: str
    amount: Decimal
    paid_to: str
    location_id: int | None = None
    notes: str | None = None


class VehicleCreate(BaseModel):
    registration_number: str
    type: str
    capacity: Decimal | None = None
    capacity_unit: str | None = None
    current_location_id: int | None = None
    notes: str | None = None


class VehicleStatusUpdate(BaseModel):
    status: str
    current_location_id: int | None = None


class DriverCreate(BaseModel):
    name: str
    phone: str
    license_number: str
    address: str | None = None
    notes: str | None = None


class DriverActiveUpdate(BaseModel):
    active: bool


class TripFields(BaseModel):
    vehicle_id: int
    driver_id: int
    from_location_id: int
    to_location_id: int
    material_carried: str | None = None
    quantity: Decimal | None = None
    unit: str | None = None
    commission_agent: str | None = None
    commission_amount: Decimal | None = None
    notes: str | None = None


class RateCreate(BaseModel):
    rate_type: str
    rate: Decimal
    material_type: str | None = None
    effective_from: date | None = None
    notes: str | None = None


class ManagerCreate(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    phone: str | None = None

    @field_validator('email')
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()


class ManagerUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    active: bool | None = None
    new_password: str | None = None

    @field_validator('first_name', 'last_name', 'phone')
    @classmethod
    def _trim(cls, v: str | None) -> str | None:
        return _strip(v)
