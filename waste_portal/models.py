from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, 'sqlite')

Quantity = Numeric(14, 3)
Money = Numeric(14, 2)


class Base(DeclarativeBase):
    pass


def _enum(enum_cls: type[Enum], name: str) -> SQLEnum:
    return SQLEnum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class PrincipalRole(str, Enum):
    ADMIN = 'ADMIN'
    MANAGER = 'MANAGER'


class LocationType(str, Enum):
    GODOWN = 'godown'
    COLLECTION_POINT = 'collection_point'


class PaymentStatus(str, Enum):
    PAID = 'paid'
    PENDING = 'pending'
    PAYMENT_REQUIRED = 'payment_required'


class VehicleType(str, Enum):
    TRUCK = 'truck'
    PICKUP = 'pickup'
    VAN = 'van'
    AUTO = 'auto'
    OTHER = 'other'


class VehicleStatus(str, Enum):
    AVAILABLE = 'available'
    MAINTENANCE = 'maintenance'
    ON_ROUTE = 'on_route'
    LOADING = 'loading'
    UNLOADING = 'unloading'


class TripStatus(str, Enum):
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class Principal(Base):
    __tablename__ = 'principals'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    last_name: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    phone: Mapped[str | None] = mapped_column(Text)
    role: Mapped[PrincipalRole] = mapped_column(SQLEnum(PrincipalRole, name='principal_role'), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuthEvent(Base):
    __tablename__ = 'auth_events'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    attempted_username: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(Text)
    principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLog(Base):
    __tablename__ = 'audit_log'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    actor_principal_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    action: Mapped[str] = mapped_column(Text, nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64))
    meta: Mapped[dict] = mapped_column('metadata', JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class WebSession(Base):
    __tablename__ = 'web_sessions'
    __table_args__ = (
        UniqueConstraint('session_token', name='web_sessions_session_token_key'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_token: Mapped[str] = mapped_column(String(128), nullable=False)
    principal_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Location(Base):
    __tablename__ = 'locations'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    district: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[LocationType] = mapped_column(_enum(LocationType, 'location_type'), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class InventoryRecord(Base):
    __tablename__ = 'inventory'
    __table_args__ = (
        UniqueConstraint('godown_id', 'material', name='inventory_godown_material_key'),
        CheckConstraint('quantity >= 0', name='inventory_quantity_non_negative'),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    godown_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('locations.id'), nullable=False)
    material: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Collection(Base):
    __tablename__ = 'collections'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    location_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('locations.id'), nullable=False)
    collected_by: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)
    material: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Money, nullable=False)
    commission_agent: Mapped[str | None] = mapped_column(Text)
    commission_amount: Mapped[Decimal | None] = mapped_column(Money)
    notes: Mapped[str | None] = mapped_column(Text)
    collection_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Sale(Base):
    __tablename__ = 'sales'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    godown_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('locations.id'), nullable=False)
    buyer_name: Mapped[str] = mapped_column(Text, nullable=False)
    material: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    sale_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(_enum(PaymentStatus, 'payment_status'), nullable=False)
    amount_due: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal('0'), server_default='0')
    notes: Mapped[str | None] = mapped_column(Text)
    sale_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class StockTransfer(Base):
    __tablename__ = 'stock_transfers'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    from_godown_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('locations.id'), nullable=False)
    to_godown_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('locations.id'), nullable=False)
    material: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Quantity, nullable=False)
    transferred_by: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    transfer_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Expense(Base):
    __tablename__ = 'expenses'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    paid_by: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)
    paid_to: Mapped[str] = mapped_column(Text, nullable=False)
    location_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('locations.id'))
    notes: Mapped[str | None] = mapped_column(Text)
    expense_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Vehicle(Base):
    __tablename__ = 'vehicles'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    registration_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    type: Mapped[VehicleType] = mapped_column(_enum(VehicleType, 'vehicle_type'), nullable=False)
    capacity: Mapped[Decimal | None] = mapped_column(Quantity)
    capacity_unit: Mapped[str | None] = mapped_column(Text)
    status: Mapped[VehicleStatus] = mapped_column(
        _enum(VehicleStatus, 'vehicle_status'), nullable=False, default=VehicleStatus.AVAILABLE
    )
    current_location_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('locations.id'))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Driver(Base):
    __tablename__ = 'drivers'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    license_number: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    address: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Trip(Base):
    __tablename__ = 'trips'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    vehicle_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('vehicles.id'), nullable=False)
    driver_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('drivers.id'), nullable=False)
    from_location_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('locations.id'), nullable=False)
    to_location_id: Mapped[int] = mapped_column(BigInteger, ForeignKey('locations.id'), nullable=False)
    material_carried: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[Decimal | None] = mapped_column(Quantity)
    unit: Mapped[str | None] = mapped_column(Text)
    commission_agent: Mapped[str | None] = mapped_column(Text)
    commission_amount: Mapped[Decimal | None] = mapped_column(Money)
    status: Mapped[TripStatus] = mapped_column(
        _enum(TripStatus, 'trip_status'), nullable=False, default=TripStatus.IN_PROGRESS
    )
    token_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    departure_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    arrival_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[int] = mapped_column(BigInteger, ForeignKey('principals.id'), nullable=False)


class Rate(Base):
    __tablename__ = 'rates'

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    rate_type: Mapped[str] = mapped_column(Text, nullable=False)
    material_type: Mapped[str | None] = mapped_column(Text)
    rate: Mapped[Decimal] = mapped_column(Money, nullable=False)
    effective_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    effective_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[int | None] = mapped_column(BigInteger, ForeignKey('principals.id'))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
