from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from waste_portal.config import settings
from waste_portal.models import (
    Driver,
    Location,
    Trip,
    TripStatus,
    Vehicle,
    VehicleStatus,
    VehicleType,
)

TOKEN_ALPHABET = string.ascii_uppercase + string.digits


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _parse_optional_decimal(value, *, field: str) -> Decimal | None:
    if value is None or str(value).strip() == '':
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f'Invalid {field}') from exc
    if not parsed.is_finite():
        raise ValueError(f'Invalid {field}')
    if parsed < 0:
        raise ValueError(f'{field.capitalize()} cannot be negative')
    return parsed


def _ensure_location(db: Session, location_id: int) -> None:
    exists = db.execute(select(Location.id).where(Location.id == location_id)).scalar_one_or_none()
    if not exists:
        raise ValueError('Location not found')


def vehicle_dict(vehicle: Vehicle) -> dict:
    return {
        'id': vehicle.id,
        'registration_number': vehicle.registration_number,
        'type': vehicle.type.value,
        'capacity': vehicle.capacity,
        'capacity_unit': vehicle.capacity_unit,
        'status': vehicle.status.value,
        'current_location_id': vehicle.current_location_id,
        'notes': vehicle.notes,
    }


def list_vehicles(db: Session) -> list[dict]:
    rows = db.execute(
        select(Vehicle, Location.name)
        .outerjoin(Location, Location.id == Vehicle.current_location_id)
        .order_by(Vehicle.registration_number.asc())
    ).all()
    return [{**vehicle_dict(vehicle), 'current_location_name': location_name} for vehicle, location_name in rows]


def create_vehicle(
    db: Session,
    *,
    registration_number: str,
    vehicle_type: VehicleType | str,
    capacity=None,
    capacity_unit: str | None = None,
    current_location_id: int | None = None,
    notes: str | None = None,
) -> Vehicle:
    clean_reg = registration_number.strip().upper()
    if not clean_reg:
        raise ValueError('Registration number is required')
    try:
        kind = VehicleType(vehicle_type)
    except ValueError as exc:
        raise ValueError(f'Unknown vehicle type: {vehicle_type}') from exc

    existing = db.execute(select(Vehicle.id).where(Vehicle.registration_number == clean_reg)).scalar_one_or_none()
    if existing:
        raise ValueError('A vehicle with this registration number already exists')
    if current_location_id is not None:
        _ensure_location(db, current_location_id)

    vehicle = Vehicle(
        registration_number=clean_reg,
        type=kind,
        capacity=_parse_optional_decimal(capacity, field='capacity'),
        capacity_unit=(capacity_unit or '').strip() or None,
        status=VehicleStatus.AVAILABLE,
        current_location_id=current_location_id,
        notes=(notes or '').strip() or None,
    )
    db.add(vehicle)
    db.flush()
    return vehicle


def update_vehicle_status(
    db: Session,
    *,
    vehicle_id: int,
    status: VehicleStatus | str,
    current_location_id: int | None = None,
) -> Vehicle:
    vehicle = db.execute(select(Vehicle).where(Vehicle.id == vehicle_id)).scalar_one_or_none()
    if not vehicle:
        raise ValueError('Vehicle not found')
    try:
        new_status = VehicleStatus(status)
    except ValueError as exc:
        raise ValueError(f'Unknown vehicle status: {status}') from exc

    if current_location_id is not None:
        _ensure_location(db, current_location_id)
        vehicle.current_location_id = current_location_id
    vehicle.status = new_status
    db.flush()
    return vehicle


def driver_dict(driver: Driver) -> dict:
    return {
        'id': driver.id,
        'name': driver.name,
        'phone': driver.phone,
        'license_number': driver.license_number,
        'address': driver.address,
        'is_active': driver.is_active,
        'notes': driver.notes,
    }


def list_drivers(db: Session, *, active_only: bool = False) -> list[dict]:
    query = select(Driver).order_by(Driver.name.asc())
    if active_only:
        query = query.where(Driver.is_active.is_(True))
    return [driver_dict(driver) for driver in db.execute(query).scalars().all()]


def create_driver(
    db: Session,
    *,
    name: str,
    phone: str,
    license_number: str,
    address: str | None = None,
    notes: str | None = None,
) -> Driver:
    clean_name = name.strip()
    clean_phone = phone.strip()
    clean_license = license_number.strip().upper()
    if not clean_name or not clean_phone or not clean_license:
        raise ValueError('Name, phone and license number are required')

    existing = db.execute(select(Driver.id).where(Driver.license_number == clean_license)).scalar_one_or_none()
    if existing:
        raise ValueError('A driver with this license number already exists')

    driver = Driver(
        name=clean_name,
        phone=clean_phone,
        license_number=clean_license,
        address=(address or '').strip() or None,
        notes=(notes or '').strip() or None,
        is_active=True,
    )
    db.add(driver)
    db.flush()
    return driver


def set_driver_active(db: Session, *, driver_id: int, active: bool) -> Driver:
    driver = db.execute(select(Driver).where(Driver.id == driver_id)).scalar_one_or_none()
    if not driver:
        raise ValueError('Driver not found')
    driver.is_active = active
    db.flush()
    return driver


def generate_token_code(db: Session, *, length: int | None = None) -> str:
    """Random trip token, unique among existing trips."""
    size = length or settings.trip_token_length
    while True:
        token = ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(size))
        taken = db.execute(select(Trip.id).where(Trip.token_code == token)).scalar_one_or_none()
        if not taken:
            return token


def trip_dict(trip: Trip) -> dict:
    return {
        'id': trip.id,
        'vehicle_id': trip.vehicle_id,
        'driver_id': trip.driver_id,
        'from_location_id': trip.from_location_id,
        'to_location_id': trip.to_location_id,
        'material_carried': trip.material_carried,
        'quantity': trip.quantity,
        'unit': trip.unit,
        'commission_agent': trip.commission_agent,
        'commission_amount': trip.commission_amount,
        'status': trip.status.value,
        'token_code': trip.token_code,
        'departure_time': trip.departure_time,
        'arrival_time': trip.arrival_time,
        'notes': trip.notes,
        'created_by': trip.created_by,
    }


def _validated_trip_fields(
    db: Session,
    *,
    vehicle_id: int,
    driver_id: int,
    from_location_id: int,
    to_location_id: int,
    material_carried: str | None,
    quantity,
    unit: str | None,
    commission_agent: str | None,
    commission_amount,
    notes: str | None,
) -> dict:
    driver = db.execute(select(Driver).where(Driver.id == driver_id)).scalar_one_or_none()
    if not driver:
        raise ValueError('Driver not found')
    if not driver.is_active:
        raise ValueError('Driver is not active')
    _ensure_location(db, from_location_id)
    _ensure_location(db, to_location_id)
    return {
        'vehicle_id': vehicle_id,
        'driver_id': driver_id,
        'from_location_id': from_location_id,
        'to_location_id': to_location_id,
        'material_carried': (material_carried or '').strip() or None,
        'quantity': _parse_optional_decimal(quantity, field='quantity'),
        'unit': (unit or '').strip() or None,
        'commission_agent': (commission_agent or '').strip() or None,
        'commission_amount': _parse_optional_decimal(commission_amount, field='commission amount'),
        'notes': (notes or '').strip() or None,
    }


def create_trip(db: Session, *, created_by: int, vehicle_id: int, driver_id: int, **fields) -> Trip:
    """Start a trip: the vehicle must be available and goes on route."""
    vehicle = db.execute(select(Vehicle).where(Vehicle.id == vehicle_id)).scalar_one_or_none()
    if not vehicle:
        raise ValueError('Vehicle not found')
    if vehicle.status != VehicleStatus.AVAILABLE:
        raise ValueError(f'Vehicle {vehicle.registration_number} is not available')

    values = _validated_trip_fields(db, vehicle_id=vehicle_id, driver_id=driver_id, **fields)
    trip = Trip(
        **values,
        status=TripStatus.IN_PROGRESS,
        token_code=generate_token_code(db),
        departure_time=_now(),
        created_by=created_by,
    )
    db.add(trip)
    vehicle.status = VehicleStatus.ON_ROUTE
    db.flush()
    return trip


def update_trip(db: Session, *, trip_id: int, vehicle_id: int, driver_id: int, **fields) -> Trip:
    trip = db.execute(select(Trip).where(Trip.id == trip_id)).scalar_one_or_none()
    if not trip:
        raise ValueError('Trip not found')
    if trip.status == TripStatus.COMPLETED:
        raise ValueError('Completed trips cannot be edited')
    if vehicle_id != trip.vehicle_id:
        raise ValueError('The vehicle of a trip in progress cannot be changed')

    values = _validated_trip_fields(db, vehicle_id=vehicle_id, driver_id=driver_id, **fields)
    for key, value in values.items():
        setattr(trip, key, value)
    db.flush()
    return trip


def complete_trip(db: Session, *, trip_id: int) -> Trip:
    """Close a trip and park its vehicle, available again, at the destination."""
    trip = db.execute(select(Trip).where(Trip.id == trip_id)).scalar_one_or_none()
    if not trip:
        raise ValueError('Trip not found')
    if trip.status == TripStatus.COMPLETED:
        raise ValueError('Trip is already completed')

    trip.status = TripStatus.COMPLETED
    trip.arrival_time = _now()
    vehicle = db.execute(select(Vehicle).where(Vehicle.id == trip.vehicle_id)).scalar_one()
    vehicle.status = VehicleStatus.AVAILABLE
    vehicle.current_location_id = trip.to_location_id
    db.flush()
    return trip


def _trip_query():
    origin = aliased(Location)
    destination = aliased(Location)
    return (
        select(Trip, Vehicle.registration_number, Driver.name, origin.name, destination.name)
        .join(Vehicle, Vehicle.id == Trip.vehicle_id)
        .join(Driver, Driver.id == Trip.driver_id)
        .join(origin, origin.id == Trip.from_location_id)
        .join(destination, destination.id == Trip.to_location_id)
        .order_by(Trip.departure_time.desc(), Trip.id.desc())
    )


def _trip_rows(db: Session, query) -> list[dict]:
    return [
        {
            **trip_dict(trip),
            'vehicle_registration': registration,
            'driver_name': driver_name,
            'from_location_name': from_name,
            'to_location_name': to_name,
        }
        for trip, registration, driver_name, from_name, to_name in db.execute(query).all()
    ]


def list_trips(db: Session, *, status: TripStatus | str | None = None) -> list[dict]:
    query = _trip_query()
    if status:
        query = query.where(Trip.status == TripStatus(status))
    return _trip_rows(db, query)


def find_trips_by_token(db: Session, *, token_query: str) -> list[dict]:
    clean = token_query.strip()
    if not clean:
        raise ValueError('Please enter a token code to search')
    return _trip_rows(db, _trip_query().where(Trip.token_code.icontains(clean, autoescape=True)))
