from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.models import Location, LocationType
from waste_portal.reference_data import DISTRICTS


def location_dict(location: Location) -> dict:
    return {
        'id': location.id,
        'name': location.name,
        'address': location.address,
        'district': location.district,
        'type': location.type.value,
        'contact_phone': location.contact_phone,
        'created_at': location.created_at,
    }


def _location_type(value: LocationType | str) -> LocationType:
    try:
        return LocationType(value)
    except ValueError as exc:
        raise ValueError(f'Unknown location type: {value}') from exc


def list_locations(db: Session, *, location_type: LocationType | str | None = None) -> list[dict]:
    query = select(Location).order_by(Location.name.asc())
    if location_type:
        query = query.where(Location.type == _location_type(location_type))
    return [location_dict(location) for location in db.execute(query).scalars().all()]


def create_location(
    db: Session,
    *,
    name: str,
    address: str,
    district: str,
    location_type: LocationType | str,
    contact_phone: str | None = None,
) -> Location:
    clean_name = name.strip()
    if not clean_name:
        raise ValueError('Location name is required')
    if district not in DISTRICTS:
        raise ValueError(f'Unknown district: {district}')
    kind = _location_type(location_type)

    duplicate = db.execute(
        select(Location.id).where(Location.name == clean_name, Location.type == kind)
    ).scalar_one_or_none()
    if duplicate:
        label = 'Godown' if kind == LocationType.GODOWN else 'Collection point'
        raise ValueError(f'{label} {clean_name} already exists')

    location = Location(
        name=clean_name,
        address=address.strip(),
        district=district,
        type=kind,
        contact_phone=(contact_phone or '').strip() or None,
    )
    db.add(location)
    db.flush()
    return location


def get_location(db: Session, *, location_id: int) -> Location:
    location = db.execute(select(Location).where(Location.id == location_id)).scalar_one_or_none()
    if not location:
        raise ValueError('Location not found')
    return location
