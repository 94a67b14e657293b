from sqlalchemy import select

from waste_portal.db import SessionLocal, create_schema
from waste_portal.models import Location, LocationType, Principal, PrincipalRole
from waste_portal.security.passwords import hash_password


def _ensure_principal(db, *, username: str, password: str, first_name: str, last_name: str, role: PrincipalRole) -> None:
    existing = db.execute(select(Principal).where(Principal.username == username)).scalar_one_or_none()
    if existing:
        return
    db.add(
        Principal(
            username=username,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            active=True,
        )
    )


def _ensure_location(db, *, name: str, address: str, district: str, location_type: LocationType) -> None:
    existing = db.execute(
        select(Location).where(Location.name == name, Location.type == location_type)
    ).scalar_one_or_none()
    if existing:
        return
    db.add(Location(name=name, address=address, district=district, type=location_type))


def seed() -> None:
    create_schema()
    with SessionLocal() as db:
        _ensure_principal(
            db,
            username='admin@example.com',
            password='adminpass',
            first_name='Site',
            last_name='Admin',
            role=PrincipalRole.ADMIN,
        )
        _ensure_principal(
            db,
            username='manager@example.com',
            password='managerpass',
            first_name='Shift',
            last_name='Manager',
            role=PrincipalRole.MANAGER,
        )
        _ensure_location(
            db,
            name='Central Godown',
            address='Industrial Estate, Kalamassery',
            district='Ernakulam',
            location_type=LocationType.GODOWN,
        )
        _ensure_location(
            db,
            name='Market Road Collection Point',
            address='Market Road, Aluva',
            district='Ernakulam',
            location_type=LocationType.COLLECTION_POINT,
        )
        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
