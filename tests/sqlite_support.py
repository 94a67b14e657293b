from __future__ import annotations

from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from waste_portal.auth import Principal, Role
from waste_portal.models import Base, InventoryRecord, Location, LocationType
from waste_portal.models import Principal as PrincipalModel
from waste_portal.models import PrincipalRole


def make_session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def add_location(db, name: str, location_type: LocationType = LocationType.GODOWN, district: str = 'Ernakulam') -> Location:
    location = Location(name=name, address=f'{name} road', district=district, type=location_type)
    db.add(location)
    db.commit()
    return location


def add_stock(db, godown: Location, material: str, quantity) -> InventoryRecord:
    record = InventoryRecord(godown_id=godown.id, material=material, quantity=Decimal(str(quantity)))
    db.add(record)
    db.commit()
    return record


def add_principal(db, username: str = 'admin@example.com', role: PrincipalRole = PrincipalRole.ADMIN, password_hash: str = 'x') -> PrincipalModel:
    principal = PrincipalModel(
        username=username,
        password_hash=password_hash,
        first_name='Test',
        last_name='User',
        role=role,
        active=True,
    )
    db.add(principal)
    db.commit()
    return principal


def actor_for(principal: PrincipalModel) -> Principal:
    return Principal(
        id=principal.id,
        username=principal.username,
        role=Role(principal.role.value),
        first_name=principal.first_name,
        last_name=principal.last_name,
        active=principal.active,
    )
