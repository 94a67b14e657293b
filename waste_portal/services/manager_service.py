from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.auth import Principal, Role
from waste_portal.models import Principal as PrincipalModel
from waste_portal.models import PrincipalRole
from waste_portal.security.passwords import hash_password, validate_new_password
from waste_portal.security.sessions import revoke_principal_sessions


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _require_admin(actor: Principal) -> None:
    if actor.role != Role.ADMIN:
        raise PermissionError('Only admins can manage manager accounts')


def profile_dict(principal: PrincipalModel) -> dict:
    return {
        'id': principal.id,
        'email': principal.username,
        'first_name': principal.first_name,
        'last_name': principal.last_name,
        'phone': principal.phone,
        'role': principal.role.value.lower(),
        'active': principal.active,
        'created_at': principal.created_at,
    }


def list_managers(db: Session) -> list[dict]:
    rows = db.execute(
        select(PrincipalModel)
        .where(PrincipalModel.role == PrincipalRole.MANAGER)
        .order_by(PrincipalModel.active.desc(), PrincipalModel.first_name.asc(), PrincipalModel.last_name.asc())
    ).scalars().all()
    return [profile_dict(row) for row in rows]


def create_manager(
    db: Session,
    *,
    actor: Principal,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
) -> PrincipalModel:
    _require_admin(actor)
    clean_email = email.strip().lower()
    if not clean_email or '@' not in clean_email:
        raise ValueError('A valid email is required')
    if not first_name.strip() or not last_name.strip():
        raise ValueError('First and last name are required')
    validate_new_password(password)

    existing = db.execute(select(PrincipalModel.id).where(PrincipalModel.username == clean_email)).scalar_one_or_none()
    if existing:
        raise ValueError('An account with this email already exists')

    now = _now()
    principal = PrincipalModel(
        username=clean_email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=(phone or '').strip() or None,
        role=PrincipalRole.MANAGER,
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(principal)
    db.flush()
    return principal


def update_manager(
    db: Session,
    *,
    actor: Principal,
    manager_id: int,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    active: bool | None = None,
    new_password: str | None = None,
) -> PrincipalModel:
    _require_admin(actor)
    principal = db.execute(
        select(PrincipalModel).where(
            PrincipalModel.id == manager_id,
            PrincipalModel.role == PrincipalRole.MANAGER,
        )
    ).scalar_one_or_none()
    if not principal:
        raise ValueError('Manager account not found')

    if first_name is not None:
        if not first_name.strip():
            raise ValueError('First name cannot be empty')
        principal.first_name = first_name.strip()
    if last_name is not None:
        if not last_name.strip():
            raise ValueError('Last name cannot be empty')
        principal.last_name = last_name.strip()
    if phone is not None:
        principal.phone = phone.strip() or None
    if new_password:
        principal.password_hash = hash_password(validate_new_password(new_password))
        revoke_principal_sessions(db, principal.id)
    if active is not None and active != principal.active:
        principal.active = active
        if not active:
            revoke_principal_sessions(db, principal.id)

    principal.updated_at = _now()
    db.flush()
    return principal
