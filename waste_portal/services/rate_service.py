from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.models import Rate
from waste_portal.reference_data import RATE_TYPES


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def rate_dict(rate: Rate) -> dict:
    return {
        'id': rate.id,
        'rate_type': rate.rate_type,
        'rate_type_label': RATE_TYPES.get(rate.rate_type, rate.rate_type),
        'material_type': rate.material_type,
        'rate': rate.rate,
        'effective_from': rate.effective_from,
        'effective_to': rate.effective_to,
        'active': rate.effective_to is None,
        'notes': rate.notes,
        'created_by': rate.created_by,
    }


def list_rates(db: Session, *, active_only: bool = True) -> list[dict]:
    query = select(Rate).order_by(Rate.created_at.desc(), Rate.id.desc())
    if active_only:
        query = query.where(Rate.effective_to.is_(None))
    return [rate_dict(rate) for rate in db.execute(query).scalars().all()]


def add_rate(
    db: Session,
    *,
    created_by: int,
    rate_type: str,
    rate,
    material_type: str | None = None,
    effective_from: date | None = None,
    notes: str | None = None,
) -> tuple[Rate, int]:
    """Add a rate and close any active rate for the same type and material.

    Returns the new rate and how many active rates were closed.
    """
    if rate_type not in RATE_TYPES:
        raise ValueError(f'Unknown rate type: {rate_type}')
    try:
        parsed_rate = Decimal(str(rate))
    except InvalidOperation as exc:
        raise ValueError('Please enter a valid positive number for the rate') from exc
    if not parsed_rate.is_finite() or parsed_rate <= 0:
        raise ValueError('Please enter a valid positive number for the rate')

    clean_material = (material_type or '').strip() or None
    material_filter = Rate.material_type.is_(None) if clean_material is None else Rate.material_type == clean_material
    current = db.execute(
        select(Rate).where(Rate.rate_type == rate_type, material_filter, Rate.effective_to.is_(None))
    ).scalars().all()
    now = _now()
    for existing in current:
        existing.effective_to = now

    starts = datetime.combine(effective_from, time.min, tzinfo=timezone.utc) if effective_from else now
    new_rate = Rate(
        rate_type=rate_type,
        material_type=clean_material,
        rate=parsed_rate,
        effective_from=starts,
        notes=(notes or '').strip() or None,
        created_by=created_by,
        created_at=now,
    )
    db.add(new_rate)
    db.flush()
    return new_rate, len(current)


def deactivate_rate(db: Session, *, rate_id: int) -> Rate:
    rate = db.execute(select(Rate).where(Rate.id == rate_id)).scalar_one_or_none()
    if not rate:
        raise ValueError('Rate not found')
    if rate.effective_to is not None:
        raise ValueError('Rate is already inactive')
    rate.effective_to = _now()
    db.flush()
    return rate


def current_rate(db: Session, *, rate_type: str, material_type: str | None = None) -> Rate | None:
    """Active rate for a material, falling back to the all-materials rate."""
    if material_type:
        specific = db.execute(
            select(Rate).where(
                Rate.rate_type == rate_type,
                Rate.material_type == material_type,
                Rate.effective_to.is_(None),
            )
        ).scalars().first()
        if specific:
            return specific
    return db.execute(
        select(Rate).where(
            Rate.rate_type == rate_type,
            Rate.material_type.is_(None),
            Rate.effective_to.is_(None),
        )
    ).scalars().first()
