from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.models import Expense, Location
from waste_portal.reference_data import EXPENSE_CATEGORIES


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError('Invalid amount') from exc
    if not amount.is_finite() or amount <= 0:
        raise ValueError('Amount must be greater than zero')
    return amount.quantize(Decimal('0.01'))


def expense_dict(expense: Expense) -> dict:
    return {
        'id': expense.id,
        'category': expense.category,
        'amount': expense.amount,
        'paid_by': expense.paid_by,
        'paid_to': expense.paid_to,
        'location_id': expense.location_id,
        'notes': expense.notes,
        'expense_date': expense.expense_date,
    }


def record_expense(
    db: Session,
    *,
    paid_by: int,
    category: str,
    amount,
    paid_to: str,
    location_id: int | None = None,
    notes: str | None = None,
) -> Expense:
    if category not in EXPENSE_CATEGORIES:
        raise ValueError(f'Unknown expense category: {category}')
    clean_paid_to = (paid_to or '').strip()
    if not clean_paid_to:
        raise ValueError('Paid to is required')
    if location_id is not None:
        exists = db.execute(select(Location.id).where(Location.id == location_id)).scalar_one_or_none()
        if not exists:
            raise ValueError('Location not found')

    expense = Expense(
        category=category,
        amount=_parse_amount(amount),
        paid_by=paid_by,
        paid_to=clean_paid_to,
        location_id=location_id,
        notes=(notes or '').strip() or None,
        expense_date=_now(),
    )
    db.add(expense)
    db.flush()
    return expense


def list_expenses(db: Session, *, start: datetime | None = None, end: datetime | None = None) -> list[dict]:
    query = (
        select(Expense, Location.name, Location.district, Location.type)
        .outerjoin(Location, Location.id == Expense.location_id)
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
    )
    if start is not None:
        query = query.where(Expense.expense_date >= start)
    if end is not None:
        query = query.where(Expense.expense_date < end)

    rows = []
    for expense, name, district, location_type in db.execute(query).all():
        row = expense_dict(expense)
        row['location'] = (
            {'name': name, 'district': district, 'type': location_type.value} if name is not None else None
        )
        rows.append(row)
    return rows
