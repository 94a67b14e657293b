from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from waste_portal.auth import Principal, Role, require_role
from waste_portal.db import get_db
from waste_portal.dependencies import get_client_ip
from waste_portal.schemas import ExpenseCreate, RateCreate
from waste_portal.security.csrf import verify_csrf
from waste_portal.services.audit_service import log_audit
from waste_portal.services.expense_service import expense_dict, list_expenses, record_expense
from waste_portal.services.rate_service import add_rate, deactivate_rate, list_rates, rate_dict
from waste_portal.services.report_service import date_range

router = APIRouter(prefix='/api', tags=['finance'])
staff_access = require_role(Role.ADMIN, Role.MANAGER)
admin_access = require_role(Role.ADMIN)


@router.get('/expenses')
def get_expenses(
    start: date | None = None,
    end: date | None = None,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    try:
        start_at, end_at = date_range(start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='Invalid date filter') from exc
    return {'expenses': list_expenses(db, start=start_at, end=end_at)}


@router.post('/expenses', status_code=201)
def post_expense(
    payload: ExpenseCreate,
    request: Request,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        expense = record_expense(
            db,
            paid_by=principal.id,
            category=payload.category,
            amount=payload.amount,
            paid_to=payload.paid_to,
            location_id=payload.location_id,
            notes=payload.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='EXPENSE_RECORDED',
        ip=get_client_ip(request),
        metadata={'expense_id': expense.id, 'category': expense.category, 'amount': expense.amount},
    )
    db.commit()
    return {'expense': expense_dict(expense)}


@router.get('/rates')
def get_rates(
    active_only: bool = True,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
):
    return {'rates': list_rates(db, active_only=active_only)}


@router.post('/rates', status_code=201)
def post_rate(
    payload: RateCreate,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        rate, closed = add_rate(
            db,
            created_by=principal.id,
            rate_type=payload.rate_type,
            rate=payload.rate,
            material_type=payload.material_type,
            effective_from=payload.effective_from,
            notes=payload.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='RATE_ADDED',
        ip=get_client_ip(request),
        metadata={'rate_id': rate.id, 'rate_type': rate.rate_type, 'material_type': rate.material_type, 'closed': closed},
    )
    db.commit()
    return {'rate': rate_dict(rate), 'closed_rates': closed}


@router.post('/rates/{rate_id}/deactivate')
def post_rate_deactivate(
    rate_id: int,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        rate = deactivate_rate(db, rate_id=rate_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='RATE_DEACTIVATED',
        ip=get_client_ip(request),
        metadata={'rate_id': rate.id},
    )
    db.commit()
    return {'rate': rate_dict(rate)}
