from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from waste_portal.auth import Principal, Role, require_role
from waste_portal.db import get_db
from waste_portal.dependencies import get_client_ip
from waste_portal.schemas import ManagerCreate, ManagerUpdate
from waste_portal.security.csrf import verify_csrf
from waste_portal.services.audit_service import log_audit
from waste_portal.services.dashboard_service import get_dashboard_stats
from waste_portal.services.manager_service import create_manager, list_managers, profile_dict, update_manager
from waste_portal.services.report_service import REPORT_KINDS, build_report, render_csv

router = APIRouter(prefix='/api', tags=['management'])
staff_access = require_role(Role.ADMIN, Role.MANAGER)
admin_access = require_role(Role.ADMIN)


@router.get('/dashboard')
def dashboard(principal: Principal = Depends(staff_access), db: Session = Depends(get_db)):
    return get_dashboard_stats(db)


@router.get('/managers')
def get_managers(principal: Principal = Depends(admin_access), db: Session = Depends(get_db)):
    return {'managers': list_managers(db)}


@router.post('/managers', status_code=201)
def post_manager(
    payload: ManagerCreate,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        manager = create_manager(
            db,
            actor=principal,
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
        )
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='MANAGER_CREATED',
        ip=get_client_ip(request),
        metadata={'manager_id': manager.id, 'email': manager.username},
    )
    db.commit()
    return {'manager': profile_dict(manager)}


@router.put('/managers/{manager_id}')
def put_manager(
    manager_id: int,
    payload: ManagerUpdate,
    request: Request,
    principal: Principal = Depends(admin_access),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    try:
        manager = update_manager(
            db,
            actor=principal,
            manager_id=manager_id,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            active=payload.active,
            new_password=payload.new_password,
        )
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='MANAGER_UPDATED',
        ip=get_client_ip(request),
        metadata={
            'manager_id': manager.id,
            'fields': sorted(payload.model_dump(exclude_none=True, exclude={'new_password'})),
            'password_reset': bool(payload.new_password),
        },
    )
    db.commit()
    return {'manager': profile_dict(manager)}


@router.get('/reports/{kind}.csv')
def export_report(
    kind: str,
    request: Request,
    start: date | None = None,
    end: date | None = None,
    principal: Principal = Depends(staff_access),
    db: Session = Depends(get_db),
):
    if kind not in REPORT_KINDS:
        raise HTTPException(status_code=404, detail='Unknown report')
    try:
        header, rows = build_report(db, kind=kind, start=start, end=end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='Invalid date filter') from exc

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='REPORT_EXPORTED_CSV',
        ip=get_client_ip(request),
        metadata={'report': kind, 'start': start, 'end': end, 'rows': len(rows)},
    )
    db.commit()

    suffix = f'-{start or "all"}-to-{end or "now"}' if start or end else ''
    return StreamingResponse(
        iter([render_csv(header, rows)]),
        media_type='text/csv',
        headers={'Content-Disposition': f'attachment; filename={kind}{suffix}.csv'},
    )
