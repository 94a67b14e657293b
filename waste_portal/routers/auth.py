from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from waste_portal.auth import Principal, get_current_principal, is_admin_role
from waste_portal.config import settings
from waste_portal.db import get_db
from waste_portal.dependencies import get_client_ip
from waste_portal.models import Principal as PrincipalModel
from waste_portal.schemas import LoginRequest
from waste_portal.security.csrf import verify_csrf
from waste_portal.security.passwords import verify_and_upgrade
from waste_portal.security.sessions import create_web_session, revoke_web_session
from waste_portal.services.audit_service import log_audit, log_auth_event
from waste_portal.services.manager_service import profile_dict

router = APIRouter(prefix='/api/auth', tags=['auth'])

INVALID_LOGIN = {'detail': 'Invalid email or password'}


@router.get('/csrf')
def csrf_token(request: Request):
    return {'csrf_token': request.state.csrf_token}


@router.post('/login')
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    username = payload.username
    ip = get_client_ip(request)
    user_agent = request.headers.get('user-agent')

    principal = db.execute(select(PrincipalModel).where(PrincipalModel.username == username)).scalar_one_or_none()
    failure_reason = None
    if not principal:
        failure_reason = 'UNKNOWN_USERNAME'
    elif not principal.active:
        failure_reason = 'INACTIVE_PRINCIPAL'
    else:
        valid, upgraded_hash = verify_and_upgrade(payload.password, principal.password_hash)
        if not valid:
            failure_reason = 'BAD_PASSWORD'
        elif upgraded_hash:
            principal.password_hash = upgraded_hash

    if failure_reason:
        log_auth_event(
            db,
            attempted_username=username,
            success=False,
            failure_reason=failure_reason,
            principal_id=principal.id if principal else None,
            ip=ip,
            user_agent=user_agent,
        )
        db.commit()
        return JSONResponse(INVALID_LOGIN, status_code=401)

    token = create_web_session(db, principal.id, ip=ip, user_agent=user_agent)
    log_auth_event(
        db,
        attempted_username=username,
        success=True,
        principal_id=principal.id,
        ip=ip,
        user_agent=user_agent,
    )
    log_audit(
        db,
        actor_principal_id=principal.id,
        action='AUTH_LOGIN',
        ip=ip,
        metadata={'username': username},
    )
    db.commit()

    response = JSONResponse(jsonable_encoder({'user': profile_dict(principal)}))
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        max_age=settings.session_ttl_minutes * 60,
    )
    return response


@router.post('/logout')
def logout(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    _: None = Depends(verify_csrf),
):
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        revoke_web_session(db, token)

    log_audit(
        db,
        actor_principal_id=principal.id,
        action='AUTH_LOGOUT',
        ip=get_client_ip(request),
        metadata={},
    )
    db.commit()

    response = JSONResponse({'ok': True})
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get('/me')
def me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    row = db.execute(select(PrincipalModel).where(PrincipalModel.id == principal.id)).scalar_one()
    return {'user': profile_dict(row), 'display_name': principal.display_name, 'is_admin': is_admin_role(principal.role)}
