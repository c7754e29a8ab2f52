# app/routers/auth.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, get_auth_context, get_current_user, bearer
from app.models import Account, Caretaker, Family, Settings, SYSTEM_LOGIN_ID, utcnow
from app.routers.setup import get_open_invite_or_error
from app.schemas import AuthContext, LoginRequest, LoginResponse, SetupAuthRequest, ok
from app.security import invalidate_token, secrets_match, verify_password
from app.services import auth_service
from app.services.account_service import get_account_family, get_account_caretaker
from app.services.family_service import new_system_caretaker
from app.services.ip_lockout import get_client_ip, login_lockout, remaining_minutes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SETUP_LINK_TOKEN_LIFE = 24 * 60 * 60


async def _target_family(db: AsyncSession, family_slug: Optional[str]) -> Optional[Family]:
    if family_slug:
        family = await db.scalar(select(Family).where(Family.slug == family_slug, Family.is_active.is_(True)))
        if family is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Family not found")
        return family
    return await db.scalar(select(Family).where(Family.is_active.is_(True)).order_by(Family.created_at).limit(1))


async def _has_regular_caretakers(db: AsyncSession, family_id: Optional[str]) -> bool:
    stmt = select(func.count()).select_from(Caretaker).where(
        Caretaker.login_id != SYSTEM_LOGIN_ID, Caretaker.deleted_at.is_(None)
    )
    if family_id:
        stmt = stmt.where(Caretaker.family_id == family_id)
    return (await db.scalar(stmt)) > 0


@router.post("")
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Login por PIN (modo SYSTEM o CARETAKER) o con la contraseña de sysadmin.
    Tres fallos seguidos desde la misma IP bloquean 5 minutos.
    """
    ip = auth_service.enforce_ip_lockout(request)

    if not data.security_pin and not data.admin_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Security PIN or admin password is required")

    # ---------- Sysadmin ----------
    if data.admin_password:
        if not secrets_match(data.admin_password, await auth_service.get_admin_password(db)):
            raise auth_service.fail_login(ip)
        login_lockout.reset(ip)
        logger.info("System administrator login", extra={"ip": ip})
        return ok(LoginResponse(
            id=auth_service.SYSADMIN_ID,
            name="System Administrator",
            type="SYSADMIN",
            role="SYSADMIN",
            token=auth_service.sysadmin_token(),
            is_sys_admin=True,
        ))

    family = await _target_family(db, data.family_slug)
    family_id = family.id if family else None

    settings_stmt = select(Settings).order_by(Settings.updated_at.desc()).limit(1)
    if family_id:
        settings_stmt = settings_stmt.where(Settings.family_id == family_id)
    family_settings = await db.scalar(settings_stmt)
    if family_settings is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Family settings not found")

    auth_type = family_settings.auth_type
    if not auth_type:
        auth_type = "CARETAKER" if await _has_regular_caretakers(db, family_id) else "SYSTEM"

    account = await db.get(Account, family.account_id) if family and family.account_id else None

    # ---------- Modo SYSTEM: PIN compartido de la familia ----------
    if auth_type == "SYSTEM":
        if not secrets_match(data.security_pin, family_settings.security_pin):
            raise auth_service.fail_login(ip)

        stmt = select(Caretaker).where(Caretaker.login_id == SYSTEM_LOGIN_ID, Caretaker.deleted_at.is_(None))
        if family_id:
            stmt = stmt.where(Caretaker.family_id == family_id)
        caretaker = await db.scalar(stmt.limit(1))
        if caretaker is None:
            if not family_id:
                raise auth_service.fail_login(ip)
            caretaker = new_system_caretaker(family_id, family_settings.security_pin)
            db.add(caretaker)
        if not family_settings.auth_type:
            family_settings.auth_type = auth_type
        await db.commit()

    # ---------- Modo CARETAKER: loginId + PIN propio ----------
    else:
        if not data.login_id:
            raise auth_service.fail_login(ip, "Login ID is required")
        if data.login_id == SYSTEM_LOGIN_ID:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="System login is disabled in caretaker mode")

        stmt = select(Caretaker).where(
            Caretaker.login_id == data.login_id,
            Caretaker.deleted_at.is_(None),
            Caretaker.inactive.is_(False),
        )
        if family_id:
            stmt = stmt.where(Caretaker.family_id == family_id)
        caretaker = await db.scalar(stmt.limit(1))
        if caretaker is None or not secrets_match(data.security_pin, caretaker.security_pin):
            raise auth_service.fail_login(ip)

    login_lockout.reset(ip)
    token = auth_service.caretaker_token(caretaker, family, account, auth_type)
    auth_service.set_caretaker_cookie(response, caretaker.id)
    logger.info("Caretaker login", extra={"caretaker_id": caretaker.id, "family_id": caretaker.family_id})

    return ok(LoginResponse(
        id=caretaker.id,
        name=caretaker.name,
        type=caretaker.type,
        role=caretaker.role,
        token=token,
        family_id=caretaker.family_id,
        family_slug=family.slug if family else None,
    ))


@router.post("/logout")
async def logout(
    response: Response,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
):
    if creds:
        invalidate_token(creds.credentials)
    response.delete_cookie(auth_service.CARETAKER_COOKIE, path="/")
    return ok()


@router.post("/refresh-token")
async def refresh_token(
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not ctx.is_account_auth or not ctx.account_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token refresh is only available for account authentication")
    account = await db.get(Account, ctx.account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")

    family = await get_account_family(db, account.id)
    caretaker = await get_account_caretaker(db, account.id)
    return ok({
        "token": auth_service.account_token(account, family, caretaker),
        "familySlug": family.slug if family else None,
    })


@router.get("/caretaker-exists")
async def caretaker_exists(
    family_slug: Optional[str] = Query(None, alias="familySlug"),
    db: AsyncSession = Depends(get_db),
):
    """Indica a la pantalla de login si debe pedir loginId."""
    family = await _target_family(db, family_slug)
    family_id = family.id if family else None
    exists = await _has_regular_caretakers(db, family_id)

    auth_type = None
    if family_id:
        auth_type = await db.scalar(
            select(Settings.auth_type).where(Settings.family_id == family_id).order_by(Settings.updated_at.desc()).limit(1)
        )
    return ok({"exists": exists, "authType": auth_type or ("CARETAKER" if exists else "SYSTEM")})


@router.get("/ip-lockout")
async def ip_lockout(request: Request):
    locked, seconds = login_lockout.check(get_client_ip(request))
    return ok({"locked": locked, "remainingTime": remaining_minutes(seconds) if locked else 0})


@router.get("/me")
async def me(ctx: AuthContext = Depends(get_auth_context)):
    if not ctx.authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=ctx.error or "Authentication required")
    return ok(ctx)


@router.post("/token")
async def setup_link_token(data: SetupAuthRequest, db: AsyncSession = Depends(get_db)):
    """Token de setup de 24 horas a partir de la invitación; expiresAt en milisegundos."""
    invite = await get_open_invite_or_error(db, data.token)
    if not verify_password(data.password, invite.password):
        logger.warning("Invalid setup password", extra={"token": data.token})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")
    expires_at = utcnow() + timedelta(seconds=SETUP_LINK_TOKEN_LIFE)
    return ok({
        "token": auth_service.setup_token(invite.token, SETUP_LINK_TOKEN_LIFE),
        "expiresAt": int(expires_at.timestamp() * 1000),
    })
