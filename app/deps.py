from __future__ import annotations

import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_session
from app.exceptions import ApiError
from app.models import Account, Family, Caretaker, FamilySetup, SYSTEM_LOGIN_ID
from app.schemas import AuthContext
from app.security import decode_token, is_token_invalidated
from app.services.account_service import (
    compute_expiry, get_account_family, get_account_caretaker,
)
from app.services.auth_service import CARETAKER_COOKIE
from app.services.timezone import format_for_response

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


async def get_db(session: AsyncSession = Depends(get_session)) -> AsyncSession:
    return session


def _plan_fields(account: Optional[Account], has_family: bool = True) -> dict:
    if account is None:
        return {}
    is_expired = compute_expiry(account)[0] if has_family else False
    return {
        "betaparticipant": account.betaparticipant,
        "is_expired": is_expired,
        "trial_ends": format_for_response(account.trial_ends),
        "plan_expires": format_for_response(account.plan_expires),
        "plan_type": account.plan_type,
    }


async def _account_context(db: AsyncSession, payload: dict) -> AuthContext:
    account = await db.get(Account, payload.get("accountId"))
    if account is None:
        return AuthContext(error="Account not found")
    if account.closed:
        return AuthContext(error="Account is closed")

    family = await get_account_family(db, account.id)
    caretaker = await get_account_caretaker(db, account.id)
    common = dict(
        authenticated=True,
        family_id=family.id if family else None,
        family_slug=family.slug if family else None,
        is_account_auth=True,
        account_id=account.id,
        account_email=account.email,
        is_account_owner=True,
        verified=account.verified,
        auth_type="ACCOUNT",
        **_plan_fields(account, has_family=family is not None),
    )
    if caretaker is not None:
        return AuthContext(
            caretaker_id=caretaker.id,
            caretaker_type=caretaker.type or "Account Owner",
            caretaker_role=caretaker.role,
            **common,
        )
    return AuthContext(
        caretaker_id=account.id,
        caretaker_type="ACCOUNT",
        caretaker_role="OWNER",
        **common,
    )


async def _family_account(db: AsyncSession, family_id: Optional[str]) -> tuple[Optional[Family], Optional[Account]]:
    if not family_id:
        return None, None
    family = await db.get(Family, family_id)
    if family is None or not family.account_id:
        return family, None
    return family, await db.get(Account, family.account_id)


async def resolve_auth_context(request: Request, db: AsyncSession, token: Optional[str]) -> AuthContext:
    """
    Resuelve la identidad de la petición:
      1. Bearer token (setup, cuenta, cuidador o sysadmin)
      2. cookie caretakerId
    Nunca lanza: devuelve authenticated=False con el motivo.
    """
    if token:
        if is_token_invalidated(token):
            return AuthContext(error="Token has been invalidated")
        try:
            payload = decode_token(token)
        except jwt.PyJWTError:
            return AuthContext(error="Invalid or expired token")

        if payload.get("isSetupAuth") and payload.get("setupToken"):
            return AuthContext(
                authenticated=True,
                caretaker_type="Setup",
                caretaker_role="ADMIN",
                is_setup_auth=True,
                setup_token=payload["setupToken"],
            )

        if payload.get("isAccountAuth"):
            return await _account_context(db, payload)

        is_sys_admin = bool(payload.get("isSysAdmin"))
        family_id = payload.get("familyId")
        plan = {}
        if family_id and not is_sys_admin:
            _, account = await _family_account(db, family_id)
            if account is not None and account.closed:
                return AuthContext(error="Family account is closed")
            plan = _plan_fields(account)

        return AuthContext(
            authenticated=True,
            caretaker_id=None if is_sys_admin else payload.get("id"),
            caretaker_type=payload.get("type"),
            caretaker_role=payload.get("role"),
            family_id=family_id,
            family_slug=payload.get("familySlug"),
            is_sys_admin=is_sys_admin,
            auth_type=payload.get("authType") or "CARETAKER",
            **plan,
        )

    caretaker_id = request.cookies.get(CARETAKER_COOKIE)
    if caretaker_id:
        caretaker = await db.scalar(
            select(Caretaker).where(Caretaker.id == caretaker_id, Caretaker.deleted_at.is_(None))
        )
        if caretaker is not None:
            family, account = await _family_account(db, caretaker.family_id)
            if account is not None and account.closed:
                return AuthContext(error="Family account is closed")
            return AuthContext(
                authenticated=True,
                caretaker_id=caretaker.id,
                caretaker_type=caretaker.type,
                caretaker_role=caretaker.role or "USER",
                family_id=caretaker.family_id,
                family_slug=family.slug if family else None,
                auth_type="CARETAKER",
                **_plan_fields(account),
            )

    return AuthContext(error="No valid authentication found")


async def get_auth_context(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    return await resolve_auth_context(request, db, creds.credentials if creds else None)


# =====================================================================
# GUARDS
# =====================================================================

async def get_current_user(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not ctx.authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return ctx


async def is_system_caretaker(db: AsyncSession, caretaker_id: Optional[str]) -> bool:
    if not caretaker_id:
        return False
    found = await db.scalar(
        select(Caretaker.id).where(
            Caretaker.id == caretaker_id,
            Caretaker.login_id == SYSTEM_LOGIN_ID,
            Caretaker.deleted_at.is_(None),
        )
    )
    return found is not None


async def require_admin(
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    if ctx.caretaker_role == "ADMIN" or ctx.is_sys_admin or ctx.is_account_owner:
        return ctx
    if await is_system_caretaker(db, ctx.caretaker_id):
        return ctx
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")


async def require_sysadmin(ctx: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not ctx.is_sys_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="System administrator access required")
    return ctx


async def require_account_owner(ctx: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not (ctx.is_account_owner or ctx.is_sys_admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account owner access required")
    return ctx


async def require_account(ctx: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not ctx.is_account_auth or not ctx.account_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account authentication required")
    return ctx


def check_write_permission(ctx: AuthContext) -> None:
    """Bloquea escrituras de familias con prueba o plan vencidos."""
    if not ctx.authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    if not ctx.is_expired:
        return

    if ctx.trial_ends:
        exp_type, date = "TRIAL_EXPIRED", ctx.trial_ends
    elif ctx.plan_expires:
        exp_type, date = "PLAN_EXPIRED", ctx.plan_expires
    else:
        exp_type, date = "NO_PLAN", None
    raise ApiError(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Your trial or plan has expired. Upgrade to keep adding records.",
        data={"expirationInfo": {"type": exp_type, "date": date, "familySlug": ctx.family_slug}},
    )


async def require_write(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    check_write_permission(ctx)
    return ctx


def require_family_id(ctx: AuthContext) -> str:
    if not ctx.family_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not associated with a family")
    return ctx.family_id


async def resolve_family_id(
    ctx: AuthContext,
    db: AsyncSession,
    requested_family_id: Optional[str],
) -> Optional[str]:
    """
    Familia objetivo de la petición. sysadmin y cuentas sin familia
    pueden elegirla con ?familyId=; un token de setup solo la que creó su invitación.
    """
    if ctx.family_id or not requested_family_id:
        return ctx.family_id
    if ctx.is_sys_admin or ctx.is_account_auth:
        return requested_family_id
    if ctx.is_setup_auth:
        invite = await db.scalar(select(FamilySetup).where(FamilySetup.token == ctx.setup_token))
        if invite is None or invite.family_id != requested_family_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Setup token is not valid for this family")
        return requested_family_id
    return ctx.family_id


async def require_target_family(
    ctx: AuthContext,
    db: AsyncSession,
    requested_family_id: Optional[str],
) -> str:
    """Familia destino para altas (cuidadores, bebés) desde el asistente de configuración."""
    family_id = await resolve_family_id(ctx, db, requested_family_id)
    if family_id:
        return family_id
    if ctx.is_sys_admin or ctx.is_setup_auth or ctx.is_account_auth:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="familyId must be provided as a query parameter or in the request body",
        )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not associated with a family")


async def family_scope(
    family_id: Optional[str] = Query(None, alias="familyId"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> str:
    """Familia de las lecturas; el sysadmin la elige con ?familyId=."""
    target = await resolve_family_id(ctx, db, family_id)
    if not target:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not associated with a family")
    return target
