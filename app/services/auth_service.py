"""
Emisión de tokens por tipo de identidad y utilidades de login.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import Account, AppConfig, Caretaker, Family
from app.security import create_access_token, decrypt, is_encrypted
from app.services.account_service import plan_claims
from app.services.ip_lockout import get_client_ip, login_lockout, remaining_minutes
from app.services.seed import DEFAULT_ADMIN_PASS

logger = logging.getLogger(__name__)

SYSADMIN_ID = "sysadmin"
CARETAKER_COOKIE = "caretakerId"


# ---------- Tokens ----------

def sysadmin_token() -> str:
    return create_access_token({
        "id": SYSADMIN_ID,
        "name": "System Administrator",
        "type": "SYSADMIN",
        "role": "SYSADMIN",
        "isSysAdmin": True,
    })


def caretaker_token(caretaker: Caretaker, family: Optional[Family], account: Optional[Account], auth_type: str) -> str:
    return create_access_token({
        "id": caretaker.id,
        "name": caretaker.name,
        "type": caretaker.type,
        "role": caretaker.role,
        "familyId": caretaker.family_id,
        "familySlug": family.slug if family else None,
        "authType": auth_type,
        "isAccountAuth": False,
        **plan_claims(account),
    })


def setup_token(token: str, expires_seconds: Optional[int] = None) -> str:
    return create_access_token({
        "id": f"setup-{token}",
        "name": "Setup",
        "type": "Setup",
        "role": "ADMIN",
        "isSetupAuth": True,
        "setupToken": token,
    }, expires_seconds)


def account_token(account: Account, family: Optional[Family], caretaker: Optional[Caretaker]) -> str:
    claims = {
        "accountId": account.id,
        "accountEmail": account.email,
        "isAccountAuth": True,
        "familyId": family.id if family else None,
        "familySlug": family.slug if family else None,
        "verified": account.verified,
        **plan_claims(account),
    }
    if caretaker is not None:
        claims.update(caretakerId=caretaker.id, caretakerRole=caretaker.role, caretakerType=caretaker.type)
    return create_access_token(claims, settings.account_auth_life)


def set_caretaker_cookie(response: Response, caretaker_id: str) -> None:
    response.set_cookie(
        CARETAKER_COOKIE,
        caretaker_id,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        max_age=settings.auth_life,
        path="/",
    )


# ---------- Lockout ----------

def enforce_ip_lockout(request: Request) -> str:
    """429 si la IP está bloqueada; devuelve la IP para registrar intentos."""
    ip = get_client_ip(request)
    locked, seconds = login_lockout.check(ip)
    if locked:
        minutes = remaining_minutes(seconds)
        logger.warning("Login blocked by IP lockout", extra={"ip": ip, "minutes": minutes})
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many failed attempts. Try again in {minutes} minute(s).",
        )
    return ip


def fail_login(ip: str, detail: str = "Invalid credentials") -> HTTPException:
    login_lockout.record_failure(ip)
    logger.warning("Failed login attempt", extra={"ip": ip})
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_admin_password(db: AsyncSession) -> str:
    """Contraseña de sysadmin: AppConfig.admin_pass (descifrada) o "admin"."""
    config = await db.scalar(select(AppConfig).limit(1))
    if config is None or not config.admin_pass:
        return DEFAULT_ADMIN_PASS
    if is_encrypted(config.admin_pass):
        try:
            return decrypt(config.admin_pass)
        except ValueError:
            logger.error("Unable to decrypt admin password")
            return DEFAULT_ADMIN_PASS
    return config.admin_pass
