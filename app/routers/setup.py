from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.deps import get_db, get_current_user
from app.models import Account, Family, FamilySetup
from app.schemas import AuthContext, FamilyOut, SetupAuthRequest, SetupStartRequest, ok
from app.security import verify_password
from app.services import auth_service, family_service
from app.services.slug import validate_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/setup", tags=["setup"])


# -------------------- Helper Functions --------------------

async def get_open_invite_or_error(db: AsyncSession, token: Optional[str]) -> FamilySetup:
    """Invitación vigente y sin usar: 404 si no existe, 410 si expiró, 409 si ya se usó."""
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is required")
    invite = await db.scalar(select(FamilySetup).where(FamilySetup.token == token))
    if invite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid setup token")
    if invite.is_expired():
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Setup token has expired")
    if invite.is_used:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Setup token has already been used")
    return invite


async def _ensure_slug_free(db: AsyncSession, slug: str) -> None:
    if await family_service.slug_taken(db, slug):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This family URL is already in use")


# -------------------- Invitación --------------------

@router.post("/validate-token")
async def validate_token(token: Optional[str] = Body(None, embed=True), db: AsyncSession = Depends(get_db)):
    await get_open_invite_or_error(db, token)
    return ok({"valid": True, "requiresPassword": True})


@router.post("/authenticate")
async def authenticate(data: SetupAuthRequest, db: AsyncSession = Depends(get_db)):
    """Cambia token + contraseña de la invitación por un JWT de setup."""
    invite = await get_open_invite_or_error(db, data.token)
    if not verify_password(data.password, invite.password):
        logger.warning("Invalid setup password", extra={"token": data.token})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")
    return ok({"token": auth_service.setup_token(invite.token)})


# -------------------- Alta de la familia --------------------

@router.post("/start")
async def start_setup(
    data: SetupStartRequest,
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Crea la primera familia desde el asistente:
      - con token de invitación: nueva familia ligada a la invitación
      - con cuenta: familia de la cuenta (y prueba de 14 días en SaaS)
      - sysadmin o admin: nueva familia o renombra la familia por defecto
    """
    if not (ctx.is_sys_admin or ctx.is_setup_auth or ctx.is_account_auth or ctx.caretaker_role == "ADMIN"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    if not data.name or not data.slug:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Family name and slug are required")

    name = data.name.strip()
    slug = data.slug.strip().lower()
    valid, error = validate_slug(slug)
    if not valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    # ---------- Invitación ----------
    invite = None
    if data.token:
        if ctx.is_setup_auth and ctx.setup_token != data.token:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid setup token authentication")
        invite = await db.scalar(select(FamilySetup).where(FamilySetup.token == data.token))
        if invite is None or invite.is_expired() or invite.is_used:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired setup token")
    elif ctx.is_setup_auth:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired setup token")

    if invite is not None:
        await _ensure_slug_free(db, slug)
        family = await family_service.create_family(db, name, slug)
        invite.family_id = family.id

    # ---------- Cuenta ----------
    elif ctx.is_account_auth and ctx.account_id:
        await _ensure_slug_free(db, slug)
        if await db.scalar(select(Family.id).where(Family.account_id == ctx.account_id)) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Account already has a family")
        account = await db.get(Account, ctx.account_id)
        if account is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
        family = await family_service.create_family(db, name, slug, account_id=account.id)
        if settings.is_saas:
            family_service.start_trial_if_new(account)

    # ---------- Sysadmin / admin ----------
    else:
        await _ensure_slug_free(db, slug)
        families = (await db.execute(select(Family))).scalars().all()
        if (
            not data.is_new_family
            and len(families) == 1
            and families[0].slug == family_service.DEFAULT_FAMILY_SLUG
        ):
            family = await family_service.rename_family(db, families[0], name, slug)
        else:
            family = await family_service.create_family(db, name, slug)

    await db.commit()
    logger.info("Family setup completed", extra={"family_id": family.id, "slug": slug})
    return ok(FamilyOut.model_validate(family))
