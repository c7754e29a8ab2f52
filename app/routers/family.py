from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import (
    get_db, get_current_user, require_admin, require_sysadmin, check_write_permission,
    require_family_id, resolve_family_id,
)
from app.models import Account, Baby, Caretaker, Family, FamilySetup, Settings, SYSTEM_LOGIN_ID, utcnow
from app.schemas import (
    AuthContext, CaretakerOut, FamilyOut, FamilyWithCounts, FamilyAccountStatus, FamilyBySlugOut, FamilyUpdate,
    FamilyManageCreate, FamilyManageUpdate, SetupLinkRequest, ok,
)
from app.security import hash_password, random_token
from app.services import family_service
from app.services.slug import validate_slug, generate_slug, generate_slug_with_number
from app.services.timezone import ensure_utc, format_for_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/family", tags=["family"])

SETUP_LINK_TTL = timedelta(days=7)
SETUP_TOKEN_ATTEMPTS = 10


# -------------------- Helper Functions --------------------

async def get_family_or_404(db: AsyncSession, family_id: Optional[str]) -> Family:
    family = await db.get(Family, family_id) if family_id else None
    if family is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Family not found")
    return family


def _check_slug(slug: Optional[str]) -> str:
    valid, error = validate_slug(slug)
    if not valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
    return slug


def account_status_for(account: Optional[Account]) -> Optional[FamilyAccountStatus]:
    """Estado del plan que ve la pantalla de login de la familia."""
    if account is None:
        return None
    if account.betaparticipant:
        return FamilyAccountStatus(is_expired=False, is_trial_expired=False, betaparticipant=True)

    now = utcnow()
    is_expired = is_trial_expired = False
    expiration_date = None
    if account.trial_ends:
        if now > ensure_utc(account.trial_ends):
            is_expired = is_trial_expired = True
            expiration_date = format_for_response(account.trial_ends)
    elif account.plan_expires:
        if now > ensure_utc(account.plan_expires):
            is_expired = True
            expiration_date = format_for_response(account.plan_expires)
    elif not account.plan_type:
        is_expired = True
    return FamilyAccountStatus(
        is_expired=is_expired,
        is_trial_expired=is_trial_expired,
        expiration_date=expiration_date,
        betaparticipant=False,
    )


async def _counts(db: AsyncSession, family_id: str) -> tuple[int, int]:
    caretakers = await db.scalar(
        select(func.count()).select_from(Caretaker).where(
            Caretaker.family_id == family_id,
            Caretaker.login_id != SYSTEM_LOGIN_ID,
            Caretaker.deleted_at.is_(None),
        )
    )
    babies = await db.scalar(
        select(func.count()).select_from(Baby).where(Baby.family_id == family_id, Baby.deleted_at.is_(None))
    )
    return caretakers or 0, babies or 0


# -------------------- Familia actual --------------------

@router.get("")
async def get_family(
    family_id: Optional[str] = Query(None, alias="familyId"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await resolve_family_id(ctx, db, family_id)
    ctx = ctx.model_copy(update={"family_id": target})
    family = await get_family_or_404(db, require_family_id(ctx))
    return ok(FamilyOut.model_validate(family))


@router.put("")
async def update_family(
    data: FamilyUpdate,
    ctx: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    check_write_permission(ctx)
    family = await get_family_or_404(db, require_family_id(ctx))
    if not data.name or not data.slug:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Family name and slug are required")
    slug = _check_slug(data.slug.strip().lower())
    if await family_service.slug_taken(db, slug, exclude_id=family.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This family URL is already in use")

    await family_service.rename_family(db, family, data.name.strip(), slug)
    await db.commit()
    logger.info("Family updated", extra={"family_id": family.id, "slug": slug})
    return ok(FamilyOut.model_validate(family))


# -------------------- Público --------------------

@router.get("/by-slug/{slug}")
async def family_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    valid, error = validate_slug(slug)
    if not valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    family = await db.scalar(select(Family).where(Family.slug == slug))
    if family is None:
        return {"success": False, "data": None}

    account = await db.get(Account, family.account_id) if family.account_id else None
    out = FamilyBySlugOut.model_validate(family).model_copy(update={"account_status": account_status_for(account)})
    return ok(out)


@router.get("/public-list")
async def public_list(db: AsyncSession = Depends(get_db)):
    families = (await db.execute(
        select(Family).where(Family.is_active.is_(True)).order_by(Family.name)
    )).scalars().all()
    return ok([{"id": f.id, "name": f.name, "slug": f.slug} for f in families])


@router.get("/generate-slug")
async def generate_unique_slug(db: AsyncSession = Depends(get_db)):
    """10 intentos simples, 10 con número y un último con 6 dígitos."""
    candidates = [generate_slug() for _ in range(SETUP_TOKEN_ATTEMPTS)]
    candidates += [generate_slug_with_number() for _ in range(SETUP_TOKEN_ATTEMPTS)]
    candidates.append(generate_slug_with_number(6))
    for candidate in candidates:
        if not await family_service.slug_taken(db, candidate):
            return ok({"slug": candidate})
    logger.error("Could not generate a unique slug")
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to generate a unique slug")


# -------------------- Gestión (sysadmin) --------------------

@router.get("/manage")
async def list_families(
    _: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    families = (await db.execute(select(Family).order_by(Family.name))).scalars().all()
    items = []
    for family in families:
        caretakers, babies = await _counts(db, family.id)
        items.append(
            FamilyWithCounts.model_validate(family).model_copy(
                update={"caretaker_count": caretakers, "baby_count": babies}
            )
        )
    return ok(items)


@router.post("/manage")
async def create_family(
    data: FamilyManageCreate,
    _: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    if not data.name or not data.slug:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Family name and slug are required")
    slug = _check_slug(data.slug.strip().lower())
    if await family_service.slug_taken(db, slug):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This family URL is already in use")

    family = await family_service.create_family(
        db, data.name.strip(), slug, is_active=True if data.is_active is None else data.is_active
    )
    await db.commit()
    return ok(FamilyOut.model_validate(family))


@router.put("/manage")
async def update_managed_family(
    data: FamilyManageUpdate,
    _: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    if not data.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Family ID is required")
    family = await get_family_or_404(db, data.id)

    if data.slug is not None and data.slug != family.slug:
        slug = _check_slug(data.slug.strip().lower())
        if await family_service.slug_taken(db, slug, exclude_id=family.id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This family URL is already in use")
        family.slug = slug
    if data.name:
        family.name = data.name.strip()
        for row in (await db.execute(select(Settings).where(Settings.family_id == family.id))).scalars():
            row.family_name = family.name
    if data.is_active is not None:
        family.is_active = data.is_active

    await db.commit()
    return ok(FamilyOut.model_validate(family))


@router.post("/create-setup-link")
async def create_setup_link(
    data: SetupLinkRequest,
    ctx: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    if not data.password or len(data.password) < 6:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password must be at least 6 characters")

    token = None
    for _ in range(SETUP_TOKEN_ATTEMPTS):
        candidate = random_token(3)
        if await db.scalar(select(FamilySetup.id).where(FamilySetup.token == candidate)) is None:
            token = candidate
            break
    if token is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to generate a unique setup token")

    db.add(FamilySetup(
        token=token,
        password=hash_password(data.password),
        expires_at=utcnow() + SETUP_LINK_TTL,
        created_by=ctx.real_caretaker_id,
    ))
    await db.commit()
    logger.info("Setup link created", extra={"token": token})
    return ok({"setupUrl": f"/setup/{token}", "token": token})


@router.get("/{family_id}/caretakers")
async def family_caretakers(
    family_id: str,
    ctx: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    """Cuidadores de cualquier familia, para la pantalla de gestión."""
    if await db.get(Family, family_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Family not found")
    caretakers = (await db.execute(
        select(Caretaker)
        .where(Caretaker.family_id == family_id, Caretaker.deleted_at.is_(None))
        .order_by(Caretaker.login_id)
    )).scalars().all()
    return ok([CaretakerOut.model_validate(c) for c in caretakers])
