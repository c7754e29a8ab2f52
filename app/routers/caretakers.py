from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, get_current_user, check_write_permission, require_family_id, require_target_family, resolve_family_id
from app.models import Caretaker, SYSTEM_LOGIN_ID, SYSTEM_CARETAKER_TYPE, utcnow
from app.schemas import AuthContext, CaretakerCreate, CaretakerUpdate, CaretakerOut, ok
from app.services.permission_service import PermissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/caretaker", tags=["caretakers"])


# -------------------- Helper Functions --------------------

def ensure_can_manage(ctx: AuthContext) -> None:
    check_write_permission(ctx)
    if not PermissionService.can_manage_caretakers(ctx):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only administrators can manage caretakers")


async def get_caretaker_or_404(db: AsyncSession, caretaker_id: Optional[str], family_id: str) -> Caretaker:
    caretaker = None
    if caretaker_id:
        caretaker = await db.scalar(
            select(Caretaker).where(
                Caretaker.id == caretaker_id,
                Caretaker.family_id == family_id,
                Caretaker.deleted_at.is_(None),
            )
        )
    if caretaker is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Caretaker not found")
    return caretaker


# -------------------- Endpoints --------------------

@router.get("")
async def list_caretakers(
    id: Optional[str] = Query(None),
    family_id: Optional[str] = Query(None, alias="familyId"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await resolve_family_id(ctx, db, family_id)
    target = require_family_id(ctx.model_copy(update={"family_id": target}))

    if id:
        caretaker = await get_caretaker_or_404(db, id, target)
        return ok(CaretakerOut.model_validate(caretaker))

    caretakers = (await db.execute(
        select(Caretaker)
        .where(
            Caretaker.family_id == target,
            Caretaker.deleted_at.is_(None),
            Caretaker.login_id != SYSTEM_LOGIN_ID,
        )
        .order_by(Caretaker.name)
    )).scalars().all()
    return ok([CaretakerOut.model_validate(c) for c in caretakers])


@router.get("/system")
async def system_caretaker(
    family_id: Optional[str] = Query(None, alias="familyId"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cuidador "00" de la familia (el que usa el modo SYSTEM)."""
    target = require_family_id(ctx.model_copy(update={"family_id": await resolve_family_id(ctx, db, family_id)}))
    caretaker = await db.scalar(
        select(Caretaker).where(
            Caretaker.family_id == target,
            Caretaker.login_id == SYSTEM_LOGIN_ID,
            Caretaker.deleted_at.is_(None),
        )
    )
    if caretaker is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="System caretaker not found for this family")
    return ok(CaretakerOut.model_validate(caretaker))


@router.post("")
async def create_caretaker(
    data: CaretakerCreate,
    family_id: Optional[str] = Query(None, alias="familyId"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_can_manage(ctx)
    target = await require_target_family(ctx, db, data.family_id or family_id)

    if data.login_id == SYSTEM_LOGIN_ID or data.type == SYSTEM_CARETAKER_TYPE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The system caretaker cannot be created through this endpoint")
    await PermissionService.validate_login_id(db, target, data.login_id)

    caretaker = Caretaker(**data.model_dump(exclude={"family_id"}), family_id=target)
    db.add(caretaker)
    await db.commit()
    await db.refresh(caretaker)
    logger.info("Caretaker created", extra={"caretaker_id": caretaker.id, "family_id": target})
    return ok(CaretakerOut.model_validate(caretaker))


@router.put("")
async def update_caretaker(
    data: CaretakerUpdate,
    id: Optional[str] = Query(None),
    family_id: Optional[str] = Query(None, alias="familyId"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_can_manage(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Caretaker ID is required")
    target = await require_target_family(ctx, db, family_id)
    caretaker = await get_caretaker_or_404(db, id, target)

    changes = data.model_dump(exclude_unset=True)
    if caretaker.is_system:
        # El "00" solo cambia su PIN desde la configuración de la familia
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The system caretaker cannot be modified through this endpoint")
    if changes.get("type") == SYSTEM_CARETAKER_TYPE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The system caretaker cannot be created through this endpoint")
    if changes.get("login_id") and changes["login_id"] != caretaker.login_id:
        await PermissionService.validate_login_id(db, target, changes["login_id"], exclude_caretaker_id=caretaker.id)

    for field, value in changes.items():
        setattr(caretaker, field, value)
    await db.commit()
    await db.refresh(caretaker)
    return ok(CaretakerOut.model_validate(caretaker))


@router.delete("")
async def delete_caretaker(
    id: Optional[str] = Query(None),
    family_id: Optional[str] = Query(None, alias="familyId"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_can_manage(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Caretaker ID is required")
    target = await require_target_family(ctx, db, family_id)
    caretaker = await get_caretaker_or_404(db, id, target)
    if caretaker.is_system:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The system caretaker cannot be deleted")

    caretaker.deleted_at = utcnow()
    await db.commit()
    logger.info("Caretaker deleted", extra={"caretaker_id": caretaker.id, "family_id": target})
    return ok()
