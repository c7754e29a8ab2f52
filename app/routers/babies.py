from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, get_current_user, require_write, require_family_id, require_target_family, resolve_family_id
from app.models import Baby, Family, utcnow
from app.schemas import AuthContext, BabyCreate, BabyUpdate, BabyOut, ok
from app.services.permission_service import PermissionService
from app.services.timezone import to_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/baby", tags=["babies"])


def _baby_from(data: BabyCreate, family_id: str) -> Baby:
    values = data.model_dump(exclude={"family_id"})
    values["birth_date"] = to_utc(values["birth_date"])
    return Baby(**values, family_id=family_id)


@router.get("")
async def list_babies(
    id: Optional[str] = Query(None),
    family_id: Optional[str] = Query(None, alias="familyId"),
    include_inactive: bool = Query(True, alias="includeInactive"),
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await resolve_family_id(ctx, db, family_id)
    target = require_family_id(ctx.model_copy(update={"family_id": target}))

    if id:
        baby = await PermissionService.get_baby_in_family(db, id, target)
        return ok(BabyOut.model_validate(baby))

    stmt = select(Baby).where(Baby.family_id == target, Baby.deleted_at.is_(None))
    if not include_inactive:
        stmt = stmt.where(Baby.inactive.is_(False))
    babies = (await db.execute(stmt.order_by(Baby.created_at.desc()))).scalars().all()
    return ok([BabyOut.model_validate(b) for b in babies])


@router.post("")
async def create_baby(
    data: BabyCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    baby = _baby_from(data, family_id)
    db.add(baby)
    await db.commit()
    await db.refresh(baby)
    logger.info("Baby created", extra={"baby_id": baby.id, "family_id": family_id})
    return ok(BabyOut.model_validate(baby))


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def create_baby_for_family(
    data: BabyCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    """Alta desde el asistente: sysadmin, setup y cuentas indican familyId."""
    family_id = await require_target_family(ctx, db, data.family_id)
    if await db.get(Family, family_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Family not found")

    baby = _baby_from(data, family_id)
    db.add(baby)
    await db.commit()
    await db.refresh(baby)
    logger.info("Baby created from setup", extra={"baby_id": baby.id, "family_id": family_id})
    return ok(BabyOut.model_validate(baby))


@router.put("")
async def update_baby(
    data: BabyUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Baby ID is required")
    baby = await PermissionService.get_baby_in_family(db, id, require_family_id(ctx))

    changes = data.model_dump(exclude_unset=True)
    if changes.get("birth_date") is not None:
        changes["birth_date"] = to_utc(changes["birth_date"])
    for field, value in changes.items():
        if value is None and field in ("first_name", "last_name", "birth_date", "inactive"):
            continue
        setattr(baby, field, value)
    await db.commit()
    await db.refresh(baby)
    return ok(BabyOut.model_validate(baby))


@router.delete("")
async def delete_baby(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Baby ID is required")
    baby = await PermissionService.get_baby_in_family(db, id, require_family_id(ctx))
    baby.deleted_at = utcnow()
    await db.commit()
    logger.info("Baby deleted", extra={"baby_id": baby.id})
    return ok()
