from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import Medicine, utcnow
from app.schemas import AuthContext, MedicineCreate, MedicineUpdate, MedicineOut, ok
from app.services.permission_service import PermissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medicine", tags=["medicines"])


@router.get("")
async def list_medicines(
    id: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        medicine = await PermissionService.get_medicine_in_family(db, id, family_id)
        return ok(MedicineOut.model_validate(medicine))

    stmt = select(Medicine).where(Medicine.family_id == family_id, Medicine.deleted_at.is_(None))
    if active is not None:
        stmt = stmt.where(Medicine.active.is_(active))
    medicines = (await db.execute(stmt.order_by(Medicine.name))).scalars().all()
    return ok([MedicineOut.model_validate(m) for m in medicines])


@router.post("")
async def create_medicine(
    data: MedicineCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    medicine = Medicine(**data.model_dump(), family_id=family_id)
    db.add(medicine)
    await db.commit()
    await db.refresh(medicine)
    logger.info("Medicine created", extra={"medicine_id": medicine.id, "family_id": family_id})
    return ok(MedicineOut.model_validate(medicine))


@router.put("")
async def update_medicine(
    data: MedicineUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Medicine ID is required")
    medicine = await PermissionService.get_medicine_in_family(db, id, require_family_id(ctx))
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "active"):
            continue
        setattr(medicine, field, value)
    await db.commit()
    await db.refresh(medicine)
    return ok(MedicineOut.model_validate(medicine))


@router.delete("")
async def delete_medicine(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Medicine ID is required")
    medicine = await PermissionService.get_medicine_in_family(db, id, require_family_id(ctx))
    medicine.deleted_at = utcnow()
    await db.commit()
    return ok()
