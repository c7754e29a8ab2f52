from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import Medicine, MedicineLog
from app.schemas import (
    AuthContext, ActiveDoseOut, MedicineLogCreate, MedicineLogUpdate, MedicineLogOut, ok,
)
from app.services import log_service, medicine_service
from app.services.permission_service import PermissionService

router = APIRouter(prefix="/medicine-log", tags=["medicine-logs"])


async def _medicine_names(db: AsyncSession, medicine_ids) -> Dict[str, str]:
    ids = set(medicine_ids)
    if not ids:
        return {}
    rows = await db.execute(select(Medicine.id, Medicine.name).where(Medicine.id.in_(ids)))
    return {medicine_id: name for medicine_id, name in rows}


def _out(log: MedicineLog, names: Dict[str, str]) -> MedicineLogOut:
    return MedicineLogOut.model_validate(log).model_copy(update={"medicine_name": names.get(log.medicine_id)})


@router.get("/active")
async def active_doses(
    baby_id: str = Query(..., alias="babyId"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    """Dosis de las últimas 24 horas y si ya es seguro repetir."""
    await PermissionService.get_baby_in_family(db, baby_id, family_id)
    doses = await medicine_service.active_doses(db, family_id, baby_id)
    return ok([ActiveDoseOut.model_validate(dose) for dose in doses])


@router.get("")
async def list_medicine_logs(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    medicine_id: Optional[str] = Query(None, alias="medicineId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        log = await log_service.get_log_or_404(db, MedicineLog, id, family_id)
        return ok(_out(log, await _medicine_names(db, [log.medicine_id])))

    extra = [MedicineLog.medicine_id == medicine_id] if medicine_id else []
    logs = await log_service.list_logs(db, MedicineLog, family_id, baby_id, start_date, end_date, extra=extra)
    names = await _medicine_names(db, (log.medicine_id for log in logs))
    return ok([_out(log, names) for log in logs])


@router.post("")
async def create_medicine_log(
    data: MedicineLogCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    medicine = await PermissionService.get_medicine_in_family(db, data.medicine_id, family_id)

    values = data.model_dump()
    if not values.get("unit_abbr"):
        values["unit_abbr"] = medicine.unit_abbr
    log = await log_service.new_log(db, ctx, family_id, MedicineLog, values)
    await db.commit()
    await db.refresh(log)
    return ok(_out(log, {medicine.id: medicine.name}))


@router.put("")
async def update_medicine_log(
    data: MedicineLogUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    log = await log_service.get_log_or_404(db, MedicineLog, id, family_id)
    log_service.apply_changes(log, data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(log)
    return ok(_out(log, await _medicine_names(db, [log.medicine_id])))


@router.delete("")
async def delete_medicine_log(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, MedicineLog, id, require_family_id(ctx))
    return ok()
