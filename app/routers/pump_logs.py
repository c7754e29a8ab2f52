from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import PumpLog
from app.schemas import AuthContext, PumpLogCreate, PumpLogUpdate, PumpLogOut, ok
from app.services import log_service
from app.services.timezone import calculate_duration_minutes

router = APIRouter(prefix="/pump-log", tags=["pump-logs"])


def _fill_totals(values: dict) -> dict:
    # totalAmount = izquierda + derecha si no se indica
    if values.get("total_amount") is None and (
        values.get("left_amount") is not None or values.get("right_amount") is not None
    ):
        values["total_amount"] = (values.get("left_amount") or 0) + (values.get("right_amount") or 0)
    if values.get("duration") is None and values.get("start_time") and values.get("end_time"):
        values["duration"] = calculate_duration_minutes(values["start_time"], values["end_time"])
    return values


@router.get("")
async def list_pump_logs(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        log = await log_service.get_log_or_404(db, PumpLog, id, family_id)
        return ok(PumpLogOut.model_validate(log))
    logs = await log_service.list_logs(db, PumpLog, family_id, baby_id, start_date, end_date)
    return ok([PumpLogOut.model_validate(log) for log in logs])


@router.post("")
async def create_pump_log(
    data: PumpLogCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    log = await log_service.new_log(db, ctx, family_id, PumpLog, _fill_totals(data.model_dump()))
    await db.commit()
    await db.refresh(log)
    return ok(PumpLogOut.model_validate(log))


@router.put("")
async def update_pump_log(
    data: PumpLogUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    log = await log_service.get_log_or_404(db, PumpLog, id, family_id)

    changes = data.model_dump(exclude_unset=True)
    if "total_amount" not in changes and ("left_amount" in changes or "right_amount" in changes):
        merged = {
            "left_amount": changes.get("left_amount", log.left_amount),
            "right_amount": changes.get("right_amount", log.right_amount),
        }
        changes["total_amount"] = _fill_totals(merged).get("total_amount")
    log_service.apply_changes(log, changes)
    await db.commit()
    await db.refresh(log)
    return ok(PumpLogOut.model_validate(log))


@router.delete("")
async def delete_pump_log(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, PumpLog, id, require_family_id(ctx))
    return ok()
