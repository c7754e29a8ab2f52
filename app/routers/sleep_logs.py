from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import SleepLog
from app.schemas import AuthContext, SleepLogCreate, SleepLogUpdate, SleepLogOut, ok
from app.services import log_service
from app.services.timezone import calculate_duration_minutes

router = APIRouter(prefix="/sleep-log", tags=["sleep-logs"])


def _refresh_duration(log: SleepLog) -> None:
    if log.start_time and log.end_time:
        log.duration = calculate_duration_minutes(log.start_time, log.end_time)


@router.get("")
async def list_sleep_logs(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    """Con startDate y endDate devuelve los sueños que se solapan con el rango."""
    if id:
        log = await log_service.get_log_or_404(db, SleepLog, id, family_id)
        return ok(SleepLogOut.model_validate(log))
    logs = await log_service.list_logs(db, SleepLog, family_id, baby_id, start_date, end_date)
    return ok([SleepLogOut.model_validate(log) for log in logs])


@router.post("")
async def create_sleep_log(
    data: SleepLogCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    log = await log_service.new_log(db, ctx, family_id, SleepLog, data.model_dump())
    _refresh_duration(log)
    await db.commit()
    await db.refresh(log)
    return ok(SleepLogOut.model_validate(log))


@router.put("")
async def update_sleep_log(
    data: SleepLogUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    log = await log_service.get_log_or_404(db, SleepLog, id, family_id)
    log_service.apply_changes(log, data.model_dump(exclude_unset=True))
    _refresh_duration(log)
    await db.commit()
    await db.refresh(log)
    return ok(SleepLogOut.model_validate(log))


@router.delete("")
async def delete_sleep_log(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, SleepLog, id, require_family_id(ctx))
    return ok()
