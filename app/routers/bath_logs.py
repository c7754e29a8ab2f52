from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import BathLog
from app.schemas import AuthContext, BathLogCreate, BathLogUpdate, BathLogOut, ok
from app.services import log_service

router = APIRouter(prefix="/bath-log", tags=["bath-logs"])


@router.get("")
async def list_bath_logs(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        log = await log_service.get_log_or_404(db, BathLog, id, family_id)
        return ok(BathLogOut.model_validate(log))
    logs = await log_service.list_logs(db, BathLog, family_id, baby_id, start_date, end_date)
    return ok([BathLogOut.model_validate(log) for log in logs])


@router.post("")
async def create_bath_log(
    data: BathLogCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    log = await log_service.new_log(db, ctx, family_id, BathLog, data.model_dump())
    await db.commit()
    await db.refresh(log)
    return ok(BathLogOut.model_validate(log))


@router.put("")
async def update_bath_log(
    data: BathLogUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    log = await log_service.get_log_or_404(db, BathLog, id, family_id)
    log_service.apply_changes(log, data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(log)
    return ok(BathLogOut.model_validate(log))


@router.delete("")
async def delete_bath_log(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, BathLog, id, require_family_id(ctx))
    return ok()
