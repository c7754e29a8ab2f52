from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import FeedLog
from app.schemas import AuthContext, FeedLogCreate, FeedLogUpdate, FeedLogOut, FeedType, ok
from app.services import log_service

router = APIRouter(prefix="/feed-log", tags=["feed-logs"])


@router.get("/last")
async def last_feed(
    baby_id: str = Query(..., alias="babyId"),
    type: Optional[FeedType] = Query(None),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    """Última toma del bebé, opcionalmente de un tipo concreto (data null si no hay)."""
    stmt = select(FeedLog).where(FeedLog.family_id == family_id, FeedLog.baby_id == baby_id)
    if type:
        stmt = stmt.where(FeedLog.type == type)
    log = await db.scalar(stmt.order_by(FeedLog.time.desc()).limit(1))
    return ok(FeedLogOut.model_validate(log) if log else None)


@router.get("")
async def list_feed_logs(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        log = await log_service.get_log_or_404(db, FeedLog, id, family_id)
        return ok(FeedLogOut.model_validate(log))
    logs = await log_service.list_logs(db, FeedLog, family_id, baby_id, start_date, end_date)
    return ok([FeedLogOut.model_validate(log) for log in logs])


@router.post("")
async def create_feed_log(
    data: FeedLogCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    log = await log_service.new_log(db, ctx, family_id, FeedLog, data.model_dump())
    await db.commit()
    await db.refresh(log)
    return ok(FeedLogOut.model_validate(log))


@router.put("")
async def update_feed_log(
    data: FeedLogUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    log = await log_service.get_log_or_404(db, FeedLog, id, family_id)
    log_service.apply_changes(log, data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(log)
    return ok(FeedLogOut.model_validate(log))


@router.delete("")
async def delete_feed_log(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, FeedLog, id, require_family_id(ctx))
    return ok()
