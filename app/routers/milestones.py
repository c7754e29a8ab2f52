from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import Baby, Milestone
from app.schemas import AuthContext, MilestoneCreate, MilestoneUpdate, MilestoneOut, ok
from app.services import log_service
from app.services.permission_service import PermissionService
from app.services.timezone import to_utc

router = APIRouter(prefix="/milestone-log", tags=["milestones"])


def age_in_days(baby: Baby, date: datetime) -> int:
    """Días cumplidos por el bebé en la fecha del hito (nunca negativo)."""
    return max((to_utc(date) - to_utc(baby.birth_date)).days, 0)


@router.get("")
async def list_milestones(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        milestone = await log_service.get_log_or_404(db, Milestone, id, family_id)
        return ok(MilestoneOut.model_validate(milestone))
    milestones = await log_service.list_logs(db, Milestone, family_id, baby_id, start_date, end_date)
    return ok([MilestoneOut.model_validate(m) for m in milestones])


@router.post("")
async def create_milestone(
    data: MilestoneCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    baby = await PermissionService.get_baby_in_family(db, data.baby_id, family_id)

    values = data.model_dump()
    if values.get("age_in_days") is None:
        values["age_in_days"] = age_in_days(baby, values["date"])
    milestone = await log_service.new_log(db, ctx, family_id, Milestone, values)
    await db.commit()
    await db.refresh(milestone)
    return ok(MilestoneOut.model_validate(milestone))


@router.put("")
async def update_milestone(
    data: MilestoneUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    milestone = await log_service.get_log_or_404(db, Milestone, id, family_id)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("date") is not None and "age_in_days" not in changes:
        baby = await db.get(Baby, milestone.baby_id)
        if baby is not None:
            changes["age_in_days"] = age_in_days(baby, changes["date"])
    log_service.apply_changes(milestone, changes)
    await db.commit()
    await db.refresh(milestone)
    return ok(MilestoneOut.model_validate(milestone))


@router.delete("")
async def delete_milestone(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, Milestone, id, require_family_id(ctx))
    return ok()
