from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import Measurement
from app.schemas import AuthContext, MeasurementCreate, MeasurementUpdate, MeasurementOut, MeasurementType, ok
from app.services import log_service

router = APIRouter(prefix="/measurement-log", tags=["measurements"])


@router.get("")
async def list_measurements(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    type: Optional[MeasurementType] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        measurement = await log_service.get_log_or_404(db, Measurement, id, family_id)
        return ok(MeasurementOut.model_validate(measurement))

    extra = [Measurement.type == type] if type else []
    measurements = await log_service.list_logs(
        db, Measurement, family_id, baby_id, start_date, end_date, extra=extra
    )
    return ok([MeasurementOut.model_validate(m) for m in measurements])


@router.post("")
async def create_measurement(
    data: MeasurementCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    measurement = await log_service.new_log(db, ctx, family_id, Measurement, data.model_dump())
    await db.commit()
    await db.refresh(measurement)
    return ok(MeasurementOut.model_validate(measurement))


@router.put("")
async def update_measurement(
    data: MeasurementUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    measurement = await log_service.get_log_or_404(db, Measurement, id, family_id)
    log_service.apply_changes(measurement, data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(measurement)
    return ok(MeasurementOut.model_validate(measurement))


@router.delete("")
async def delete_measurement(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, Measurement, id, require_family_id(ctx))
    return ok()
