"""
Operaciones comunes de los registros de actividad (sueño, tomas, pañales...).
Todos los registros pertenecen a una familia y a un bebé de esa familia.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type

from fastapi import HTTPException, status
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import SleepLog, PumpLog, Milestone, Measurement
from app.schemas import AuthContext
from app.services.permission_service import PermissionService
from app.services.timezone import to_utc

logger = logging.getLogger(__name__)

TIME_FIELDS = ("time", "start_time", "end_time", "date")
# No se pueden cambiar con PUT
IMMUTABLE_FIELDS = ("id", "family_id", "baby_id", "caretaker_id", "medicine_id")


def time_column(model: Type[Any]):
    """Columna por la que se filtra y ordena cada tipo de registro."""
    if model in (SleepLog, PumpLog):
        return model.start_time
    if model in (Milestone, Measurement):
        return model.date
    return model.time


def normalise_times(values: Dict[str, Any]) -> Dict[str, Any]:
    for field in TIME_FIELDS:
        if values.get(field) is not None:
            values[field] = to_utc(values[field])
    return values


def parse_range(start_date: Optional[str], end_date: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Solo se filtra por fechas cuando llegan las dos."""
    if not start_date or not end_date:
        return None, None
    return to_utc(start_date), to_utc(end_date)


def sleep_overlap(start: datetime, end: datetime):
    """Sueños que empiezan, terminan o abarcan el rango."""
    return or_(
        and_(SleepLog.start_time >= start, SleepLog.start_time <= end),
        and_(SleepLog.end_time.is_not(None), SleepLog.end_time >= start, SleepLog.end_time <= end),
        and_(SleepLog.start_time <= start, SleepLog.end_time.is_not(None), SleepLog.end_time >= end),
    )


# ---------- Lecturas ----------

async def get_log_or_404(db: AsyncSession, model: Type[Any], log_id: Optional[str], family_id: str):
    log = None
    if log_id:
        log = await db.scalar(select(model).where(model.id == log_id, model.family_id == family_id))
    if log is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    return log


async def list_logs(
    db: AsyncSession,
    model: Type[Any],
    family_id: str,
    baby_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: Optional[int] = None,
    extra: Iterable[Any] = (),
) -> List[Any]:
    column = time_column(model)
    stmt = select(model).where(model.family_id == family_id, *extra)
    if baby_id:
        stmt = stmt.where(model.baby_id == baby_id)

    start, end = parse_range(start_date, end_date)
    if start is not None:
        if model is SleepLog:
            stmt = stmt.where(sleep_overlap(start, end))
        else:
            stmt = stmt.where(column >= start, column <= end)

    stmt = stmt.order_by(column.desc())
    if limit:
        stmt = stmt.limit(limit)
    return list((await db.execute(stmt)).scalars().all())


# ---------- Escrituras ----------

async def new_log(db: AsyncSession, ctx: AuthContext, family_id: str, model: Type[Any], values: Dict[str, Any]):
    """Crea el registro comprobando que el bebé es de la familia. El commit lo hace quien llama."""
    await PermissionService.get_baby_in_family(db, values.get("baby_id"), family_id)
    log = model(**normalise_times(values), family_id=family_id, caretaker_id=ctx.real_caretaker_id)
    db.add(log)
    return log


def apply_changes(log: Any, changes: Dict[str, Any]) -> Any:
    for field, value in normalise_times(changes).items():
        if field in IMMUTABLE_FIELDS:
            continue
        setattr(log, field, value)
    return log


async def delete_log(db: AsyncSession, model: Type[Any], log_id: Optional[str], family_id: str) -> None:
    if not log_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    log = await get_log_or_404(db, model, log_id, family_id)
    await db.delete(log)
    await db.commit()
    logger.info("Activity record deleted", extra={"table": model.__tablename__, "record_id": log_id})
