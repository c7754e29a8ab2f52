from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, family_scope
from app.models import (
    Caretaker, Medicine,
    SleepLog, FeedLog, DiaperLog, BathLog, PumpLog, Note, Milestone, Measurement, MedicineLog,
)
from app.schemas import (
    ActivityKind, SleepLogOut, FeedLogOut, DiaperLogOut, BathLogOut, PumpLogOut, NoteOut, MilestoneOut,
    MeasurementOut, MedicineLogOut, LastActivitiesOut, LastMeasurements, ok,
)
from app.services import log_service
from app.services.permission_service import PermissionService
from app.services.timezone import ensure_utc

router = APIRouter(tags=["timeline"])

DEFAULT_LIMIT = 200

# (tipo, modelo, esquema de salida)
ACTIVITY_TYPES = [
    ("sleep", SleepLog, SleepLogOut),
    ("feed", FeedLog, FeedLogOut),
    ("diaper", DiaperLog, DiaperLogOut),
    ("bath", BathLog, BathLogOut),
    ("pump", PumpLog, PumpLogOut),
    ("note", Note, NoteOut),
    ("milestone", Milestone, MilestoneOut),
    ("measurement", Measurement, MeasurementOut),
    ("medicine", MedicineLog, MedicineLogOut),
]


# -------------------- Helper Functions --------------------

async def _names(db: AsyncSession, model, ids: Iterable[Optional[str]]) -> Dict[str, str]:
    wanted = {i for i in ids if i}
    if not wanted:
        return {}
    rows = await db.execute(select(model.id, model.name).where(model.id.in_(wanted)))
    return {row_id: name for row_id, name in rows}


def _entry(kind: ActivityKind, log: Any, out_schema, caretakers: Dict[str, str], medicines: Dict[str, str]) -> Dict[str, Any]:
    """Registro serializado en camelCase con kind y caretakerName."""
    entry = out_schema.model_validate(log).model_dump(by_alias=True, mode="json")
    entry["kind"] = kind
    entry["caretakerName"] = caretakers.get(log.caretaker_id)
    if kind == "medicine":
        entry["medicineName"] = medicines.get(log.medicine_id)
    return entry


async def _require_baby(db: AsyncSession, baby_id: Optional[str], family_id: str) -> None:
    if not baby_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Baby ID is required")
    await PermissionService.get_baby_in_family(db, baby_id, family_id)


# -------------------- Endpoints --------------------

@router.get("/timeline")
async def timeline(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    """
    Todas las actividades del bebé, de la más reciente a la más antigua.
    Con rango de fechas completo no se aplica el límite.
    """
    await _require_baby(db, baby_id, family_id)
    has_range = bool(start_date and end_date)

    found: List[tuple] = []
    for kind, model, out_schema in ACTIVITY_TYPES:
        logs = await log_service.list_logs(
            db, model, family_id, baby_id, start_date, end_date,
            limit=None if has_range else limit,
        )
        found.extend((kind, log, out_schema) for log in logs)

    found.sort(key=lambda item: ensure_utc(item[1].activity_time), reverse=True)
    if not has_range:
        found = found[:limit]

    caretakers = await _names(db, Caretaker, (log.caretaker_id for _, log, _ in found))
    medicines = await _names(db, Medicine, (log.medicine_id for kind, log, _ in found if kind == "medicine"))
    return ok([_entry(kind, log, out_schema, caretakers, medicines) for kind, log, out_schema in found])


@router.get("/baby-last-activities")
async def baby_last_activities(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    await _require_baby(db, baby_id, family_id)

    async def latest(model, *conditions):
        column = log_service.time_column(model)
        return await db.scalar(
            select(model)
            .where(model.family_id == family_id, model.baby_id == baby_id, *conditions)
            .order_by(column.desc())
            .limit(1)
        )

    last_diaper = await latest(DiaperLog)
    last_poop = await latest(DiaperLog, DiaperLog.type.in_(("DIRTY", "BOTH")))
    last_bath = await latest(BathLog)
    last_note = await latest(Note)
    height = await latest(Measurement, Measurement.type == "HEIGHT")
    weight = await latest(Measurement, Measurement.type == "WEIGHT")
    head = await latest(Measurement, Measurement.type == "HEAD_CIRCUMFERENCE")

    logs = [last_diaper, last_poop, last_bath, last_note, height, weight, head]
    caretakers = await _names(db, Caretaker, (log.caretaker_id for log in logs if log is not None))

    def entry(kind, log, out_schema):
        return _entry(kind, log, out_schema, caretakers, {}) if log is not None else None

    return ok(LastActivitiesOut(
        last_diaper=entry("diaper", last_diaper, DiaperLogOut),
        last_poop_diaper=entry("diaper", last_poop, DiaperLogOut),
        last_bath=entry("bath", last_bath, BathLogOut),
        last_measurements=LastMeasurements(
            height=entry("measurement", height, MeasurementOut),
            weight=entry("measurement", weight, MeasurementOut),
            head_circumference=entry("measurement", head, MeasurementOut),
        ),
        last_note=entry("note", last_note, NoteOut),
    ))
