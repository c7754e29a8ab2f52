"""
Cálculo de intervalos mínimos entre dosis y de las dosis activas de un bebé.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Medicine, MedicineLog, utcnow
from app.services.timezone import ensure_utc, calculate_duration_minutes

logger = logging.getLogger(__name__)

# Intervalo por defecto si el medicamento no define uno (30 minutos)
DEFAULT_DOSE_MIN_TIME = "00:00:30"
ACTIVE_WINDOW = timedelta(hours=24)

_DAYS_RE = re.compile(r"(\d{1,2}):(\d{2}):(\d{2})")
_HOURS_RE = re.compile(r"(\d{2}):(\d{2})")


def parse_dose_min_time(value: Optional[str]) -> Optional[timedelta]:
    """
    "DD:HH:MM" -> timedelta; también acepta el formato antiguo "HH:MM".
    Devuelve None si el formato no es válido.
    """
    if not value:
        return None
    match = _DAYS_RE.fullmatch(value)
    if match:
        days, hours, minutes = (int(g) for g in match.groups())
        return timedelta(days=days, hours=hours, minutes=minutes)
    match = _HOURS_RE.fullmatch(value)
    if match:
        hours, minutes = (int(g) for g in match.groups())
        return timedelta(hours=hours, minutes=minutes)
    return None


def dose_status(last_dose: datetime, dose_min_time: Optional[str], now: Optional[datetime] = None) -> dict:
    """Próxima dosis segura a partir de la última toma."""
    now = now or utcnow()
    interval = parse_dose_min_time(dose_min_time or DEFAULT_DOSE_MIN_TIME)
    if interval is None:
        logger.warning("Invalid doseMinTime format", extra={"dose_min_time": dose_min_time})
        return {"next_dose_time": None, "is_safe": True, "minutes_remaining": 0}

    next_dose = ensure_utc(last_dose) + interval
    remaining = max(0, calculate_duration_minutes(now, next_dose)) if next_dose > now else 0
    return {
        "next_dose_time": next_dose,
        "is_safe": next_dose <= now,
        "minutes_remaining": remaining,
    }


async def active_doses(db: AsyncSession, family_id: str, baby_id: str, now: Optional[datetime] = None) -> List[dict]:
    """
    Por cada medicamento con dosis en las últimas 24 h devuelve la última
    dosis, el total administrado y cuándo se puede repetir.
    """
    now = now or utcnow()
    rows = (await db.execute(
        select(MedicineLog, Medicine)
        .join(Medicine, Medicine.id == MedicineLog.medicine_id)
        .where(
            MedicineLog.family_id == family_id,
            MedicineLog.baby_id == baby_id,
            MedicineLog.deleted_at.is_(None),
            MedicineLog.time >= now - ACTIVE_WINDOW,
        )
        .order_by(MedicineLog.time.desc())
    )).all()

    grouped: Dict[str, dict] = {}
    for log, medicine in rows:
        entry = grouped.get(medicine.id)
        if entry is None:
            # La primera fila de cada medicamento es la más reciente
            entry = {
                "medicine_id": medicine.id,
                "medicine_name": medicine.name,
                "last_dose_time": ensure_utc(log.time),
                "dose_amount": log.dose_amount,
                "unit_abbr": log.unit_abbr or medicine.unit_abbr,
                "total_in_24h": 0.0,
                "dose_min_time": medicine.dose_min_time or DEFAULT_DOSE_MIN_TIME,
                **dose_status(log.time, medicine.dose_min_time, now),
            }
            grouped[medicine.id] = entry
        entry["total_in_24h"] += log.dose_amount or 0

    return list(grouped.values())
