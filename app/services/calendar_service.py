"""
Eventos del calendario familiar: participantes, serialización y recurrencia.
"""
from __future__ import annotations

import calendar
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Baby, BabyEvent, CalendarEvent, Caretaker, CaretakerEvent, Contact, ContactEvent, utcnow
from app.schemas import CalendarEventOut, ContactOut, EventBaby, EventCaretaker
from app.services.timezone import ensure_utc

DEFAULT_UPCOMING_LIMIT = 5

# Patrones de intervalo fijo (días) y de calendario (meses)
STEP_DAYS = {"DAILY": 1, "WEEKLY": 7, "BIWEEKLY": 14}
STEP_MONTHS = {"MONTHLY": 1, "YEARLY": 12}


# ---------- Participantes ----------

async def _check_ids(db: AsyncSession, model, ids: Sequence[str], family_id: str, label: str) -> None:
    wanted = set(ids)
    if not wanted:
        return
    stmt = select(model.id).where(model.id.in_(wanted), model.family_id == family_id, model.deleted_at.is_(None))
    found = set((await db.execute(stmt)).scalars().all())
    if found != wanted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"One or more {label} not found in this family")


async def validate_participants(
    db: AsyncSession,
    family_id: str,
    baby_ids: Optional[Sequence[str]] = None,
    caretaker_ids: Optional[Sequence[str]] = None,
    contact_ids: Optional[Sequence[str]] = None,
) -> None:
    """Todos los participantes deben ser de la familia (404 si alguno no lo es)."""
    await _check_ids(db, Baby, baby_ids or (), family_id, "babies")
    await _check_ids(db, Caretaker, caretaker_ids or (), family_id, "caretakers")
    await _check_ids(db, Contact, contact_ids or (), family_id, "contacts")


async def set_participants(
    db: AsyncSession,
    event_id: str,
    baby_ids: Optional[Iterable[str]] = None,
    caretaker_ids: Optional[Iterable[str]] = None,
    contact_ids: Optional[Iterable[str]] = None,
) -> None:
    """Sustituye las listas indicadas; None deja la lista como estaba."""
    links = (
        (BabyEvent, "baby_id", baby_ids),
        (CaretakerEvent, "caretaker_id", caretaker_ids),
        (ContactEvent, "contact_id", contact_ids),
    )
    for model, field, ids in links:
        if ids is None:
            continue
        await db.execute(delete(model).where(model.event_id == event_id))
        for value in dict.fromkeys(ids):
            db.add(model(event_id=event_id, **{field: value}))


def participant_filter(baby_id: Optional[str], caretaker_id: Optional[str], contact_id: Optional[str]) -> list:
    conditions = []
    if baby_id:
        conditions.append(CalendarEvent.id.in_(select(BabyEvent.event_id).where(BabyEvent.baby_id == baby_id)))
    if caretaker_id:
        conditions.append(
            CalendarEvent.id.in_(select(CaretakerEvent.event_id).where(CaretakerEvent.caretaker_id == caretaker_id))
        )
    if contact_id:
        conditions.append(CalendarEvent.id.in_(select(ContactEvent.event_id).where(ContactEvent.contact_id == contact_id)))
    return conditions


# ---------- Serialización ----------

async def to_payloads(
    db: AsyncSession,
    events: Sequence[CalendarEvent],
    next_times: Optional[Dict[str, datetime]] = None,
) -> List[CalendarEventOut]:
    """Eventos con sus bebés, cuidadores y contactos (una consulta por tipo)."""
    ids = [event.id for event in events]
    if not ids:
        return []

    babies: Dict[str, list] = defaultdict(list)
    rows = await db.execute(
        select(BabyEvent.event_id, Baby).join(Baby, Baby.id == BabyEvent.baby_id).where(BabyEvent.event_id.in_(ids))
    )
    for event_id, baby in rows.all():
        babies[event_id].append(EventBaby.model_validate(baby))

    caretakers: Dict[str, list] = defaultdict(list)
    rows = await db.execute(
        select(CaretakerEvent.event_id, Caretaker)
        .join(Caretaker, Caretaker.id == CaretakerEvent.caretaker_id)
        .where(CaretakerEvent.event_id.in_(ids))
    )
    for event_id, caretaker in rows.all():
        caretakers[event_id].append(EventCaretaker.model_validate(caretaker))

    contacts: Dict[str, list] = defaultdict(list)
    rows = await db.execute(
        select(ContactEvent.event_id, Contact)
        .join(Contact, Contact.id == ContactEvent.contact_id)
        .where(ContactEvent.event_id.in_(ids))
        .order_by(Contact.name)
    )
    for event_id, contact in rows.all():
        contacts[event_id].append(ContactOut.model_validate(contact))

    return [
        CalendarEventOut.model_validate(event).model_copy(update={
            "babies": babies[event.id],
            "caretakers": caretakers[event.id],
            "contacts": contacts[event.id],
            "contact_ids": [c.id for c in contacts[event.id]],
            "next_occurrence": (next_times or {}).get(event.id),
        })
        for event in events
    ]


# ---------- Recurrencia ----------

def add_months(value: datetime, months: int) -> datetime:
    """Suma meses conservando el día (31 -> último día del mes si no existe)."""
    index = value.month - 1 + months
    year, month = value.year + index // 12, index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_occurrence(event: CalendarEvent, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Primera ocurrencia en o después de `now`, o None si ya no habrá más.
    CUSTOM guarda la regla como texto: solo cuenta su start_time.
    """
    now = now or utcnow()
    start = ensure_utc(event.start_time)
    if start >= now:
        return start
    if not event.recurring:
        return None

    pattern = event.recurrence_pattern
    if pattern in STEP_DAYS:
        step = timedelta(days=STEP_DAYS[pattern])
        candidate = start + step * math.ceil((now - start) / step)
    elif pattern in STEP_MONTHS:
        months = STEP_MONTHS[pattern]
        n = max(((now.year - start.year) * 12 + now.month - start.month) // months, 0)
        candidate = add_months(start, n * months)
        while candidate < now:
            n += 1
            candidate = add_months(start, n * months)
    else:
        return None

    end = ensure_utc(event.recurrence_end)
    if end is not None and candidate > end:
        return None
    return candidate


async def upcoming_events(
    db: AsyncSession,
    family_id: str,
    baby_id: str,
    limit: int = DEFAULT_UPCOMING_LIMIT,
    now: Optional[datetime] = None,
) -> List[CalendarEventOut]:
    """Próximos eventos del bebé ordenados por su siguiente ocurrencia."""
    now = now or utcnow()
    stmt = (
        select(CalendarEvent)
        .where(
            CalendarEvent.family_id == family_id,
            CalendarEvent.deleted_at.is_(None),
            or_(CalendarEvent.start_time >= now, CalendarEvent.recurring.is_(True)),
            *participant_filter(baby_id, None, None),
        )
    )
    events = (await db.execute(stmt)).scalars().all()

    upcoming = []
    for event in events:
        when = next_occurrence(event, now)
        if when is not None:
            upcoming.append((when, event))
    upcoming.sort(key=lambda item: item[0])
    upcoming = upcoming[:limit]

    return await to_payloads(db, [event for _, event in upcoming], {event.id: when for when, event in upcoming})
