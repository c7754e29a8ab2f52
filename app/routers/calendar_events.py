from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import CalendarEvent, utcnow
from app.schemas import AuthContext, CalendarEventCreate, CalendarEventUpdate, CalendarEventType, ok
from app.services import calendar_service
from app.services.log_service import parse_range
from app.services.timezone import to_utc
from app.services.permission_service import PermissionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["calendar"])

PARTICIPANT_FIELDS = ("baby_ids", "caretaker_ids", "contact_ids")
EVENT_TIME_FIELDS = ("start_time", "end_time", "recurrence_end")


# -------------------- Helper Functions --------------------

async def get_event_or_404(db: AsyncSession, event_id: Optional[str], family_id: str) -> CalendarEvent:
    event = None
    if event_id:
        event = await db.scalar(
            select(CalendarEvent).where(
                CalendarEvent.id == event_id,
                CalendarEvent.family_id == family_id,
                CalendarEvent.deleted_at.is_(None),
            )
        )
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Calendar event not found")
    return event


def _event_values(values: dict) -> dict:
    for field in EVENT_TIME_FIELDS:
        if values.get(field) is not None:
            values[field] = to_utc(values[field])
    return values


def _check_recurrence(recurring: bool, pattern: Optional[str], custom: Optional[str]) -> None:
    if not recurring:
        return
    if not pattern:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Recurring events need a recurrence pattern")
    if pattern == "CUSTOM" and not custom:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Custom recurrence needs a description")


async def _one_payload(db: AsyncSession, event: CalendarEvent):
    return (await calendar_service.to_payloads(db, [event]))[0]


# -------------------- Eventos --------------------

@router.get("/calendar-event")
async def list_events(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    caretaker_id: Optional[str] = Query(None, alias="caretakerId"),
    contact_id: Optional[str] = Query(None, alias="contactId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    type: Optional[str] = Query(None),
    recurring: Optional[bool] = Query(None),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        return ok(await _one_payload(db, await get_event_or_404(db, id, family_id)))
    if baby_id:
        await PermissionService.get_baby_in_family(db, baby_id, family_id)

    stmt = select(CalendarEvent).where(
        CalendarEvent.family_id == family_id,
        CalendarEvent.deleted_at.is_(None),
        *calendar_service.participant_filter(baby_id, caretaker_id, contact_id),
    )
    start, end = parse_range(start_date, end_date)
    if start is not None:
        stmt = stmt.where(CalendarEvent.start_time >= start, CalendarEvent.start_time <= end)
    # Un tipo desconocido no filtra
    if type in CalendarEventType.__args__:
        stmt = stmt.where(CalendarEvent.type == type)
    if recurring is not None:
        stmt = stmt.where(CalendarEvent.recurring.is_(recurring))

    events = (await db.execute(stmt.order_by(CalendarEvent.start_time))).scalars().all()
    return ok(await calendar_service.to_payloads(db, events))


@router.post("/calendar-event", status_code=status.HTTP_201_CREATED)
async def create_event(
    data: CalendarEventCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    _check_recurrence(data.recurring, data.recurrence_pattern, data.custom_recurrence)
    await calendar_service.validate_participants(db, family_id, data.baby_ids, data.caretaker_ids, data.contact_ids)

    values = _event_values(data.model_dump(exclude=set(PARTICIPANT_FIELDS)))
    event = CalendarEvent(**values, family_id=family_id, notification_sent=False)
    db.add(event)
    await db.flush()
    await calendar_service.set_participants(db, event.id, data.baby_ids, data.caretaker_ids, data.contact_ids)
    await db.commit()
    await db.refresh(event)
    logger.info("Calendar event created", extra={"event_id": event.id, "family_id": family_id})
    return ok(await _one_payload(db, event))


@router.put("/calendar-event")
async def update_event(
    data: CalendarEventUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Calendar event ID is required")
    family_id = require_family_id(ctx)
    event = await get_event_or_404(db, id, family_id)

    changes = data.model_dump(exclude_unset=True)
    participants = {field: changes.pop(field) for field in PARTICIPANT_FIELDS if field in changes}
    await calendar_service.validate_participants(db, family_id, **participants)

    for field, value in _event_values(changes).items():
        if value is None and field in ("title", "start_time", "all_day", "type", "recurring"):
            continue
        setattr(event, field, value)
    _check_recurrence(event.recurring, event.recurrence_pattern, event.custom_recurrence)

    await calendar_service.set_participants(db, event.id, **participants)
    await db.commit()
    await db.refresh(event)
    return ok(await _one_payload(db, event))


@router.delete("/calendar-event")
async def delete_event(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Calendar event ID is required")
    event = await get_event_or_404(db, id, require_family_id(ctx))
    event.deleted_at = utcnow()
    await db.commit()
    logger.info("Calendar event deleted", extra={"event_id": event.id})
    return ok()


# -------------------- Próximos eventos --------------------

@router.get("/baby-upcoming-events")
async def baby_upcoming_events(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    limit: int = Query(calendar_service.DEFAULT_UPCOMING_LIMIT, ge=1, le=100),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if not baby_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Baby ID is required")
    await PermissionService.get_baby_in_family(db, baby_id, family_id)
    return ok(await calendar_service.upcoming_events(db, family_id, baby_id, limit))
