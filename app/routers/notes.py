from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import Note
from app.schemas import AuthContext, NoteCreate, NoteUpdate, NoteOut, ok
from app.services import log_service

router = APIRouter(prefix="/note", tags=["notes"])


@router.get("")
async def list_notes(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    categories: bool = Query(False),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    """?categories=true devuelve las categorías usadas por la familia."""
    if categories:
        rows = await db.execute(
            select(Note.category)
            .where(Note.family_id == family_id, Note.category.is_not(None), Note.category != "")
            .distinct()
            .order_by(Note.category)
        )
        return ok([row[0] for row in rows])

    if id:
        note = await log_service.get_log_or_404(db, Note, id, family_id)
        return ok(NoteOut.model_validate(note))
    notes = await log_service.list_logs(db, Note, family_id, baby_id, start_date, end_date)
    return ok([NoteOut.model_validate(note) for note in notes])


@router.post("")
async def create_note(
    data: NoteCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    note = await log_service.new_log(db, ctx, family_id, Note, data.model_dump())
    await db.commit()
    await db.refresh(note)
    return ok(NoteOut.model_validate(note))


@router.put("")
async def update_note(
    data: NoteUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record ID is required")
    note = await log_service.get_log_or_404(db, Note, id, family_id)
    log_service.apply_changes(note, data.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(note)
    return ok(NoteOut.model_validate(note))


@router.delete("")
async def delete_note(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    await log_service.delete_log(db, Note, id, require_family_id(ctx))
    return ok()
