from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import Contact, utcnow
from app.schemas import AuthContext, ContactCreate, ContactOut, ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contacts"])


async def get_contact_or_404(db: AsyncSession, contact_id: Optional[str], family_id: str) -> Contact:
    contact = None
    if contact_id:
        contact = await db.scalar(
            select(Contact).where(
                Contact.id == contact_id,
                Contact.family_id == family_id,
                Contact.deleted_at.is_(None),
            )
        )
    if contact is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return contact


@router.get("")
async def list_contacts(
    id: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    if id:
        return ok(ContactOut.model_validate(await get_contact_or_404(db, id, family_id)))

    stmt = select(Contact).where(Contact.family_id == family_id, Contact.deleted_at.is_(None))
    if role:
        stmt = stmt.where(Contact.role == role)
    contacts = (await db.execute(stmt.order_by(Contact.name))).scalars().all()
    return ok([ContactOut.model_validate(c) for c in contacts])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contact(
    data: ContactCreate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    contact = Contact(**data.model_dump(), family_id=family_id)
    db.add(contact)
    await db.commit()
    await db.refresh(contact)
    logger.info("Contact created", extra={"contact_id": contact.id, "family_id": family_id})
    return ok(ContactOut.model_validate(contact))


@router.put("")
async def update_contact(
    data: ContactCreate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    """Sustituye el contacto completo: los campos opcionales que no llegan quedan vacíos."""
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Contact ID is required")
    contact = await get_contact_or_404(db, id, require_family_id(ctx))
    for field, value in data.model_dump().items():
        setattr(contact, field, value)
    await db.commit()
    await db.refresh(contact)
    return ok(ContactOut.model_validate(contact))


@router.delete("")
async def delete_contact(
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Contact ID is required")
    contact = await get_contact_or_404(db, id, require_family_id(ctx))
    contact.deleted_at = utcnow()
    await db.commit()
    return ok()
