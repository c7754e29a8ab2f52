from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, get_current_user, require_admin
from app.models import Caretaker, Family, Feedback
from app.schemas import AuthContext, FeedbackCreate, FeedbackOut, FeedbackUpdate, ok
from app.services import email_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["feedback"])

ANONYMOUS_NAME = "Anonymous user"


async def _submitter(db: AsyncSession, ctx: AuthContext, data: FeedbackCreate) -> tuple[Optional[str], Optional[str]]:
    """Nombre y email del remitente: los del cuerpo ganan a los de la sesión."""
    name, email = data.submitter_name, data.submitter_email
    if ctx.is_account_auth and ctx.account_email:
        email = email or ctx.account_email
        name = name or ctx.account_email.split("@")[0]
    elif ctx.real_caretaker_id:
        caretaker = await db.get(Caretaker, ctx.real_caretaker_id)
        if caretaker is not None:
            name = name or caretaker.name
    return name or ANONYMOUS_NAME, email


def _visible_family(ctx: AuthContext) -> Optional[str]:
    """El sysadmin ve todo; el resto solo su familia."""
    if ctx.is_sys_admin:
        return None
    if not ctx.family_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is not associated with a family")
    return ctx.family_id


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    data: FeedbackCreate,
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    subject = (data.subject or "").strip()
    message = (data.message or "").strip()
    if not subject or not message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Subject and message are required")

    family_id = ctx.family_id or data.family_id
    if family_id and await db.get(Family, family_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Family not found")

    name, email = await _submitter(db, ctx, data)
    feedback = Feedback(
        subject=subject,
        message=message,
        viewed=False,
        submitter_name=name,
        submitter_email=email,
        family_id=family_id,
        account_id=ctx.account_id if ctx.is_account_auth else None,
        caretaker_id=ctx.real_caretaker_id,
    )
    db.add(feedback)
    await db.commit()
    await db.refresh(feedback)
    logger.info("Feedback submitted", extra={"feedback_id": feedback.id, "family_id": feedback.family_id})

    # Solo las cuentas reciben confirmación; un fallo de envío no anula el feedback
    if ctx.is_account_auth and email:
        sent = await email_service.send_feedback_confirmation_email(db, email, name, subject)
        if not sent:
            logger.warning("Feedback confirmation email not sent", extra={"feedback_id": feedback.id})

    return ok(FeedbackOut.model_validate(feedback))


@router.get("")
async def list_feedback(
    id: Optional[str] = Query(None),
    viewed: Optional[bool] = Query(None),
    family_id: Optional[str] = Query(None, alias="familyId"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    ctx: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    scope = _visible_family(ctx)
    stmt = select(Feedback).where(Feedback.deleted_at.is_(None))
    if scope is not None:
        stmt = stmt.where(Feedback.family_id == scope)
    elif family_id:
        stmt = stmt.where(Feedback.family_id == family_id)

    if id:
        feedback = await db.scalar(stmt.where(Feedback.id == id))
        if feedback is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feedback not found")
        return ok(FeedbackOut.model_validate(feedback))

    if viewed is not None:
        stmt = stmt.where(Feedback.viewed.is_(viewed))
    rows = (await db.execute(stmt.order_by(Feedback.submitted_at.desc()).limit(limit).offset(offset))).scalars().all()
    return ok([FeedbackOut.model_validate(f) for f in rows])


@router.put("")
async def update_feedback(
    data: FeedbackUpdate,
    id: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Feedback ID is required")
    scope = _visible_family(ctx)
    stmt = select(Feedback).where(Feedback.id == id, Feedback.deleted_at.is_(None))
    if scope is not None:
        stmt = stmt.where(Feedback.family_id == scope)
    feedback = await db.scalar(stmt)
    if feedback is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feedback not found")

    if data.viewed is not None:
        feedback.viewed = data.viewed
    await db.commit()
    await db.refresh(feedback)
    return ok(FeedbackOut.model_validate(feedback))
