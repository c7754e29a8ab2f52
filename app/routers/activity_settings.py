from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.deps import get_db, require_write, require_family_id, family_scope
from app.models import Settings
from app.schemas import AuthContext, ActivitySettingsOut, ActivitySettingsRequest, ok
from app.services import activity_settings_service as activity_settings
from app.services.family_service import get_or_create_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activity-settings", tags=["activity-settings"])


@router.get("")
async def get_activity_settings(
    caretaker_id: Optional[str] = Query(None, alias="caretakerId"),
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    """Entrada del cuidador, si no la global, si no la de fábrica."""
    row = await db.scalar(
        select(Settings).where(Settings.family_id == family_id).order_by(Settings.updated_at.desc()).limit(1)
    )
    if row is None:
        return ok(ActivitySettingsOut(**activity_settings.default_settings(), caretaker_id=caretaker_id))

    entry, key_to_persist = activity_settings.resolve(activity_settings.parse_all(row.activity_settings), caretaker_id)
    if key_to_persist:
        # Actividades nuevas añadidas al final y guardadas
        row.activity_settings = activity_settings.store(row.activity_settings, key_to_persist, entry)
        await db.commit()
    return ok(ActivitySettingsOut(**entry, caretaker_id=caretaker_id))


@router.post("")
async def save_activity_settings(
    data: ActivitySettingsRequest,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    if not isinstance(data.order, list) or not isinstance(data.visible, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="order and visible must be arrays")

    entry, _ = activity_settings.with_missing_defaults({
        "order": [str(a) for a in data.order],
        "visible": [str(a) for a in data.visible],
    })
    row = await get_or_create_settings(db, require_family_id(ctx))
    key = data.caretaker_id or activity_settings.GLOBAL_KEY
    row.activity_settings = activity_settings.store(row.activity_settings, key, entry)
    await db.commit()
    logger.info("Activity settings saved", extra={"family_id": row.family_id, "key": key})
    return ok(ActivitySettingsOut(**entry, caretaker_id=data.caretaker_id))
