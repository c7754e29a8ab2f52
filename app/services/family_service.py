"""
Alta de familias: la familia, su configuración y el cuidador de sistema "00".
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    Family, Settings, Caretaker, Account, utcnow,
    SYSTEM_LOGIN_ID, SYSTEM_CARETAKER_TYPE, DEFAULT_SECURITY_PIN,
)
from app.services import activity_settings_service

logger = logging.getLogger(__name__)

TRIAL_DAYS = 14
DEFAULT_FAMILY_SLUG = "my-family"


def trial_end_date(now: Optional[datetime] = None) -> datetime:
    """Fin de la prueba: dentro de 14 días, al final del día (UTC)."""
    end = (now or utcnow()) + timedelta(days=TRIAL_DAYS)
    return end.replace(hour=23, minute=59, second=59, microsecond=999000)


def new_system_caretaker(family_id: str, pin: str = DEFAULT_SECURITY_PIN) -> Caretaker:
    return Caretaker(
        login_id=SYSTEM_LOGIN_ID,
        name="system",
        type=SYSTEM_CARETAKER_TYPE,
        role="ADMIN",
        security_pin=pin,
        family_id=family_id,
        inactive=False,
    )


def new_settings(family_id: Optional[str], family_name: str) -> Settings:
    return Settings(
        family_id=family_id,
        family_name=family_name,
        security_pin=DEFAULT_SECURITY_PIN,
        activity_settings=activity_settings_service.store(
            None, activity_settings_service.GLOBAL_KEY, activity_settings_service.default_settings()
        ),
    )


async def slug_taken(db: AsyncSession, slug: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Family.id).where(Family.slug == slug)
    if exclude_id:
        stmt = stmt.where(Family.id != exclude_id)
    return (await db.scalar(stmt)) is not None


async def create_family(
    db: AsyncSession,
    name: str,
    slug: str,
    account_id: Optional[str] = None,
    is_active: bool = True,
) -> Family:
    """Crea familia + Settings + cuidador de sistema. El commit lo hace quien llama."""
    family = Family(name=name, slug=slug, is_active=is_active, account_id=account_id)
    db.add(family)
    await db.flush()

    db.add(new_settings(family.id, name))
    db.add(new_system_caretaker(family.id))
    await db.flush()

    logger.info("Family created", extra={"family_id": family.id, "slug": slug, "account_id": account_id})
    return family


async def rename_family(db: AsyncSession, family: Family, name: str, slug: str) -> Family:
    family.name = name
    family.slug = slug
    family.is_active = True
    settings_rows = (await db.execute(select(Settings).where(Settings.family_id == family.id))).scalars().all()
    for row in settings_rows:
        row.family_name = name
    await db.flush()
    return family


def start_trial_if_new(account: Account) -> None:
    """Solo para cuentas sin beta, sin prueba previa y sin plan."""
    if account.betaparticipant or account.trial_ends or account.plan_type:
        return
    account.trial_ends = trial_end_date()


async def get_or_create_settings(db: AsyncSession, family_id: str) -> Settings:
    row = await db.scalar(
        select(Settings).where(Settings.family_id == family_id).order_by(Settings.updated_at.desc()).limit(1)
    )
    if row is not None:
        return row
    family = await db.get(Family, family_id)
    row = new_settings(family_id, family.name if family else "My Family")
    db.add(row)
    await db.flush()
    return row
