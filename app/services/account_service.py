"""
Reglas de plan/expiración de cuentas y consultas auxiliares de cuenta.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import Account, Family, Caretaker, utcnow
from app.services.timezone import ensure_utc, format_for_response


def compute_expiry(account: Optional[Account], now: Optional[datetime] = None) -> Tuple[bool, Optional[str], Optional[datetime]]:
    """
    Devuelve (expirada, tipo, fecha) para la cuenta dueña de una familia.
    Solo aplica en modo SaaS y nunca a cuentas beta.
    tipo: TRIAL_EXPIRED, PLAN_EXPIRED o NO_PLAN.
    """
    if account is None or not settings.is_saas or account.betaparticipant:
        return False, None, None

    now = now or utcnow()
    if account.trial_ends:
        trial_ends = ensure_utc(account.trial_ends)
        return now > trial_ends, "TRIAL_EXPIRED", trial_ends
    if account.plan_expires:
        plan_expires = ensure_utc(account.plan_expires)
        return now > plan_expires, "PLAN_EXPIRED", plan_expires
    if not account.plan_type:
        return True, "NO_PLAN", None
    return False, None, None


def account_status(account: Account, family: Optional[Family]) -> Tuple[str, bool]:
    """(account_status, subscription_active) para /accounts/status."""
    if account.closed:
        return "closed", False
    if family is None:
        return "no_family", False
    if account.betaparticipant:
        return "active", True

    now = utcnow()
    if account.trial_ends:
        trial_active = now <= ensure_utc(account.trial_ends)
        return ("trial", True) if trial_active else ("expired", False)
    if account.plan_expires:
        plan_active = now <= ensure_utc(account.plan_expires)
        return ("active", True) if plan_active else ("expired", False)
    if account.plan_type:
        return "active", True
    return "expired", False


def plan_claims(account: Optional[Account]) -> dict:
    """Campos de plan que viajan dentro de los JWT."""
    if account is None:
        return {}
    return {
        "betaparticipant": account.betaparticipant,
        "trialEnds": format_for_response(account.trial_ends),
        "planExpires": format_for_response(account.plan_expires),
        "planType": account.plan_type,
    }


async def get_account_family(db: AsyncSession, account_id: str) -> Optional[Family]:
    return await db.scalar(select(Family).where(Family.account_id == account_id))


async def get_account_caretaker(db: AsyncSession, account_id: str) -> Optional[Caretaker]:
    return await db.scalar(
        select(Caretaker).where(Caretaker.account_id == account_id, Caretaker.deleted_at.is_(None))
    )


async def get_account_by_email(db: AsyncSession, email: str) -> Optional[Account]:
    return await db.scalar(select(Account).where(Account.email == email.strip().lower()))
