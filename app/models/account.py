# =====================================================================
# MODELO DE CUENTAS (SaaS)
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, DateTime
from datetime import datetime
from typing import Optional

from .base import Base, IdMixin, TimestampMixin, plan_type_enum


class Account(IdMixin, TimestampMixin, Base):
    """
    Identidad de facturación y login por email.
    La familia apunta a la cuenta (family.account_id) y el cuidador vinculado
    también (caretaker.account_id).
    """
    __tablename__ = "account"

    # ---------- Datos de autenticación ----------
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)
    provider: Mapped[str] = mapped_column(String(20), default="email", nullable=False)

    # ---------- Verificación y recuperación ----------
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verification_token: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    password_reset_token: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # ---------- Estado ----------
    betaparticipant: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # ---------- Plan y facturación ----------
    trial_ends: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    plan_type: Mapped[Optional[str]] = mapped_column(plan_type_enum)
    plan_expires: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    subscription_id: Mapped[Optional[str]] = mapped_column(String(255))
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)

    def __repr__(self) -> str:
        return f"<Account(email={self.email}, plan={self.plan_type})>"
