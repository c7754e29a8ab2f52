# =====================================================================
# MODELOS DE FAMILIA E INVITACIONES DE CONFIGURACIÓN
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, ForeignKey, DateTime
from datetime import datetime
from typing import Optional

from .base import Base, IdMixin, TimestampMixin, utcnow


class Family(IdMixin, TimestampMixin, Base):
    """
    Unidad tenant: agrupa cuidadores, bebés y todos sus registros.
    En modo SaaS pertenece a una cuenta (account_id).
    """
    __tablename__ = "family"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    account_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("account.id", ondelete="SET NULL"), unique=True
    )

    def __repr__(self) -> str:
        return f"<Family(slug={self.slug}, active={self.is_active})>"


class FamilySetup(IdMixin, TimestampMixin, Base):
    """
    Invitación para configurar una familia nueva (link /setup/<token>).
    Queda consumida cuando family_id deja de ser NULL.
    """
    __tablename__ = "family_setup"

    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("caretaker.id", ondelete="SET NULL")
    )
    family_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE")
    )

    def __repr__(self) -> str:
        return f"<FamilySetup(token={self.token}, used={self.family_id is not None})>"

    @property
    def is_used(self) -> bool:
        return self.family_id is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        from app.services.timezone import ensure_utc

        return ensure_utc(self.expires_at) < (now or utcnow())
