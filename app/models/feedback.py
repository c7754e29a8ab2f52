# =====================================================================
# MODELO DE FEEDBACK
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, ForeignKey, DateTime
from datetime import datetime
from typing import Optional

from .base import Base, IdMixin, TimestampMixin, SoftDeleteMixin, utcnow


class Feedback(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Mensaje enviado desde la aplicación a los administradores.
    Lo puede enviar una cuenta o un cuidador; la familia es opcional.
    """
    __tablename__ = "feedback"

    subject: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    viewed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ---------- Remitente ----------
    submitter_name: Mapped[Optional[str]] = mapped_column(Text)
    submitter_email: Mapped[Optional[str]] = mapped_column(Text)
    family_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="SET NULL"), index=True
    )
    account_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("account.id", ondelete="SET NULL")
    )
    caretaker_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("caretaker.id", ondelete="SET NULL")
    )

    def __repr__(self) -> str:
        return f"<Feedback(subject={self.subject}, viewed={self.viewed})>"
