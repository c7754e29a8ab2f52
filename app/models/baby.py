# =====================================================================
# MODELO DE BEBÉS
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, ForeignKey, DateTime
from datetime import datetime
from typing import Optional

from .base import Base, IdMixin, TimestampMixin, SoftDeleteMixin, gender_enum


class Baby(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Bebé de una familia. Los tiempos de aviso usan formato "HH:MM".
    """
    __tablename__ = "baby"

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    birth_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    gender: Mapped[Optional[str]] = mapped_column(gender_enum)
    inactive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    feed_warning_time: Mapped[str] = mapped_column(String(5), default="03:00", nullable=False)
    diaper_warning_time: Mapped[str] = mapped_column(String(5), default="02:00", nullable=False)

    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Baby(id={self.id[:8]}..., name={self.first_name})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
