# =====================================================================
# MODELO DE CUIDADORES
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, ForeignKey
from typing import Optional

from .base import Base, IdMixin, TimestampMixin, SoftDeleteMixin, caretaker_role_enum

SYSTEM_LOGIN_ID = "00"
SYSTEM_CARETAKER_TYPE = "System Administrator"


class Caretaker(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Identidad de login dentro de una familia (loginId de 2 dígitos + PIN).
    El cuidador con loginId "00" es el cuidador de sistema de la familia.
    """
    __tablename__ = "caretaker"

    # ---------- Identificación ----------
    login_id: Mapped[str] = mapped_column(String(2), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[Optional[str]] = mapped_column(Text)
    role: Mapped[str] = mapped_column(caretaker_role_enum, default="USER", nullable=False)
    inactive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    security_pin: Mapped[str] = mapped_column(String(10), nullable=False)

    # ---------- Pertenencia ----------
    family_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True
    )
    account_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("account.id", ondelete="SET NULL")
    )

    def __repr__(self) -> str:
        return f"<Caretaker(login_id={self.login_id}, role={self.role})>"

    def __str__(self) -> str:
        return f"{self.name} ({self.login_id})"

    @property
    def is_system(self) -> bool:
        return self.login_id == SYSTEM_LOGIN_ID

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"
