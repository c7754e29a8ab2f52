# =====================================================================
# MODELOS DE MEDICAMENTOS Y DOSIS
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, Float, ForeignKey, DateTime
from datetime import datetime
from typing import Optional

from .base import Base, IdMixin, TimestampMixin, SoftDeleteMixin
from .logs import ActivityMixin


class Medicine(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Medicamento del botiquín familiar.
    dose_min_time: intervalo mínimo entre dosis, "DD:HH:MM" (o "HH:MM").
    """
    __tablename__ = "medicine"

    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    typical_dose_size: Mapped[Optional[float]] = mapped_column(Float)
    unit_abbr: Mapped[Optional[str]] = mapped_column(String(20))
    dose_min_time: Mapped[Optional[str]] = mapped_column(String(10))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Medicine(name={self.name}, min={self.dose_min_time})>"


class MedicineLog(ActivityMixin, Base):
    __tablename__ = "medicine_log"

    medicine_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("medicine.id", ondelete="CASCADE"), index=True, nullable=False
    )
    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    dose_amount: Mapped[float] = mapped_column(Float, nullable=False)
    unit_abbr: Mapped[Optional[str]] = mapped_column(String(20))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def activity_time(self) -> datetime:
        return self.time
