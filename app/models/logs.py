# =====================================================================
# MODELOS DE REGISTROS DE ACTIVIDAD
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, Integer, Float, ForeignKey, DateTime
from datetime import datetime
from typing import Optional

from .base import (
    Base, IdMixin, TimestampMixin, SoftDeleteMixin,
    sleep_type_enum, sleep_quality_enum, feed_type_enum, breast_side_enum,
    diaper_type_enum, milestone_category_enum, measurement_type_enum,
)


# ---------- Columnas comunes de todos los registros ----------
class ActivityMixin(IdMixin, TimestampMixin, SoftDeleteMixin):
    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True, nullable=False
    )
    baby_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("baby.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # NULL cuando el registro lo crea el sysadmin o una cuenta sin cuidador
    caretaker_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("caretaker.id", ondelete="SET NULL")
    )


class SleepLog(ActivityMixin, Base):
    """Sueño. duration (minutos) se calcula si hay inicio y fin."""
    __tablename__ = "sleep_log"

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration: Mapped[Optional[int]] = mapped_column(Integer)
    type: Mapped[str] = mapped_column(sleep_type_enum, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(Text)
    quality: Mapped[Optional[str]] = mapped_column(sleep_quality_enum)

    @property
    def activity_time(self) -> datetime:
        # Una siesta o noche terminada se ordena por su final
        return self.end_time or self.start_time


class FeedLog(ActivityMixin, Base):
    """Toma: pecho (side + feed_duration en segundos), biberón o sólidos."""
    __tablename__ = "feed_log"

    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    feed_duration: Mapped[Optional[int]] = mapped_column(Integer)
    type: Mapped[str] = mapped_column(feed_type_enum, nullable=False)
    amount: Mapped[Optional[float]] = mapped_column(Float)
    unit_abbr: Mapped[Optional[str]] = mapped_column(String(20))
    side: Mapped[Optional[str]] = mapped_column(breast_side_enum)
    food: Mapped[Optional[str]] = mapped_column(Text)
    bottle_type: Mapped[Optional[str]] = mapped_column(String(30))
    breast_milk_amount: Mapped[Optional[float]] = mapped_column(Float)

    @property
    def activity_time(self) -> datetime:
        return self.time


class DiaperLog(ActivityMixin, Base):
    __tablename__ = "diaper_log"

    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    type: Mapped[str] = mapped_column(diaper_type_enum, nullable=False)
    condition: Mapped[Optional[str]] = mapped_column(Text)
    color: Mapped[Optional[str]] = mapped_column(Text)
    blowout: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def activity_time(self) -> datetime:
        return self.time


class BathLog(ActivityMixin, Base):
    __tablename__ = "bath_log"

    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    soap_used: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    shampoo_used: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def activity_time(self) -> datetime:
        return self.time


class PumpLog(ActivityMixin, Base):
    """Extracción. total_amount = left + right si no se indica."""
    __tablename__ = "pump_log"

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration: Mapped[Optional[int]] = mapped_column(Integer)
    left_amount: Mapped[Optional[float]] = mapped_column(Float)
    right_amount: Mapped[Optional[float]] = mapped_column(Float)
    total_amount: Mapped[Optional[float]] = mapped_column(Float)
    unit_abbr: Mapped[Optional[str]] = mapped_column(String(20))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def activity_time(self) -> datetime:
        return self.start_time


class Note(ActivityMixin, Base):
    __tablename__ = "note"

    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))

    @property
    def activity_time(self) -> datetime:
        return self.time


class Milestone(ActivityMixin, Base):
    __tablename__ = "milestone"

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(milestone_category_enum, nullable=False)
    age_in_days: Mapped[Optional[int]] = mapped_column(Integer)

    @property
    def activity_time(self) -> datetime:
        return self.date


class Measurement(ActivityMixin, Base):
    __tablename__ = "measurement"

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    type: Mapped[str] = mapped_column(measurement_type_enum, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def activity_time(self) -> datetime:
        return self.date
