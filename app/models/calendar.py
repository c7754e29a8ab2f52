# =====================================================================
# MODELOS DE CALENDARIO Y CONTACTOS
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, Integer, ForeignKey, DateTime
from datetime import datetime
from typing import Optional

from .base import (
    Base, IdMixin, TimestampMixin, SoftDeleteMixin,
    calendar_event_type_enum, recurrence_pattern_enum,
)


class Contact(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Contacto de la familia (pediatra, guardería, abuelos...).
    Se puede asociar a eventos del calendario.
    """
    __tablename__ = "contact"

    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    email: Mapped[Optional[str]] = mapped_column(Text)
    address: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<Contact(name={self.name}, role={self.role})>"


class CalendarEvent(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Evento del calendario familiar (citas, turnos de cuidadores, recordatorios).
    Los eventos recurrentes guardan solo la primera ocurrencia; el resto se calcula.
    """
    __tablename__ = "calendar_event"

    family_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # ---------- Descripción ----------
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(calendar_event_type_enum, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(Text)
    color: Mapped[Optional[str]] = mapped_column(String(20))

    # ---------- Horario ----------
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    all_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ---------- Recurrencia ----------
    recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurrence_pattern: Mapped[Optional[str]] = mapped_column(recurrence_pattern_enum)
    recurrence_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    custom_recurrence: Mapped[Optional[str]] = mapped_column(Text)

    # ---------- Aviso ----------
    reminder_time: Mapped[Optional[int]] = mapped_column(Integer)  # minutos antes
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<CalendarEvent(title={self.title}, start={self.start_time})>"


class BabyEvent(Base):
    """Bebés implicados en un evento."""
    __tablename__ = "baby_event"

    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("calendar_event.id", ondelete="CASCADE"), primary_key=True
    )
    baby_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("baby.id", ondelete="CASCADE"), primary_key=True
    )


class CaretakerEvent(Base):
    """Cuidadores asignados a un evento."""
    __tablename__ = "caretaker_event"

    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("calendar_event.id", ondelete="CASCADE"), primary_key=True
    )
    caretaker_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("caretaker.id", ondelete="CASCADE"), primary_key=True
    )


class ContactEvent(Base):
    __tablename__ = "contact_event"

    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("calendar_event.id", ondelete="CASCADE"), primary_key=True
    )
    contact_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contact.id", ondelete="CASCADE"), primary_key=True
    )
