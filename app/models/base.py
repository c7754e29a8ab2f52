# =====================================================================
# MODELO BASE Y ENUMERACIONES PARA LA BASE DE DATOS
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import Enum, String, DateTime, func
from datetime import datetime, timezone
from typing import Optional
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# ---------- Clase Base para todos los modelos ----------
class Base(DeclarativeBase):
    """
    Clase base declarativa para todos los modelos de SQLAlchemy.
    Proporciona funcionalidad común a todas las entidades.
    """
    pass


# ---------- Columnas comunes ----------
class IdMixin:
    # UUID v4 guardado como texto: funciona igual en Postgres y en SQLite
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )


class SoftDeleteMixin:
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


# ---------- Enumeraciones ----------
# Se crean como tipos nativos en Postgres y como VARCHAR + CHECK en SQLite

caretaker_role_enum = Enum('USER', 'ADMIN', name='caretaker_role_enum')

gender_enum = Enum('MALE', 'FEMALE', name='gender_enum')

sleep_type_enum = Enum('NAP', 'NIGHT_SLEEP', name='sleep_type_enum')

sleep_quality_enum = Enum('POOR', 'FAIR', 'GOOD', 'EXCELLENT', name='sleep_quality_enum')

feed_type_enum = Enum('BREAST', 'BOTTLE', 'SOLIDS', name='feed_type_enum')

breast_side_enum = Enum('LEFT', 'RIGHT', name='breast_side_enum')

diaper_type_enum = Enum('WET', 'DIRTY', 'BOTH', name='diaper_type_enum')

milestone_category_enum = Enum(
    'MOTOR', 'COGNITIVE', 'SOCIAL', 'LANGUAGE', 'CUSTOM',
    name='milestone_category_enum'
)

measurement_type_enum = Enum(
    'HEIGHT', 'WEIGHT', 'HEAD_CIRCUMFERENCE', 'TEMPERATURE',
    name='measurement_type_enum'
)

auth_type_enum = Enum('SYSTEM', 'CARETAKER', name='auth_type_enum')

plan_type_enum = Enum('sub', 'full', name='plan_type_enum')

email_provider_enum = Enum('SMTP2GO', 'SENDGRID', 'SMTP', name='email_provider_enum')

calendar_event_type_enum = Enum(
    'APPOINTMENT', 'CARETAKER_SCHEDULE', 'REMINDER', 'CUSTOM',
    name='calendar_event_type_enum'
)

recurrence_pattern_enum = Enum(
    'DAILY', 'WEEKLY', 'BIWEEKLY', 'MONTHLY', 'YEARLY', 'CUSTOM',
    name='recurrence_pattern_enum'
)
