# =====================================================================
# MODELOS DE CONFIGURACIÓN (familia, aplicación, email y unidades)
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, Integer, ForeignKey

from typing import Optional

from .base import Base, IdMixin, TimestampMixin, auth_type_enum, email_provider_enum

DEFAULT_SECURITY_PIN = "111222"


class Settings(IdMixin, TimestampMixin, Base):
    """
    Preferencias por familia. activity_settings guarda JSON con el orden y la
    visibilidad de las actividades, indexado por caretakerId o "global".
    """
    __tablename__ = "settings"

    family_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True
    )
    family_name: Mapped[str] = mapped_column(Text, default="My Family", nullable=False)
    security_pin: Mapped[str] = mapped_column(String(10), default=DEFAULT_SECURITY_PIN, nullable=False)
    auth_type: Mapped[Optional[str]] = mapped_column(auth_type_enum)

    # ---------- Unidades por defecto ----------
    default_bottle_unit: Mapped[str] = mapped_column(String(10), default="OZ", nullable=False)
    default_solids_unit: Mapped[str] = mapped_column(String(10), default="TBSP", nullable=False)
    default_height_unit: Mapped[str] = mapped_column(String(10), default="IN", nullable=False)
    default_weight_unit: Mapped[str] = mapped_column(String(10), default="LB", nullable=False)
    default_temp_unit: Mapped[str] = mapped_column(String(10), default="F", nullable=False)

    activity_settings: Mapped[Optional[str]] = mapped_column(Text)
    enable_debug_timer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    enable_debug_timezone: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class AppConfig(IdMixin, TimestampMixin, Base):
    """Configuración global. admin_pass se guarda cifrado (AES-256-GCM)."""
    __tablename__ = "app_config"

    admin_pass: Mapped[str] = mapped_column(Text, nullable=False)
    root_domain: Mapped[str] = mapped_column(Text, default="localhost", nullable=False)
    enable_https: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class EmailConfig(IdMixin, TimestampMixin, Base):
    """Proveedor de email. Claves y password se guardan cifrados."""
    __tablename__ = "email_config"

    provider_type: Mapped[str] = mapped_column(email_provider_enum, default="SENDGRID", nullable=False)
    send_grid_api_key: Mapped[Optional[str]] = mapped_column(Text)
    smtp2go_api_key: Mapped[Optional[str]] = mapped_column(Text)
    server_address: Mapped[Optional[str]] = mapped_column(Text)
    port: Mapped[Optional[int]] = mapped_column(Integer)
    username: Mapped[Optional[str]] = mapped_column(Text)
    password: Mapped[Optional[str]] = mapped_column(Text)
    enable_tls: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    allow_self_signed_cert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Unit(IdMixin, TimestampMixin, Base):
    """Unidad de medida. activity_types es una lista separada por comas."""
    __tablename__ = "unit"

    unit_abbr: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    unit_name: Mapped[str] = mapped_column(Text, nullable=False)
    activity_types: Mapped[Optional[str]] = mapped_column(Text)
