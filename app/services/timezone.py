"""
Utilidades de fechas. Todo se guarda en UTC; el cliente convierte a su zona.
"""
from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

DateLike = Union[datetime, str, None]


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite devuelve datetimes naive: se interpretan como UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc(value: DateLike) -> datetime:
    """
    Normaliza una fecha (datetime o ISO 8601) a UTC.
    - con offset: se convierte
    - sin offset: se asume UTC
    - inválida o vacía: ahora mismo
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not value:
        return datetime.now(timezone.utc)
    text = str(value).strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Invalid date received, using now", extra={"value": value})
        return datetime.now(timezone.utc)
    return ensure_utc(parsed)


def format_for_response(value: Optional[datetime]) -> Optional[str]:
    """ISO 8601 en UTC con sufijo Z (milisegundos), o None."""
    if value is None:
        return None
    utc = ensure_utc(value)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def calculate_duration_minutes(start: DateLike, end: DateLike) -> int:
    """Minutos (redondeados) entre dos fechas."""
    delta = to_utc(end) - to_utc(start)
    return round(delta.total_seconds() / 60)


def get_system_timezone() -> str:
    """Zona del servidor: TZ si está definida, si no la que informa el sistema."""
    return os.getenv("TZ") or time.tzname[0] or "UTC"
