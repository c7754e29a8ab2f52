# =====================================================================
# ESQUEMAS COMUNES: SOBRE DE RESPUESTA Y TIPOS COMPARTIDOS
# =====================================================================

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from app.services.timezone import format_for_response

# Fechas siempre en ISO 8601 UTC ("...Z"), aunque SQLite las devuelva naive
UTCDateTime = Annotated[datetime, PlainSerializer(format_for_response, return_type=Optional[str])]


class CamelModel(BaseModel):
    """
    Base de todos los esquemas de la API.
    En Python snake_case; en JSON camelCase (se aceptan ambos al entrar).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class OutModel(CamelModel):
    id: str
    created_at: UTCDateTime
    updated_at: UTCDateTime


def ok(data: Any = None) -> dict:
    """Respuesta de éxito {"success": true, "data": ...}."""
    return {"success": True, "data": data}
