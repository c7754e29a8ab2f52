# =====================================================================
# ESQUEMAS DE RESÚMENES DEL BEBÉ
# =====================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from .common import CamelModel


class LastMeasurements(CamelModel):
    height: Optional[Dict[str, Any]] = None
    weight: Optional[Dict[str, Any]] = None
    head_circumference: Optional[Dict[str, Any]] = None


class LastActivitiesOut(CamelModel):
    """
    Última actividad de cada tipo que muestra la ficha rápida del bebé.
    Cada entrada es el registro en camelCase más caretakerName.
    """
    last_diaper: Optional[Dict[str, Any]] = None
    last_poop_diaper: Optional[Dict[str, Any]] = None
    last_bath: Optional[Dict[str, Any]] = None
    last_measurements: LastMeasurements
    last_note: Optional[Dict[str, Any]] = None
