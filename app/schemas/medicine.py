# =====================================================================
# ESQUEMAS DE MEDICAMENTOS
# =====================================================================

from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import Field

from .common import CamelModel, OutModel, UTCDateTime
from .logs import LogOut

# "DD:HH:MM" o el formato antiguo "HH:MM"
DOSE_MIN_TIME_PATTERN = r"^(\d{1,2}:([01]\d|2[0-3]):[0-5]\d|([01]\d|2[0-3]):[0-5]\d)$"


class MedicineCreate(CamelModel):
    """
    Attributes:
        name (str): Nombre comercial
        typical_dose_size (Optional[float]): Dosis habitual
        unit_abbr (Optional[str]): Unidad de la dosis
        dose_min_time (Optional[str]): Intervalo mínimo entre dosis
        notes (Optional[str]): Observaciones
        active (bool): Visible en el selector
    """
    name: str = Field(..., min_length=1)
    typical_dose_size: Optional[float] = Field(None, ge=0)
    unit_abbr: Optional[str] = None
    dose_min_time: Optional[str] = Field(None, pattern=DOSE_MIN_TIME_PATTERN)
    notes: Optional[str] = None
    active: bool = True


class MedicineUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    typical_dose_size: Optional[float] = Field(None, ge=0)
    unit_abbr: Optional[str] = None
    dose_min_time: Optional[str] = Field(None, pattern=DOSE_MIN_TIME_PATTERN)
    notes: Optional[str] = None
    active: Optional[bool] = None


class MedicineOut(OutModel):
    family_id: str
    name: str
    typical_dose_size: Optional[float] = None
    unit_abbr: Optional[str] = None
    dose_min_time: Optional[str] = None
    notes: Optional[str] = None
    active: bool
    deleted_at: Optional[UTCDateTime] = None


class MedicineLogCreate(CamelModel):
    baby_id: str
    medicine_id: str
    time: datetime
    dose_amount: float = Field(..., ge=0)
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


class MedicineLogUpdate(CamelModel):
    time: Optional[datetime] = None
    dose_amount: Optional[float] = Field(None, ge=0)
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


class MedicineLogOut(LogOut):
    medicine_id: str
    medicine_name: Optional[str] = None
    time: UTCDateTime
    dose_amount: float
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


class ActiveDoseOut(CamelModel):
    """
    Última dosis por medicamento en las últimas 24 horas.

    Attributes:
        next_dose_time (Optional[datetime]): Cuándo es seguro repetir
        is_safe (bool): Si ya se puede dar otra dosis
        minutes_remaining (int): Minutos hasta next_dose_time (0 si ya es seguro)
        total_in_24h (float): Suma de dosis en las últimas 24 horas
    """
    medicine_id: str
    medicine_name: str
    last_dose_time: UTCDateTime
    dose_amount: float
    unit_abbr: Optional[str] = None
    total_in_24h: float = Field(alias="totalIn24h")
    dose_min_time: Optional[str] = None
    next_dose_time: Optional[UTCDateTime] = None
    is_safe: bool
    minutes_remaining: int
