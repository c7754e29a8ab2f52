# =====================================================================
# ESQUEMAS DE REGISTROS DE ACTIVIDAD
# =====================================================================

from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import Field

from .common import CamelModel, OutModel, UTCDateTime
from .enums import (
    SleepType, SleepQuality, FeedType, BreastSide, DiaperType,
    MilestoneCategory, MeasurementType,
)


class LogOut(OutModel):
    """Campos comunes de salida de cualquier registro."""
    family_id: str
    baby_id: str
    caretaker_id: Optional[str] = None
    deleted_at: Optional[UTCDateTime] = None


# =========================================================
# SUEÑO
# =========================================================

class SleepLogCreate(CamelModel):
    """
    Attributes:
        baby_id (str): Bebé
        start_time (datetime): Inicio
        end_time (Optional[datetime]): Fin (None = durmiendo ahora)
        duration (Optional[int]): Minutos; se recalcula si hay inicio y fin
        type (SleepType): NAP o NIGHT_SLEEP
        location (Optional[str]): Cuna, carrito, ...
        quality (Optional[SleepQuality]): Calidad percibida
    """
    baby_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    type: SleepType
    location: Optional[str] = None
    quality: Optional[SleepQuality] = None


class SleepLogUpdate(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    type: Optional[SleepType] = None
    location: Optional[str] = None
    quality: Optional[SleepQuality] = None


class SleepLogOut(LogOut):
    start_time: UTCDateTime
    end_time: Optional[UTCDateTime] = None
    duration: Optional[int] = None
    type: SleepType
    location: Optional[str] = None
    quality: Optional[SleepQuality] = None


# =========================================================
# TOMAS
# =========================================================

class FeedLogCreate(CamelModel):
    """
    Attributes:
        time (datetime): Momento de la toma
        type (FeedType): BREAST, BOTTLE o SOLIDS
        amount / unit_abbr: Cantidad (biberón, sólidos)
        side / feed_duration / start_time / end_time: Pecho
        food (Optional[str]): Alimento sólido
    """
    baby_id: str
    time: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    feed_duration: Optional[int] = Field(None, ge=0)
    type: FeedType
    amount: Optional[float] = Field(None, ge=0)
    unit_abbr: Optional[str] = None
    side: Optional[BreastSide] = None
    food: Optional[str] = None
    bottle_type: Optional[str] = None
    breast_milk_amount: Optional[float] = Field(None, ge=0)


class FeedLogUpdate(CamelModel):
    time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    feed_duration: Optional[int] = Field(None, ge=0)
    type: Optional[FeedType] = None
    amount: Optional[float] = Field(None, ge=0)
    unit_abbr: Optional[str] = None
    side: Optional[BreastSide] = None
    food: Optional[str] = None
    bottle_type: Optional[str] = None
    breast_milk_amount: Optional[float] = Field(None, ge=0)


class FeedLogOut(LogOut):
    time: UTCDateTime
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    feed_duration: Optional[int] = None
    type: FeedType
    amount: Optional[float] = None
    unit_abbr: Optional[str] = None
    side: Optional[BreastSide] = None
    food: Optional[str] = None
    bottle_type: Optional[str] = None
    breast_milk_amount: Optional[float] = None


# =========================================================
# PAÑALES
# =========================================================

class DiaperLogCreate(CamelModel):
    baby_id: str
    time: datetime
    type: DiaperType
    condition: Optional[str] = None
    color: Optional[str] = None
    blowout: bool = False


class DiaperLogUpdate(CamelModel):
    time: Optional[datetime] = None
    type: Optional[DiaperType] = None
    condition: Optional[str] = None
    color: Optional[str] = None
    blowout: Optional[bool] = None


class DiaperLogOut(LogOut):
    time: UTCDateTime
    type: DiaperType
    condition: Optional[str] = None
    color: Optional[str] = None
    blowout: bool


# =========================================================
# BAÑOS
# =========================================================

class BathLogCreate(CamelModel):
    baby_id: str
    time: datetime
    soap_used: bool = True
    shampoo_used: bool = True
    notes: Optional[str] = None


class BathLogUpdate(CamelModel):
    time: Optional[datetime] = None
    soap_used: Optional[bool] = None
    shampoo_used: Optional[bool] = None
    notes: Optional[str] = None


class BathLogOut(LogOut):
    time: UTCDateTime
    soap_used: bool
    shampoo_used: bool
    notes: Optional[str] = None


# =========================================================
# EXTRACCIONES
# =========================================================

class PumpLogCreate(CamelModel):
    baby_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=0)
    left_amount: Optional[float] = Field(None, ge=0)
    right_amount: Optional[float] = Field(None, ge=0)
    total_amount: Optional[float] = Field(None, ge=0)
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


class PumpLogUpdate(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=0)
    left_amount: Optional[float] = Field(None, ge=0)
    right_amount: Optional[float] = Field(None, ge=0)
    total_amount: Optional[float] = Field(None, ge=0)
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


class PumpLogOut(LogOut):
    start_time: UTCDateTime
    end_time: Optional[UTCDateTime] = None
    duration: Optional[int] = None
    left_amount: Optional[float] = None
    right_amount: Optional[float] = None
    total_amount: Optional[float] = None
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


# =========================================================
# NOTAS
# =========================================================

class NoteCreate(CamelModel):
    baby_id: str
    time: datetime
    content: str = Field(..., min_length=1)
    category: Optional[str] = None


class NoteUpdate(CamelModel):
    time: Optional[datetime] = None
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None


class NoteOut(LogOut):
    time: UTCDateTime
    content: str
    category: Optional[str] = None


# =========================================================
# HITOS
# =========================================================

class MilestoneCreate(CamelModel):
    """age_in_days se calcula a partir de la fecha de nacimiento si falta."""
    baby_id: str
    date: datetime
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: MilestoneCategory
    age_in_days: Optional[int] = Field(None, ge=0)


class MilestoneUpdate(CamelModel):
    date: Optional[datetime] = None
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[MilestoneCategory] = None
    age_in_days: Optional[int] = Field(None, ge=0)


class MilestoneOut(LogOut):
    date: UTCDateTime
    title: str
    description: Optional[str] = None
    category: MilestoneCategory
    age_in_days: Optional[int] = None


# =========================================================
# MEDICIONES
# =========================================================

class MeasurementCreate(CamelModel):
    baby_id: str
    date: datetime
    type: MeasurementType
    value: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1)
    notes: Optional[str] = None


class MeasurementUpdate(CamelModel):
    date: Optional[datetime] = None
    type: Optional[MeasurementType] = None
    value: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = Field(None, min_length=1)
    notes: Optional[str] = None


class MeasurementOut(LogOut):
    date: UTCDateTime
    type: MeasurementType
    value: float
    unit: str
    notes: Optional[str] = None
