# =====================================================================
# ESQUEMAS DE CALENDARIO, CONTACTOS Y FEEDBACK
# =====================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from pydantic import Field

from .common import CamelModel, OutModel, UTCDateTime
from .enums import CalendarEventType, RecurrencePattern


# =========================================================
# CONTACTOS
# =========================================================

class ContactCreate(CamelModel):
    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class ContactOut(OutModel):
    name: str
    role: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    deleted_at: Optional[UTCDateTime] = None


# =========================================================
# EVENTOS
# =========================================================

class CalendarEventCreate(CamelModel):
    """
    Attributes:
        title (str): Título visible
        start_time (datetime): Inicio (primera ocurrencia si es recurrente)
        end_time (Optional[datetime]): Fin
        all_day (bool): Evento de día completo
        type (CalendarEventType): APPOINTMENT, CARETAKER_SCHEDULE, REMINDER o CUSTOM
        recurring (bool): Se repite según recurrence_pattern
        recurrence_end (Optional[datetime]): Última fecha en la que puede repetirse
        reminder_time (Optional[int]): Minutos de antelación del aviso
        baby_ids / caretaker_ids / contact_ids: Participantes (de la misma familia)
    """
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    all_day: bool
    type: CalendarEventType
    location: Optional[str] = None
    color: Optional[str] = None
    recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end: Optional[datetime] = None
    custom_recurrence: Optional[str] = None
    reminder_time: Optional[int] = Field(None, ge=0)
    baby_ids: List[str] = []
    caretaker_ids: List[str] = []
    contact_ids: List[str] = []


class CalendarEventUpdate(CamelModel):
    """Actualización parcial; las listas de participantes se sustituyen enteras."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    all_day: Optional[bool] = None
    type: Optional[CalendarEventType] = None
    location: Optional[str] = None
    color: Optional[str] = None
    recurring: Optional[bool] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end: Optional[datetime] = None
    custom_recurrence: Optional[str] = None
    reminder_time: Optional[int] = Field(None, ge=0)
    baby_ids: Optional[List[str]] = None
    caretaker_ids: Optional[List[str]] = None
    contact_ids: Optional[List[str]] = None


class EventBaby(CamelModel):
    id: str
    first_name: str
    last_name: str


class EventCaretaker(CamelModel):
    id: str
    name: str
    type: Optional[str] = None


class CalendarEventOut(OutModel):
    title: str
    description: Optional[str] = None
    start_time: UTCDateTime
    end_time: Optional[UTCDateTime] = None
    all_day: bool
    type: CalendarEventType
    location: Optional[str] = None
    color: Optional[str] = None
    recurring: bool
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end: Optional[UTCDateTime] = None
    custom_recurrence: Optional[str] = None
    reminder_time: Optional[int] = None
    notification_sent: bool
    family_id: str
    deleted_at: Optional[UTCDateTime] = None
    babies: List[EventBaby] = []
    caretakers: List[EventCaretaker] = []
    contacts: List[ContactOut] = []
    contact_ids: List[str] = []
    # Solo en /baby-upcoming-events: siguiente ocurrencia (la propia start_time si no se repite)
    next_occurrence: Optional[UTCDateTime] = None


# =========================================================
# FEEDBACK
# =========================================================

class FeedbackCreate(CamelModel):
    subject: Optional[str] = None
    message: Optional[str] = None
    family_id: Optional[str] = None
    submitter_name: Optional[str] = None
    submitter_email: Optional[str] = None


class FeedbackUpdate(CamelModel):
    viewed: Optional[bool] = None


class FeedbackOut(OutModel):
    subject: str
    message: str
    submitted_at: UTCDateTime
    viewed: bool
    submitter_name: Optional[str] = None
    submitter_email: Optional[str] = None
    family_id: Optional[str] = None
    deleted_at: Optional[UTCDateTime] = None
