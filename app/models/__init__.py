# =====================================================================
# MÓDULO DE MODELOS DE BASE DE DATOS
# =====================================================================

"""
Modelos de la base de datos de Baby Control.
Cada grupo de entidades está en su propio archivo.
"""

# Importar la clase base y enumeraciones
from .base import (
    Base, utcnow, new_id,
    caretaker_role_enum, gender_enum, sleep_type_enum, sleep_quality_enum,
    feed_type_enum, breast_side_enum, diaper_type_enum, milestone_category_enum,
    measurement_type_enum, auth_type_enum, plan_type_enum, email_provider_enum,
    calendar_event_type_enum, recurrence_pattern_enum,
)

# Importar modelos por entidad
from .account import Account
from .family import Family, FamilySetup
from .caretaker import Caretaker, SYSTEM_LOGIN_ID, SYSTEM_CARETAKER_TYPE
from .baby import Baby
from .settings import Settings, AppConfig, EmailConfig, Unit, DEFAULT_SECURITY_PIN
from .logs import (
    SleepLog, FeedLog, DiaperLog, BathLog, PumpLog, Note, Milestone, Measurement,
)
from .medicine import Medicine, MedicineLog
from .calendar import Contact, CalendarEvent, BabyEvent, CaretakerEvent, ContactEvent
from .feedback import Feedback

# Exportar todos los modelos para fácil importación
__all__ = [
    # Base y helpers
    "Base",
    "utcnow",
    "new_id",

    # Enums
    "caretaker_role_enum",
    "gender_enum",
    "sleep_type_enum",
    "sleep_quality_enum",
    "feed_type_enum",
    "breast_side_enum",
    "diaper_type_enum",
    "milestone_category_enum",
    "measurement_type_enum",
    "auth_type_enum",
    "plan_type_enum",
    "email_provider_enum",
    "calendar_event_type_enum",
    "recurrence_pattern_enum",

    # Modelos principales
    "Account",
    "Family",
    "FamilySetup",
    "Caretaker",
    "SYSTEM_LOGIN_ID",
    "SYSTEM_CARETAKER_TYPE",
    "Baby",
    "Settings",
    "AppConfig",
    "EmailConfig",
    "Unit",
    "DEFAULT_SECURITY_PIN",

    # Registros de actividad
    "SleepLog",
    "FeedLog",
    "DiaperLog",
    "BathLog",
    "PumpLog",
    "Note",
    "Milestone",
    "Measurement",
    "Medicine",
    "MedicineLog",

    # Calendario y feedback
    "Contact",
    "CalendarEvent",
    "BabyEvent",
    "CaretakerEvent",
    "ContactEvent",
    "Feedback",
]
