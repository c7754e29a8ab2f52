# =====================================================================
# ENUMERACIONES DEL SISTEMA
# =====================================================================

from __future__ import annotations

from typing import Literal

"""
Enumeraciones que definen los tipos y estados del sistema.
Deben coincidir con las definiciones de app/models/base.py.
"""

# Roles de cuidador dentro de una familia
CaretakerRole = Literal["USER", "ADMIN"]

Gender = Literal["MALE", "FEMALE"]

SleepType = Literal["NAP", "NIGHT_SLEEP"]

SleepQuality = Literal["POOR", "FAIR", "GOOD", "EXCELLENT"]

FeedType = Literal["BREAST", "BOTTLE", "SOLIDS"]

BreastSide = Literal["LEFT", "RIGHT"]

DiaperType = Literal["WET", "DIRTY", "BOTH"]

MilestoneCategory = Literal["MOTOR", "COGNITIVE", "SOCIAL", "LANGUAGE", "CUSTOM"]

MeasurementType = Literal["HEIGHT", "WEIGHT", "HEAD_CIRCUMFERENCE", "TEMPERATURE"]

# Modo de login PIN de la familia
AuthType = Literal["SYSTEM", "CARETAKER"]

# sub = suscripción, full = pago único de por vida
PlanType = Literal["sub", "full"]

EmailProvider = Literal["SMTP2GO", "SENDGRID", "SMTP"]

AccountStatus = Literal["closed", "no_family", "trial", "expired", "active"]

# Tipos de actividad que muestra la timeline
ActivityKind = Literal[
    "sleep", "feed", "diaper", "bath", "pump", "note", "milestone", "measurement", "medicine"
]

CalendarEventType = Literal["APPOINTMENT", "CARETAKER_SCHEDULE", "REMINDER", "CUSTOM"]

# CUSTOM guarda la regla en texto libre (customRecurrence)
RecurrencePattern = Literal["DAILY", "WEEKLY", "BIWEEKLY", "MONTHLY", "YEARLY", "CUSTOM"]
