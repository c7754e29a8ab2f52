# =====================================================================
# MÓDULO DE ESQUEMAS DE PYDANTIC
# =====================================================================

"""
Esquemas de Pydantic de la API de Baby Control.
Cada grupo de esquemas está separado en su propio archivo.
"""

from .common import CamelModel, OutModel, UTCDateTime, ok

# Importar enumeraciones comunes
from .enums import (
    CaretakerRole,
    Gender,
    SleepType,
    SleepQuality,
    FeedType,
    BreastSide,
    DiaperType,
    MilestoneCategory,
    MeasurementType,
    AuthType,
    PlanType,
    EmailProvider,
    AccountStatus,
    ActivityKind,
    CalendarEventType,
    RecurrencePattern,
)

# Importar esquemas por entidad
from .auth import AuthContext, LoginRequest, LoginResponse, AccountLoginRequest, SetupAuthRequest
from .account import (
    RegisterRequest, EmailRequest, TokenRequest, ResetPasswordRequest, ChangePasswordRequest,
    PasswordRequest, AccountUpdateRequest, LinkCaretakerRequest, AccountUser, AccountStatusOut,
    AccountListItem,
)
from .family import (
    FamilyOut, FamilyWithCounts, FamilyAccountStatus, FamilyBySlugOut, FamilyUpdate,
    FamilyManageCreate, FamilyManageUpdate, SetupLinkRequest, SetupStartRequest,
    CaretakerCreate, CaretakerUpdate, CaretakerOut,
    BabyCreate, BabyUpdate, BabyOut,
)
from .logs import (
    LogOut,
    SleepLogCreate, SleepLogUpdate, SleepLogOut,
    FeedLogCreate, FeedLogUpdate, FeedLogOut,
    DiaperLogCreate, DiaperLogUpdate, DiaperLogOut,
    BathLogCreate, BathLogUpdate, BathLogOut,
    PumpLogCreate, PumpLogUpdate, PumpLogOut,
    NoteCreate, NoteUpdate, NoteOut,
    MilestoneCreate, MilestoneUpdate, MilestoneOut,
    MeasurementCreate, MeasurementUpdate, MeasurementOut,
)
from .medicine import (
    MedicineCreate, MedicineUpdate, MedicineOut,
    MedicineLogCreate, MedicineLogUpdate, MedicineLogOut, ActiveDoseOut,
)
from .settings import (
    SettingsOut, SettingsUpdate, ActivitySettingsOut, ActivitySettingsRequest, UnitOut,
    AppConfigOut, EmailConfigOut, AppConfigData, EmailConfigData, AppConfigUpdate,
    DeploymentConfigOut,
)
from .payment import (
    CheckoutSessionRequest, CheckoutSessionOut, VerifySessionRequest, VerifySessionOut,
    PaymentMethodOut, SubscriptionStatusOut, PaymentHistoryItem, PaymentHistoryOut,
)
from .timeline import LastMeasurements, LastActivitiesOut
from .calendar import (
    ContactCreate, ContactOut,
    CalendarEventCreate, CalendarEventUpdate, CalendarEventOut, EventBaby, EventCaretaker,
    FeedbackCreate, FeedbackUpdate, FeedbackOut,
)
