# =====================================================================
# ESQUEMAS DE FAMILIA, CUIDADORES, BEBÉS E INVITACIONES
# =====================================================================

from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import Field

from .common import CamelModel, OutModel, UTCDateTime
from .enums import CaretakerRole, Gender


# =========================================================
# FAMILIA
# =========================================================

class FamilyOut(OutModel):
    name: str
    slug: str
    is_active: bool


class FamilyWithCounts(FamilyOut):
    caretaker_count: int = 0
    baby_count: int = 0


class FamilyAccountStatus(CamelModel):
    is_expired: bool
    is_trial_expired: bool
    expiration_date: Optional[str] = None
    betaparticipant: bool


class FamilyBySlugOut(FamilyOut):
    account_status: Optional[FamilyAccountStatus] = None


class FamilyUpdate(CamelModel):
    """Nombre y slug son obligatorios (400 si faltan)."""
    name: Optional[str] = None
    slug: Optional[str] = None


class FamilyManageCreate(CamelModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    is_active: Optional[bool] = None


class FamilyManageUpdate(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    is_active: Optional[bool] = None


class SetupLinkRequest(CamelModel):
    password: Optional[str] = None


class SetupStartRequest(CamelModel):
    """
    Attributes:
        name (Optional[str]): Nombre de la familia
        slug (Optional[str]): URL de la familia
        token (Optional[str]): Token de invitación (link de configuración)
        is_new_family (bool): Crear siempre una familia nueva (sysadmin)
    """
    name: Optional[str] = None
    slug: Optional[str] = None
    token: Optional[str] = None
    is_new_family: bool = False


# =========================================================
# CUIDADORES
# =========================================================

class CaretakerCreate(CamelModel):
    """
    Attributes:
        login_id (str): Dos dígitos, único en la familia ("00" reservado)
        name (str): Nombre visible
        type (Optional[str]): Parentesco o tipo libre
        role (CaretakerRole): USER o ADMIN
        inactive (bool): Deshabilita el login
        security_pin (str): PIN de 6 a 10 dígitos
        family_id (Optional[str]): Obligatorio para sysadmin/setup/cuenta
    """
    login_id: str = Field(..., pattern=r"^\d{2}$")
    name: str = Field(..., min_length=1)
    type: Optional[str] = None
    role: CaretakerRole = "USER"
    inactive: bool = False
    security_pin: str = Field(..., pattern=r"^\d{6,10}$")
    family_id: Optional[str] = None


class CaretakerUpdate(CamelModel):
    login_id: Optional[str] = Field(None, pattern=r"^\d{2}$")
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = None
    role: Optional[CaretakerRole] = None
    inactive: Optional[bool] = None
    security_pin: Optional[str] = Field(None, pattern=r"^\d{6,10}$")


class CaretakerOut(OutModel):
    login_id: str
    name: str
    type: Optional[str] = None
    role: CaretakerRole
    inactive: bool
    security_pin: str
    family_id: Optional[str] = None
    deleted_at: Optional[UTCDateTime] = None


# =========================================================
# BEBÉS
# =========================================================

class BabyCreate(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    birth_date: datetime
    gender: Gender
    inactive: bool = False
    feed_warning_time: str = Field("03:00", pattern=r"^\d{2}:\d{2}$")
    diaper_warning_time: str = Field("02:00", pattern=r"^\d{2}:\d{2}$")
    family_id: Optional[str] = None


class BabyUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    birth_date: Optional[datetime] = None
    gender: Optional[Gender] = None
    inactive: Optional[bool] = None
    feed_warning_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    diaper_warning_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")


class BabyOut(OutModel):
    first_name: str
    last_name: str
    birth_date: UTCDateTime
    gender: Optional[Gender] = None
    inactive: bool
    feed_warning_time: str
    diaper_warning_time: str
    family_id: str
    deleted_at: Optional[UTCDateTime] = None
