# =====================================================================
# ESQUEMAS DE CUENTAS
# =====================================================================

from __future__ import annotations

from typing import Optional

from .common import CamelModel, UTCDateTime
from .enums import AccountStatus, PlanType


class RegisterRequest(CamelModel):
    """
    Alta de cuenta por email.

    Attributes:
        email (Optional[str]): Email (se guarda en minúsculas)
        password (Optional[str]): Contraseña fuerte
        first_name (Optional[str]): Nombre
        last_name (Optional[str]): Apellidos
    """
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class EmailRequest(CamelModel):
    email: Optional[str] = None


class TokenRequest(CamelModel):
    token: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: Optional[str] = None
    password: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class PasswordRequest(CamelModel):
    password: Optional[str] = None


class AccountUpdateRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class LinkCaretakerRequest(CamelModel):
    caretaker_id: Optional[str] = None


class AccountUser(CamelModel):
    """Datos de la cuenta que se devuelven tras el login."""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    verified: bool
    has_family: bool = False
    family_id: Optional[str] = None
    family_slug: Optional[str] = None


class AccountStatusOut(CamelModel):
    """
    Estado de la cuenta para la pantalla de gestión.

    Attributes:
        account_status (AccountStatus): closed, no_family, trial, expired o active
        subscription_active (bool): Plan en vigor (o beta)
    """
    account_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    verified: bool
    has_family: bool
    family_slug: Optional[str] = None
    betaparticipant: bool
    closed: bool
    closed_at: Optional[UTCDateTime] = None
    plan_type: Optional[PlanType] = None
    plan_expires: Optional[UTCDateTime] = None
    trial_ends: Optional[UTCDateTime] = None
    subscription_id: Optional[str] = None
    subscription_active: bool
    account_status: AccountStatus


class AccountListItem(CamelModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    verified: bool
    betaparticipant: bool
    closed: bool
    plan_type: Optional[PlanType] = None
    plan_expires: Optional[UTCDateTime] = None
    trial_ends: Optional[UTCDateTime] = None
    family_slug: Optional[str] = None
    created_at: UTCDateTime
