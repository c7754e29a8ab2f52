# =====================================================================
# ESQUEMAS DE AUTENTICACIÓN
# =====================================================================

from __future__ import annotations

from typing import Optional
from pydantic import Field

from .common import CamelModel


class AuthContext(CamelModel):
    """
    Resultado de resolver la identidad de una petición (token o cookie).

    Attributes:
        authenticated (bool): Si hay una identidad válida
        caretaker_id (Optional[str]): Cuidador (o id de cuenta si no tiene cuidador)
        caretaker_type (Optional[str]): Tipo libre del cuidador, "ACCOUNT" o "Setup"
        caretaker_role (Optional[str]): USER, ADMIN, OWNER o SYSADMIN
        family_id (Optional[str]): Familia activa
        family_slug (Optional[str]): Slug de la familia activa
        is_sys_admin (bool): Login con la contraseña de administración
        is_setup_auth (bool): Token emitido para un link de configuración
        setup_token (Optional[str]): Token de la invitación
        auth_type (Optional[str]): SYSTEM o CARETAKER
        is_account_auth (bool): Login por email (SaaS)
        account_id (Optional[str]): Cuenta
        account_email (Optional[str]): Email de la cuenta
        is_account_owner (bool): Propietario de la cuenta
        verified (bool): Email verificado
        betaparticipant (bool): Cuenta beta (nunca expira)
        is_expired (bool): Prueba o plan vencidos (solo SaaS)
        trial_ends / plan_expires / plan_type: Estado del plan
        error (Optional[str]): Motivo cuando no está autenticado
    """
    authenticated: bool = False
    caretaker_id: Optional[str] = None
    caretaker_type: Optional[str] = None
    caretaker_role: Optional[str] = None
    family_id: Optional[str] = None
    family_slug: Optional[str] = None
    is_sys_admin: bool = False
    is_setup_auth: bool = False
    setup_token: Optional[str] = None
    auth_type: Optional[str] = None
    is_account_auth: bool = False
    account_id: Optional[str] = None
    account_email: Optional[str] = None
    is_account_owner: bool = False
    verified: bool = False
    betaparticipant: bool = False
    is_expired: bool = False
    trial_ends: Optional[str] = None
    plan_expires: Optional[str] = None
    plan_type: Optional[str] = None
    error: Optional[str] = None

    @property
    def real_caretaker_id(self) -> Optional[str]:
        """Id utilizable como FK de caretaker (None para sysadmin/cuenta sin cuidador)."""
        if self.is_sys_admin or self.is_setup_auth:
            return None
        if self.is_account_auth and self.caretaker_type == "ACCOUNT":
            return None
        return self.caretaker_id


class LoginRequest(CamelModel):
    """
    Login con PIN o con la contraseña de administración.

    Attributes:
        login_id (Optional[str]): Id de 2 dígitos (modo CARETAKER)
        security_pin (Optional[str]): PIN
        admin_password (Optional[str]): Contraseña de sysadmin
        family_slug (Optional[str]): Familia a la que se accede
    """
    login_id: Optional[str] = None
    security_pin: Optional[str] = None
    admin_password: Optional[str] = None
    family_slug: Optional[str] = None


class LoginResponse(CamelModel):
    id: str
    name: str
    type: Optional[str] = None
    role: str
    token: str
    family_id: Optional[str] = None
    family_slug: Optional[str] = None
    is_sys_admin: bool = False


class AccountLoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class SetupAuthRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
