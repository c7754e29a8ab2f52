# =====================================================================
# ESQUEMAS DE CONFIGURACIÓN
# =====================================================================

from __future__ import annotations

from typing import Any, List, Optional
from pydantic import Field

from .common import CamelModel, OutModel
from .enums import AuthType, EmailProvider


class SettingsOut(OutModel):
    family_id: Optional[str] = None
    family_name: str
    security_pin: str
    auth_type: Optional[AuthType] = None
    default_bottle_unit: str
    default_solids_unit: str
    default_height_unit: str
    default_weight_unit: str
    default_temp_unit: str
    activity_settings: Optional[str] = None
    enable_debug_timer: bool
    enable_debug_timezone: bool


class SettingsUpdate(CamelModel):
    """Solo se aplican los campos presentes en el cuerpo."""
    family_name: Optional[str] = None
    security_pin: Optional[str] = None
    auth_type: Optional[AuthType] = None
    default_bottle_unit: Optional[str] = None
    default_solids_unit: Optional[str] = None
    default_height_unit: Optional[str] = None
    default_weight_unit: Optional[str] = None
    default_temp_unit: Optional[str] = None
    enable_debug_timer: Optional[bool] = None
    enable_debug_timezone: Optional[bool] = None


class ActivitySettingsOut(CamelModel):
    order: List[str]
    visible: List[str]
    caretaker_id: Optional[str] = None


class ActivitySettingsRequest(CamelModel):
    """order y visible se validan a mano (400 si no son listas)."""
    order: Any = None
    visible: Any = None
    caretaker_id: Optional[str] = None


class UnitOut(OutModel):
    unit_abbr: str
    unit_name: str
    activity_types: Optional[str] = None


class AppConfigOut(OutModel):
    admin_pass: str
    root_domain: str
    enable_https: bool


class EmailConfigOut(OutModel):
    provider_type: EmailProvider
    send_grid_api_key: Optional[str] = None
    smtp2go_api_key: Optional[str] = Field(None, alias="smtp2goApiKey")
    server_address: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    enable_tls: bool
    allow_self_signed_cert: bool


class AppConfigData(CamelModel):
    admin_pass: Optional[str] = None
    root_domain: Optional[str] = None
    enable_https: Optional[bool] = None


class EmailConfigData(CamelModel):
    provider_type: Optional[EmailProvider] = None
    send_grid_api_key: Optional[str] = None
    smtp2go_api_key: Optional[str] = Field(None, alias="smtp2goApiKey")
    server_address: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    enable_tls: Optional[bool] = None
    allow_self_signed_cert: Optional[bool] = None


class AppConfigUpdate(CamelModel):
    app_config_data: Optional[AppConfigData] = None
    email_config_data: Optional[EmailConfigData] = None


class DeploymentConfigOut(CamelModel):
    deployment_mode: str
    enable_accounts: bool
    allow_account_registration: bool
    beta_enabled: bool
