from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings as app_settings
from app.deps import get_db, require_sysadmin, require_write, require_family_id, family_scope
from app.models import AppConfig, Caretaker, EmailConfig, Settings, Unit, SYSTEM_LOGIN_ID, utcnow
from app.schemas import (
    AuthContext, AppConfigOut, AppConfigUpdate, DeploymentConfigOut, EmailConfigOut,
    SettingsOut, SettingsUpdate, UnitOut, ok,
)
from app.security import decrypt, encrypt, is_encrypted
from app.services.family_service import get_or_create_settings
from app.services.seed import DEFAULT_ADMIN_PASS
from app.services.timezone import format_for_response, get_system_timezone

logger = logging.getLogger(__name__)

router = APIRouter(tags=["settings"])

EMAIL_SECRET_FIELDS = ("send_grid_api_key", "smtp2go_api_key", "password")


# -------------------- Helper Functions --------------------

def _reveal(value: Optional[str]) -> Optional[str]:
    """Descifra un secreto guardado; los valores antiguos en claro se devuelven tal cual."""
    if not is_encrypted(value):
        return value
    try:
        return decrypt(value)
    except ValueError:
        logger.error("Unable to decrypt stored configuration value")
        return ""


async def _app_config(db: AsyncSession) -> AppConfig:
    config = await db.scalar(select(AppConfig).limit(1))
    if config is None:
        config = AppConfig(admin_pass=encrypt(DEFAULT_ADMIN_PASS), root_domain="localhost", enable_https=False)
        db.add(config)
        await db.flush()
    return config


async def _email_config(db: AsyncSession) -> EmailConfig:
    config = await db.scalar(select(EmailConfig).limit(1))
    if config is None:
        config = EmailConfig(provider_type="SENDGRID", enable_tls=True, allow_self_signed_cert=False)
        db.add(config)
        await db.flush()
    return config


def _config_payload(app_config: AppConfig, email_config: EmailConfig) -> dict:
    app_out = AppConfigOut.model_validate(app_config).model_copy(
        update={"admin_pass": _reveal(app_config.admin_pass)}
    )
    email_out = EmailConfigOut.model_validate(email_config).model_copy(
        update={field: _reveal(getattr(email_config, field)) for field in EMAIL_SECRET_FIELDS}
    )
    return {"appConfig": app_out, "emailConfig": email_out}


# -------------------- Configuración de la familia --------------------

@router.get("/settings")
async def get_settings(
    family_id: str = Depends(family_scope),
    db: AsyncSession = Depends(get_db),
):
    row = await get_or_create_settings(db, family_id)
    await db.commit()
    return ok(SettingsOut.model_validate(row))


@router.put("/settings")
async def update_settings(
    data: SettingsUpdate,
    ctx: AuthContext = Depends(require_write),
    db: AsyncSession = Depends(get_db),
):
    family_id = require_family_id(ctx)
    row = await db.scalar(
        select(Settings).where(Settings.family_id == family_id).order_by(Settings.updated_at.desc()).limit(1)
    )
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settings not found")

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field != "auth_type":
            continue
        setattr(row, field, value)

    # El PIN de la familia es el del cuidador de sistema
    if changes.get("security_pin"):
        system = await db.scalar(
            select(Caretaker).where(
                Caretaker.family_id == family_id,
                Caretaker.login_id == SYSTEM_LOGIN_ID,
                Caretaker.deleted_at.is_(None),
            )
        )
        if system is not None:
            system.security_pin = changes["security_pin"]

    await db.commit()
    await db.refresh(row)
    logger.info("Settings updated", extra={"family_id": family_id, "fields": sorted(changes)})
    return ok(SettingsOut.model_validate(row))


@router.get("/settings/auth-life")
async def auth_life():
    return ok({"authLife": app_settings.auth_life})


# -------------------- Unidades --------------------

@router.get("/units")
async def list_units(
    activity_type: Optional[str] = Query(None, alias="activityType"),
    db: AsyncSession = Depends(get_db),
):
    """Unidades por nombre; filtradas por tipo de actividad si alguna coincide."""
    units = (await db.execute(select(Unit).order_by(Unit.unit_name))).scalars().all()
    if activity_type:
        wanted = activity_type.strip().lower()
        matching = [
            u for u in units
            if wanted in [t.strip().lower() for t in (u.activity_types or "").split(",")]
        ]
        if matching:
            units = matching
    return ok([UnitOut.model_validate(u) for u in units])


# -------------------- Configuración global --------------------

@router.get("/app-config")
async def get_app_config(
    _: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    app_config = await _app_config(db)
    email_config = await _email_config(db)
    await db.commit()
    return ok(_config_payload(app_config, email_config))


@router.put("/app-config")
async def update_app_config(
    data: AppConfigUpdate,
    _: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    app_config = await _app_config(db)
    email_config = await _email_config(db)

    if data.app_config_data is not None:
        changes = data.app_config_data.model_dump(exclude_unset=True)
        if changes.get("admin_pass"):
            app_config.admin_pass = encrypt(changes["admin_pass"])
        if changes.get("root_domain"):
            app_config.root_domain = changes["root_domain"]
        if changes.get("enable_https") is not None:
            app_config.enable_https = changes["enable_https"]

    if data.email_config_data is not None:
        for field, value in data.email_config_data.model_dump(exclude_unset=True).items():
            if field in EMAIL_SECRET_FIELDS:
                value = encrypt(value) if value else None
            elif value is None and field in ("provider_type", "enable_tls", "allow_self_signed_cert"):
                continue
            setattr(email_config, field, value)

    await db.commit()
    logger.info("Application configuration updated")
    return ok(_config_payload(app_config, email_config))


@router.get("/app-config/public")
async def public_app_config(db: AsyncSession = Depends(get_db)):
    config = await db.scalar(select(AppConfig).limit(1))
    if config is None:
        return ok({"rootDomain": "localhost", "enableHttps": False})
    return ok({"rootDomain": config.root_domain, "enableHttps": config.enable_https})


@router.get("/deployment-config")
async def deployment_config():
    return ok(DeploymentConfigOut(
        deployment_mode=app_settings.deployment_mode,
        enable_accounts=app_settings.enable_accounts,
        allow_account_registration=app_settings.allow_account_registration,
        beta_enabled=app_settings.beta,
    ))


@router.get("/system-timezone")
async def system_timezone():
    return ok({"systemTimezone": get_system_timezone(), "currentTime": format_for_response(utcnow())})
