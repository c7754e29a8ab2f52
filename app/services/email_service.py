"""
Envío de emails de cuenta (verificación, reset, bienvenida, cierre).

El proveedor sale de EmailConfig:
  - SENDGRID / SMTP2GO: API HTTP con httpx
  - SMTP: smtplib en un hilo (TLS opcional)
Un fallo de envío se registra y nunca rompe la petición.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

import httpx
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import AppConfig, EmailConfig
from app.security import decrypt, is_encrypted

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
SMTP2GO_URL = "https://api.smtp2go.com/v3/email/send"
HTTP_TIMEOUT = 15.0


def _secret(value: Optional[str]) -> Optional[str]:
    if value and is_encrypted(value):
        try:
            return decrypt(value)
        except ValueError:
            logger.error("Unable to decrypt email secret")
            return None
    return value


async def domain_url(db: AsyncSession) -> str:
    """URL pública: AppConfig (rootDomain + https) o APP_URL."""
    config = await db.scalar(select(AppConfig).limit(1))
    if config is None or not config.root_domain:
        return settings.app_url.rstrip("/")
    protocol = "https" if config.enable_https else "http"
    return f"{protocol}://{config.root_domain}"


# ---------- Proveedores ----------

async def _send_sendgrid(api_key: str, to: str, subject: str, text: str, html: str) -> bool:
    payload = {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": settings.email_from},
        "subject": subject,
        "content": [{"type": "text/plain", "value": text}, {"type": "text/html", "value": html}],
    }
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        resp = await client.post(SENDGRID_URL, json=payload, headers={"Authorization": f"Bearer {api_key}"})
    if resp.status_code >= 300:
        logger.error("SendGrid rejected email", extra={"status": resp.status_code, "body": resp.text[:300]})
        return False
    return True


async def _send_smtp2go(api_key: str, to: str, subject: str, text: str, html: str) -> bool:
    payload = {
        "sender": settings.email_from,
        "to": [to],
        "subject": subject,
        "text_body": text,
        "html_body": html,
    }
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        resp = await client.post(SMTP2GO_URL, json=payload, headers={"X-Smtp2go-Api-Key": api_key})
    data = resp.json().get("data", {}) if resp.content else {}
    if resp.is_success and data.get("succeeded", 0) > 0:
        return True
    logger.error("SMTP2GO rejected email", extra={"status": resp.status_code, "error": data.get("error")})
    return False


def _send_smtp_sync(config: EmailConfig, to: str, subject: str, text: str, html: str) -> bool:
    msg = EmailMessage()
    msg["From"] = settings.email_from
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text)
    msg.add_alternative(html, subtype="html")

    context = ssl.create_default_context()
    if config.allow_self_signed_cert:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    port = config.port or 587
    if port == 465:
        server = smtplib.SMTP_SSL(config.server_address, port, context=context, timeout=HTTP_TIMEOUT)
    else:
        server = smtplib.SMTP(config.server_address, port, timeout=HTTP_TIMEOUT)
    with server:
        if config.enable_tls and port != 465:
            server.starttls(context=context)
        password = _secret(config.password)
        if config.username and password:
            server.login(config.username, password)
        server.send_message(msg)
    return True


async def send_email(db: AsyncSession, to: str, subject: str, text: str, html: str) -> bool:
    config = await db.scalar(select(EmailConfig).limit(1))
    if config is None:
        logger.warning("Email not configured, skipping", extra={"to": to, "subject": subject})
        return False

    try:
        if config.provider_type == "SMTP":
            if not config.server_address:
                logger.warning("SMTP server not configured, skipping", extra={"to": to})
                return False
            return await run_in_threadpool(_send_smtp_sync, config, to, subject, text, html)

        if config.provider_type == "SMTP2GO":
            api_key = _secret(config.smtp2go_api_key)
            if not api_key:
                logger.warning("SMTP2GO API key not configured, skipping", extra={"to": to})
                return False
            return await _send_smtp2go(api_key, to, subject, text, html)

        api_key = _secret(config.send_grid_api_key)
        if not api_key:
            logger.warning("SendGrid API key not configured, skipping", extra={"to": to})
            return False
        return await _send_sendgrid(api_key, to, subject, text, html)
    except (httpx.HTTPError, smtplib.SMTPException, OSError, ValueError) as exc:
        logger.error(f"Email delivery failed: {exc}", extra={"to": to, "provider": config.provider_type})
        return False


# =====================================================================
# PLANTILLAS
# =====================================================================

def _button(url: str, label: str) -> str:
    return (
        f'<div style="text-align:center;margin:30px 0;"><a href="{url}" '
        f'style="background-color:#0d9488;color:white;padding:12px 24px;text-decoration:none;'
        f'border-radius:6px;display:inline-block;">{label}</a></div>'
    )


def _wrap(title: str, body: str) -> str:
    return (
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">'
        f'<h2 style="color:#0d9488;">{title}</h2>{body}'
        "<p>Regards,<br>The Baby Control Team</p></div>"
    )


async def send_verification_email(db: AsyncSession, email: str, token: str, first_name: str) -> bool:
    url = f"{await domain_url(db)}/#verify?token={token}"
    text = (
        f"Hi {first_name},\n\nWelcome to Baby Control! Please verify your email address:\n\n{url}\n\n"
        "This link expires in 24 hours.\n\nRegards,\nThe Baby Control Team"
    )
    html = _wrap(
        "Welcome to Baby Control!",
        f"<p>Hi {first_name},</p><p>Please verify your email address.</p>"
        + _button(url, "Verify email address")
        + '<p style="color:#666;font-size:14px;">This link expires in 24 hours.</p>',
    )
    return await send_email(db, email, "Welcome to Baby Control - Verify your account", text, html)


async def send_password_reset_email(db: AsyncSession, email: str, token: str, first_name: str) -> bool:
    url = f"{await domain_url(db)}/#passwordreset?token={token}"
    text = (
        f"Hi {first_name},\n\nUse this link to reset your Baby Control password:\n\n{url}\n\n"
        "This link expires in 15 minutes. If you did not ask for it, ignore this email.\n\n"
        "Regards,\nThe Baby Control Team"
    )
    html = _wrap(
        "Password reset request",
        f"<p>Hi {first_name},</p><p>Click below to reset your password.</p>"
        + _button(url, "Reset password")
        + '<p style="color:#666;font-size:14px;">This link expires in 15 minutes.</p>',
    )
    return await send_email(db, email, "Baby Control - Password reset request", text, html)


async def send_welcome_email(
    db: AsyncSession, email: str, first_name: str, family_slug: str, family_pin: str, login_id: str
) -> bool:
    family_url = f"{await domain_url(db)}/{family_slug}"
    text = (
        f"Hi {first_name},\n\nYour account is verified and your family is ready.\n\n"
        f"- Family URL: {family_url}\n- Your caretaker login ID: {login_id}\n- Family PIN: {family_pin}\n\n"
        "Regards,\nThe Baby Control Team"
    )
    html = _wrap(
        "Welcome to Baby Control!",
        f"<p>Hi {first_name},</p><p>Your account is verified and your family is ready.</p>"
        f'<p><strong>Family URL:</strong> <a href="{family_url}">{family_url}</a></p>'
        f"<p><strong>Your caretaker login ID:</strong> <code>{login_id}</code></p>"
        f"<p><strong>Family PIN:</strong> <code>{family_pin}</code></p>"
        + _button(family_url, "Open family dashboard"),
    )
    return await send_email(db, email, "Welcome to Baby Control - Your family is ready!", text, html)


async def send_account_closure_email(db: AsyncSession, email: str, first_name: str) -> bool:
    text = (
        f"Hi {first_name},\n\nYour Baby Control account has been closed and your family deactivated.\n"
        "If this was a mistake, reply to this email.\n\nRegards,\nThe Baby Control Team"
    )
    html = _wrap(
        "Your account has been closed",
        f"<p>Hi {first_name},</p><p>Your Baby Control account has been closed and your family deactivated.</p>"
        "<p>If this was a mistake, reply to this email.</p>",
    )
    return await send_email(db, email, "Baby Control - Account closed", text, html)


async def send_feedback_confirmation_email(db: AsyncSession, email: str, name: str, subject: str) -> bool:
    url = await domain_url(db)
    text = (
        f"Hi {name},\n\nThanks for your feedback! We received your message about \"{subject}\" "
        "and our team will review it.\n\nRegards,\nThe Baby Control Team"
    )
    html = _wrap(
        "Thanks for your feedback!",
        f"<p>Hi {name},</p><p>We received your message about <strong>\"{subject}\"</strong> "
        "and our team will review it.</p>"
        + _button(url, "Back to Baby Control"),
    )
    return await send_email(db, email, "Baby Control - Feedback received", text, html)
