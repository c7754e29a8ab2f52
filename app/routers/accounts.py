from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.deps import get_db, get_current_user, require_account, require_sysadmin
from app.models import Account, Caretaker, Family, Settings, utcnow
from app.schemas import (
    AuthContext, AccountLoginRequest, RegisterRequest, EmailRequest, TokenRequest,
    ResetPasswordRequest, ChangePasswordRequest, PasswordRequest, AccountUpdateRequest,
    LinkCaretakerRequest, AccountUser, AccountStatusOut, AccountListItem, ok,
)
from app.security import hash_password, verify_password, random_token
from app.services import auth_service, email_service
from app.services.account_service import (
    account_status, get_account_by_email, get_account_family, get_account_caretaker,
)
from app.services.ip_lockout import (
    get_client_ip, login_lockout, registration_limiter, resend_verification_limiter,
)
from app.services.timezone import ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{}|;:,.<>?]")
RESET_TOKEN_TTL = timedelta(minutes=15)

GENERIC_REGISTER_MESSAGE = "If this email is not registered yet, you will receive a verification email shortly."
GENERIC_RESEND_MESSAGE = "If the account exists and is not verified, a new verification email has been sent."
GENERIC_FORGOT_MESSAGE = "If an account exists for this email, a password reset link has been sent."


# -------------------- Helper Functions --------------------

def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.fullmatch(email))


def is_strong_password(password: str) -> bool:
    """>= 8 caracteres con minúscula, mayúscula, dígito y carácter especial."""
    return (
        len(password) >= 8
        and re.search(r"[a-z]", password) is not None
        and re.search(r"[A-Z]", password) is not None
        and re.search(r"[0-9]", password) is not None
        and SPECIAL_RE.search(password) is not None
    )


def is_valid_reset_password(password: str) -> bool:
    return len(password) >= 8 and re.search(r"[A-Za-z]", password) is not None and re.search(r"\d", password) is not None


def _rate_limited(minutes: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Too many attempts. Try again in {minutes} minute(s).",
    )


async def _account_or_404(db: AsyncSession, account_id: Optional[str]) -> Account:
    account = await db.get(Account, account_id) if account_id else None
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return account


async def _valid_reset_account(db: AsyncSession, token: Optional[str]) -> Account:
    account = None
    if token:
        account = await db.scalar(select(Account).where(Account.password_reset_token == token))
    if account is None or not account.reset_token_expires_at or ensure_utc(account.reset_token_expires_at) < utcnow():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")
    return account


# -------------------- Registro y login --------------------

@router.post("/register")
async def register(data: RegisterRequest, request: Request, db: AsyncSession = Depends(get_db)):
    ip = get_client_ip(request)
    allowed, minutes = registration_limiter.check(ip)
    if not allowed:
        logger.warning("Registration rate limit reached", extra={"ip": ip})
        raise _rate_limited(minutes)
    registration_limiter.record(ip)

    if not data.email or not data.password or not data.first_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email, password and first name are required")
    email = data.email.strip().lower()
    if not is_valid_email(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a valid email address")
    if not is_strong_password(data.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password must be at least 8 characters and include lowercase, uppercase, a number and a special character",
        )

    if await get_account_by_email(db, email) is not None:
        # Misma respuesta que un alta nueva: no se revela si el email existe
        logger.info("Registration attempt for existing email")
        return ok({"success": True, "message": GENERIC_REGISTER_MESSAGE})

    account = Account(
        email=email,
        password=hash_password(data.password),
        first_name=data.first_name.strip(),
        last_name=(data.last_name or "").strip() or None,
        verification_token=random_token(3),
        betaparticipant=settings.beta,
        provider="email",
    )
    db.add(account)
    await db.commit()
    logger.info("Account registered", extra={"account_id": account.id})

    await email_service.send_verification_email(db, account.email, account.verification_token, account.first_name or "")
    return ok({"success": True, "message": GENERIC_REGISTER_MESSAGE})


@router.post("/login")
async def login(data: AccountLoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    ip = auth_service.enforce_ip_lockout(request)

    if not data.email or not data.password:
        login_lockout.record_failure(ip)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")
    if not is_valid_email(data.email.strip()):
        login_lockout.record_failure(ip)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a valid email address")

    account = await get_account_by_email(db, data.email)
    if account is None or not verify_password(data.password, account.password):
        raise auth_service.fail_login(ip, "Invalid email or password")
    if account.closed:
        raise auth_service.fail_login(ip, "This account has been closed")

    login_lockout.reset(ip)
    family = await get_account_family(db, account.id)
    caretaker = await get_account_caretaker(db, account.id)
    logger.info("Account login", extra={"account_id": account.id})

    return ok({
        "success": True,
        "message": "Login successful",
        "token": auth_service.account_token(account, family, caretaker),
        "user": AccountUser(
            id=account.id,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            verified=account.verified,
            has_family=family is not None,
            family_id=family.id if family else None,
            family_slug=family.slug if family else None,
        ),
        "familySlug": family.slug if family else None,
    })


# -------------------- Verificación de email --------------------

async def _verify(db: AsyncSession, token: Optional[str]) -> dict:
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Verification token is required")
    account = await db.scalar(select(Account).where(Account.verification_token == token))
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid verification token")

    family = await get_account_family(db, account.id)
    redirect_url = f"/{family.slug}" if family else "/account/family-setup"
    if account.verified:
        return {"alreadyVerified": True, "redirectUrl": redirect_url}

    account.verified = True
    account.verification_token = None
    await db.commit()
    logger.info("Account verified", extra={"account_id": account.id})

    if family is not None:
        pin = await db.scalar(select(Settings.security_pin).where(Settings.family_id == family.id).limit(1))
        caretaker = await get_account_caretaker(db, account.id)
        await email_service.send_welcome_email(
            db, account.email, account.first_name or "", family.slug, pin or "",
            caretaker.login_id if caretaker else "00",
        )
    return {"alreadyVerified": False, "redirectUrl": redirect_url}


@router.get("/verify")
async def verify_get(token: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    return ok(await _verify(db, token))


@router.post("/verify")
async def verify_post(data: TokenRequest, db: AsyncSession = Depends(get_db)):
    return ok(await _verify(db, data.token))


@router.post("/resend-verification")
async def resend_verification(data: EmailRequest, request: Request, db: AsyncSession = Depends(get_db)):
    ip = get_client_ip(request)
    allowed, minutes = resend_verification_limiter.check(ip)
    if not allowed:
        raise _rate_limited(minutes)
    resend_verification_limiter.record(ip)

    if not data.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

    account = await get_account_by_email(db, data.email)
    if account is not None and not account.verified and not account.closed:
        account.verification_token = random_token(3)
        await db.commit()
        await email_service.send_verification_email(db, account.email, account.verification_token, account.first_name or "")
    return ok({"success": True, "message": GENERIC_RESEND_MESSAGE})


# -------------------- Contraseñas --------------------

@router.post("/forgot-password")
async def forgot_password(data: EmailRequest, db: AsyncSession = Depends(get_db)):
    if not data.email or not is_valid_email(data.email.strip()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a valid email address")

    account = await get_account_by_email(db, data.email)
    if account is None or account.closed:
        return ok({"success": True, "message": GENERIC_FORGOT_MESSAGE})
    if not account.verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please verify your email before resetting your password")

    account.password_reset_token = random_token(16)
    account.reset_token_expires_at = utcnow() + RESET_TOKEN_TTL
    await db.commit()
    await email_service.send_password_reset_email(db, account.email, account.password_reset_token, account.first_name or "")
    return ok({"success": True, "message": GENERIC_FORGOT_MESSAGE})


@router.get("/reset-password")
async def validate_reset_token(token: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    account = await _valid_reset_account(db, token)
    return ok({"valid": True, "email": account.email})


@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    if not data.token or not data.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token and password are required")
    if not is_valid_reset_password(data.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password must be at least 8 characters and contain a letter and a number",
        )
    account = await _valid_reset_account(db, data.token)
    account.password = hash_password(data.password)
    account.password_reset_token = None
    account.reset_token_expires_at = None
    await db.commit()
    logger.info("Password reset", extra={"account_id": account.id})
    return ok({"success": True, "message": "Password has been reset"})


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    ctx: AuthContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    if not data.current_password or not data.new_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current and new password are required")
    if not is_strong_password(data.new_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password must be at least 8 characters and include lowercase, uppercase, a number and a special character",
        )
    if data.current_password == data.new_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New password must be different from the current one")

    account = await _account_or_404(db, ctx.account_id)
    if not verify_password(data.current_password, account.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")

    account.password = hash_password(data.new_password)
    await db.commit()
    return ok({"success": True, "message": "Password changed"})


# -------------------- Gestión de la cuenta --------------------

@router.put("/update")
async def update_account(
    data: AccountUpdateRequest,
    ctx: AuthContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    if not data.first_name or not data.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="First name and email are required")
    email = data.email.strip().lower()
    if not is_valid_email(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please enter a valid email address")

    account = await _account_or_404(db, ctx.account_id)
    if email != account.email:
        taken = await db.scalar(select(Account.id).where(Account.email == email, Account.id != account.id))
        if taken:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email address already in use")
        account.email = email

    account.first_name = data.first_name.strip()
    account.last_name = (data.last_name or "").strip() or None
    await db.commit()
    return ok({
        "id": account.id,
        "email": account.email,
        "firstName": account.first_name,
        "lastName": account.last_name,
    })


@router.post("/close")
async def close_account(
    data: PasswordRequest,
    ctx: AuthContext = Depends(require_account),
    db: AsyncSession = Depends(get_db),
):
    if not data.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required")
    account = await _account_or_404(db, ctx.account_id)
    if not verify_password(data.password, account.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect password")

    now = utcnow()
    account.closed = True
    account.closed_at = now
    account.verification_token = None
    account.password_reset_token = None
    account.reset_token_expires_at = None

    family = await get_account_family(db, account.id)
    if family is not None:
        family.is_active = False
    caretaker = await get_account_caretaker(db, account.id)
    if caretaker is not None:
        caretaker.deleted_at = now
    await db.commit()
    logger.info("Account closed", extra={"account_id": account.id})

    await email_service.send_account_closure_email(db, account.email, account.first_name or "")
    return ok({"success": True, "message": "Account closed"})


@router.get("/status")
async def get_status(ctx: AuthContext = Depends(require_account), db: AsyncSession = Depends(get_db)):
    account = await _account_or_404(db, ctx.account_id)
    family = await get_account_family(db, account.id)
    state, subscription_active = account_status(account, family)
    return ok(AccountStatusOut(
        account_id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        verified=account.verified,
        has_family=family is not None,
        family_slug=family.slug if family else None,
        betaparticipant=account.betaparticipant,
        closed=account.closed,
        closed_at=account.closed_at,
        plan_type=account.plan_type,
        plan_expires=account.plan_expires,
        trial_ends=account.trial_ends,
        subscription_id=account.subscription_id,
        subscription_active=subscription_active,
        account_status=state,
    ))


@router.post("/link-caretaker")
async def link_caretaker(
    data: LinkCaretakerRequest,
    ctx: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Vincula un cuidador de la familia de la cuenta (login por email = ese cuidador)."""
    if not ctx.is_account_auth or not ctx.account_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only account owners can link caretakers")
    if not data.caretaker_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="caretakerId is required")

    account = await _account_or_404(db, ctx.account_id)
    family = await get_account_family(db, account.id)
    if family is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Account has no family")

    caretaker = await db.scalar(
        select(Caretaker).where(Caretaker.id == data.caretaker_id, Caretaker.deleted_at.is_(None))
    )
    if caretaker is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Caretaker not found")
    if caretaker.family_id != family.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Caretaker does not belong to this account's family")

    previous = await get_account_caretaker(db, account.id)
    if previous is not None and previous.id != caretaker.id:
        previous.account_id = None
    caretaker.account_id = account.id
    await db.commit()
    return ok({"caretakerId": caretaker.id, "accountId": account.id})


@router.get("/manage")
async def manage_accounts(
    _: AuthContext = Depends(require_sysadmin),
    db: AsyncSession = Depends(get_db),
):
    rows = (await db.execute(
        select(Account, Family.slug)
        .outerjoin(Family, Family.account_id == Account.id)
        .order_by(Account.created_at.desc())
    )).all()
    items = [
        AccountListItem.model_validate(account).model_copy(update={"family_slug": slug})
        for account, slug in rows
    ]
    total = await db.scalar(select(func.count()).select_from(Account))
    return ok({"accounts": items, "total": total})
