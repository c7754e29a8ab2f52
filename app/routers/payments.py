from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.deps import get_db, require_account_owner
from app.models import Account
from app.schemas import (
    AuthContext, CheckoutSessionRequest, CheckoutSessionOut, VerifySessionRequest, VerifySessionOut,
    PaymentMethodOut, SubscriptionStatusOut, PaymentHistoryItem, PaymentHistoryOut, ok,
)
from app.services import billing_service, stripe_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts/payments", tags=["payments"])


# -------------------- Helper Functions --------------------

def ensure_payments_enabled() -> None:
    """Pagos solo en modo SaaS y con Stripe configurado."""
    if not settings.is_saas:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payments are disabled in self-hosted mode")
    if not settings.stripe_secret_key:
        logger.error("STRIPE_SECRET_KEY is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Payment system is not configured")


async def owner_account(ctx: AuthContext, db: AsyncSession) -> Account:
    if not ctx.account_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Account ID not found")
    account = await db.get(Account, ctx.account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return account


def _epoch(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value else None


def _stored_status(account: Account) -> SubscriptionStatusOut:
    return SubscriptionStatusOut(
        is_active=account.plan_type == "full",
        plan_type=account.plan_type,
        current_period_end=account.plan_expires,
        cancel_at_period_end=False,
        trial_ends=account.trial_ends,
    )


# -------------------- Checkout --------------------

@router.post("/create-checkout-session")
async def create_checkout_session(
    data: CheckoutSessionRequest,
    ctx: AuthContext = Depends(require_account_owner),
    db: AsyncSession = Depends(get_db),
):
    ensure_payments_enabled()
    account = await owner_account(ctx, db)
    if not data.price_id or not data.plan_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields: priceId, planType")
    if data.plan_type not in ("sub", "full"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid plan type. Must be "sub" or "full"')

    try:
        customer_id = account.stripe_customer_id
        if not customer_id:
            name = f"{account.first_name or ''} {account.last_name or ''}".strip()
            customer = await stripe_service.create_customer(account.email, name, account.id)
            customer_id = customer["id"]
            account.stripe_customer_id = customer_id
            await db.commit()

        params = {
            "customer": customer_id,
            "mode": "subscription" if data.plan_type == "sub" else "payment",
            "line_items": [{"price": data.price_id, "quantity": 1}],
            "success_url": f"{settings.app_url}/account/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{settings.app_url}/account/payment-cancelled",
            "metadata": {"accountId": account.id, "planType": data.plan_type},
        }
        if data.plan_type == "sub":
            params["subscription_data"] = {"metadata": {"accountId": account.id}}
        else:
            params["payment_intent_data"] = {"metadata": {"accountId": account.id, "planType": "full"}}
        session = await stripe_service.create_checkout_session(**params)
    except stripe.StripeError as exc:
        logger.error(f"Checkout session creation failed: {exc}", extra={"account_id": account.id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create checkout session")

    logger.info("Checkout session created", extra={"account_id": account.id, "plan_type": data.plan_type})
    return ok(CheckoutSessionOut(session_id=session["id"], url=session.get("url")))


@router.post("/verify-session")
async def verify_session(
    data: VerifySessionRequest,
    ctx: AuthContext = Depends(require_account_owner),
    db: AsyncSession = Depends(get_db),
):
    ensure_payments_enabled()
    account = await owner_account(ctx, db)
    if not data.session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="sessionId is required")

    try:
        session = await stripe_service.retrieve_checkout_session(data.session_id)
    except stripe.StripeError as exc:
        logger.error(f"Session lookup failed: {exc}", extra={"session_id": data.session_id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to verify session")

    metadata = session.get("metadata") or {}
    if metadata.get("accountId") != account.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Session does not belong to this account")
    if session.get("payment_status") != "paid":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment not completed")

    plan_type = metadata.get("planType")
    customer_id = stripe_service.object_id(session.get("customer"))
    if plan_type == "sub":
        subscription = session.get("subscription")
        if not isinstance(subscription, dict):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Subscription not found")
        billing_service.apply_subscription(account, subscription, customer_id)
    elif plan_type == "full":
        await billing_service.apply_lifetime(account, customer_id)
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid plan type in session")

    await db.commit()
    logger.info("Payment verified", extra={"account_id": account.id, "plan_type": plan_type})
    return ok(VerifySessionOut(
        plan_type=account.plan_type,
        plan_expires=account.plan_expires,
        subscription_id=account.subscription_id,
    ))


# -------------------- Suscripción --------------------

@router.get("/subscription-status")
async def subscription_status(
    ctx: AuthContext = Depends(require_account_owner),
    db: AsyncSession = Depends(get_db),
):
    """Fuera de SaaS, o sin suscripción en Stripe, se devuelve lo guardado en la cuenta."""
    account = await owner_account(ctx, db)
    if not settings.is_saas or not settings.stripe_secret_key or not account.subscription_id:
        return ok(_stored_status(account))

    try:
        subscription = await stripe_service.retrieve_subscription(
            account.subscription_id, expand=["default_payment_method"]
        )
    except stripe.StripeError as exc:
        logger.error(f"Subscription lookup failed: {exc}", extra={"account_id": account.id})
        fallback = _stored_status(account)
        fallback.is_active = account.plan_type == "sub"
        return ok(fallback)

    payment_method = None
    method = subscription.get("default_payment_method")
    if isinstance(method, dict) and method.get("card"):
        payment_method = PaymentMethodOut(brand=method["card"].get("brand"), last4=method["card"].get("last4"))

    return ok(SubscriptionStatusOut(
        is_active=subscription.get("status") in ("active", "trialing"),
        status=subscription.get("status"),
        plan_type="sub",
        current_period_end=_epoch(stripe_service.current_period_end(subscription)),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        payment_method=payment_method,
    ))


@router.post("/cancel-subscription")
async def cancel_subscription(
    ctx: AuthContext = Depends(require_account_owner),
    db: AsyncSession = Depends(get_db),
):
    ensure_payments_enabled()
    account = await owner_account(ctx, db)
    if account.plan_type == "full":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Lifetime plans cannot be cancelled")
    if not account.subscription_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No active subscription")

    try:
        subscription = await stripe_service.modify_subscription(account.subscription_id, cancel_at_period_end=True)
    except stripe.InvalidRequestError as exc:
        if getattr(exc, "code", None) == "resource_missing":
            account.subscription_id = None
            await db.commit()
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found in Stripe")
        logger.error(f"Cancel subscription failed: {exc}", extra={"account_id": account.id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to cancel subscription")
    except stripe.StripeError as exc:
        logger.error(f"Cancel subscription failed: {exc}", extra={"account_id": account.id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to cancel subscription")

    logger.info("Subscription set to cancel at period end", extra={"account_id": account.id})
    return ok({
        "cancelAtPeriodEnd": bool(subscription.get("cancel_at_period_end")),
        "currentPeriodEnd": _epoch(stripe_service.current_period_end(subscription)),
    })


@router.post("/reactivate-subscription")
async def reactivate_subscription(
    ctx: AuthContext = Depends(require_account_owner),
    db: AsyncSession = Depends(get_db),
):
    ensure_payments_enabled()
    account = await owner_account(ctx, db)
    if account.plan_type != "sub" or not account.subscription_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No subscription to reactivate")

    try:
        subscription = await stripe_service.modify_subscription(account.subscription_id, cancel_at_period_end=False)
    except stripe.StripeError as exc:
        logger.error(f"Reactivate subscription failed: {exc}", extra={"account_id": account.id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to reactivate subscription")

    return ok({
        "cancelAtPeriodEnd": bool(subscription.get("cancel_at_period_end")),
        "currentPeriodEnd": _epoch(stripe_service.current_period_end(subscription)),
    })


@router.get("/payment-history")
async def payment_history(
    limit: int = Query(10, ge=1),
    starting_after: Optional[str] = Query(None, alias="startingAfter"),
    ctx: AuthContext = Depends(require_account_owner),
    db: AsyncSession = Depends(get_db),
):
    ensure_payments_enabled()
    account = await owner_account(ctx, db)
    if not account.stripe_customer_id:
        return ok(PaymentHistoryOut(transactions=[], has_more=False))

    try:
        intents = await stripe_service.list_payment_intents(account.stripe_customer_id, min(limit, 100), starting_after)
    except stripe.StripeError as exc:
        logger.error(f"Payment history lookup failed: {exc}", extra={"account_id": account.id})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load payment history")

    transactions = []
    for intent in intents.get("data", []):
        charge = intent.get("latest_charge")
        charge = charge if isinstance(charge, dict) else {}
        invoice = charge.get("invoice")
        transactions.append(PaymentHistoryItem(
            id=intent["id"],
            date=_epoch(intent["created"]),
            amount=intent["amount"] / 100,
            currency=intent["currency"].upper(),
            status=intent["status"],
            description=intent.get("description") or "Baby Control payment",
            receipt_url=charge.get("receipt_url"),
            invoice_url=f"https://invoice.stripe.com/i/{invoice.split('_secret_')[0]}" if isinstance(invoice, str) else None,
        ))
    return ok(PaymentHistoryOut(transactions=transactions, has_more=bool(intents.get("has_more"))))


# -------------------- Webhook --------------------

@router.get("/webhook")
async def webhook_get():
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"success": False, "error": "Method not allowed. This endpoint only accepts POST requests.", "type": "http_error"},
    )


@router.post("/webhook")
async def webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Eventos firmados de Stripe. Cada manejador registra y se traga sus errores;
    Stripe siempre recibe {"received": true} si la firma es válida.
    """
    if not settings.is_saas:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment webhooks are disabled in self-hosted mode")
    if not settings.stripe_secret_key or not settings.stripe_webhook_secret:
        logger.error("Stripe webhook is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Stripe webhook is not configured")

    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        logger.error("Webhook without stripe-signature header")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature")

    try:
        stripe_service.construct_event(payload, signature)
    except (stripe.SignatureVerificationError, ValueError) as exc:
        logger.error(f"Webhook signature verification failed: {exc}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    event = json.loads(payload)
    start = time.perf_counter()
    await billing_service.dispatch_event(db, event)
    logger.info(
        "Webhook processed",
        extra={"type": event.get("type"), "event_id": event.get("id"), "ms": round((time.perf_counter() - start) * 1000, 1)},
    )
    return {"received": True}
